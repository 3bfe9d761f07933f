import logging
from typing import Optional, Tuple

from storecart.config.settings import settings
from storecart.commonUtils.cartErrors import (
    CartError,
    CartRevisionConflict,
    ADDRESS_NOT_SET,
    CART_EMPTY,
    CART_MISSING_AT_CHECKOUT,
    CHECKOUT_NOT_APPLIED,
    INSUFFICIENT_BALANCE,
    INTERNAL_ERROR,
    USER_NOT_FOUND,
)
from storecart.commonUtils.concurrencyUtil import Deadline, owner_locks, run_with_retries
from storecart.commonUtils.enumUtils import CheckoutOutcome, ErrorKind
from storecart.crud.cartService import CartService, make_deadline
from storecart.crud.reconciliationService import ReconciliationService
from storecart.crud.userService import UserService
from storecart.models.cartModel import Cart
from storecart.models.reconciliationModel import CheckoutReconciliation
from storecart.models.userModel import User
from storecart.schemas.checkOutSchema import CheckoutResult

logger = logging.getLogger(__name__)


class CheckOutService:
    """
    Checkout: turn a non-empty cart into a wallet debit plus an emptied cart.

    The two writes run as an explicit two-phase unit:
      1. debit the wallet with a conditional atomic update
      2. clear the cart with a revision-checked save
    When phase 2 fails the debit is refunded. If the refund fails too, it is
    queued for reconciliation and the call reports PARTIALLY_APPLIED.
    """

    @staticmethod
    async def checkout(user: User, timeout: Optional[float] = None) -> CheckoutResult:
        """Checkout the user's cart. On success the cart has no products left"""
        deadline = make_deadline(timeout)
        async with owner_locks.hold(user.email, deadline):
            return await run_with_retries(
                lambda: CheckOutService._checkout_once(user, deadline),
                settings.CART_WRITE_RETRIES,
                user.email,
            )

    @staticmethod
    async def _checkout_once(user: User, deadline: Deadline) -> CheckoutResult:
        try:
            cart = await CartService.find_cart(user, deadline)
        except CartError as e:
            if e.kind == ErrorKind.TIMEOUT:
                raise
            raise CartError(ErrorKind.NOT_FOUND, CART_MISSING_AT_CHECKOUT)

        if not cart.cartItems:
            raise CartError(ErrorKind.INVALID_REQUEST, CART_EMPTY)

        ledger_user = await CheckOutService._load_ledger_user(user, deadline)

        if not ledger_user.has_set_non_default_address():
            raise CartError(ErrorKind.INVALID_REQUEST, ADDRESS_NOT_SET)

        # Charged at the snapshot price captured when each item was added
        total = cart.total_cost()
        if ledger_user.walletMoney < total:
            raise CartError(ErrorKind.INVALID_REQUEST, INSUFFICIENT_BALANCE)

        items = [item.model_copy(deep=True) for item in cart.cartItems]

        # Phase 1
        deadline.ensure_time_left()
        try:
            debited = await UserService.debit_wallet(ledger_user.id, total)
        except Exception as e:
            logger.error(f"Wallet debit failed for {user.email}: {e}", exc_info=True)
            raise CartError(ErrorKind.INTERNAL, INTERNAL_ERROR)
        if debited is None:
            # Balance changed between the read and the write
            raise CartError(ErrorKind.INVALID_REQUEST, INSUFFICIENT_BALANCE)

        # Phase 2
        outcome, record = await CheckOutService._clear_cart_or_compensate(cart, ledger_user, total)

        if outcome == CheckoutOutcome.FAILED:
            raise CartError(ErrorKind.INTERNAL, CHECKOUT_NOT_APPLIED)

        user.walletMoney = debited.walletMoney

        if outcome == CheckoutOutcome.PARTIALLY_APPLIED:
            logger.error(
                f"Checkout for {user.email} partially applied: debited {total}, cart not cleared, "
                f"refund pending ({record.id if record else 'not recorded'})"
            )
            return CheckoutResult(
                outcome=outcome,
                total=total,
                walletMoney=debited.walletMoney,
                items=items,
                reconciliation_id=str(record.id) if record else None,
                message="Checkout could not be completed. A refund is pending",
            )

        logger.info(f"Checkout for {user.email} completed: charged {total}, balance {debited.walletMoney}")
        return CheckoutResult(
            outcome=outcome,
            total=total,
            walletMoney=debited.walletMoney,
            items=items,
        )

    @staticmethod
    async def _load_ledger_user(user: User, deadline: Deadline) -> User:
        """Fresh ledger state, the caller's copy may be stale"""
        try:
            ledger_user = await deadline.run(User.get(user.id))
        except CartError:
            raise
        except Exception as e:
            logger.error(f"Failed to load ledger record of {user.email}: {e}", exc_info=True)
            raise CartError(ErrorKind.INTERNAL, INTERNAL_ERROR)

        if not ledger_user:
            raise CartError(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        return ledger_user

    @staticmethod
    async def _clear_cart_or_compensate(
            cart: Cart,
            user: User,
            total: float
    ) -> Tuple[CheckoutOutcome, Optional[CheckoutReconciliation]]:
        """Phase 2. Runs to the end regardless of the deadline, the wallet is already debited"""
        cart.cartItems = []
        try:
            await CartService.save_cart(cart)
            return CheckoutOutcome.FULLY_SUCCEEDED, None
        except CartRevisionConflict:
            conflict = True
            error = "cart revision changed"
        except Exception as e:
            conflict = False
            error = str(e)
            logger.error(f"Clearing cart of {user.email} after debit failed: {e}", exc_info=True)

        if await CheckOutService._refund(user, total):
            if conflict:
                # Debit undone, re-run the whole checkout against the new cart
                raise CartRevisionConflict(user.email)
            return CheckoutOutcome.FAILED, None

        record = await ReconciliationService.enqueue_refund(
            user, total, reason="checkout cart clear failed", error=error
        )
        return CheckoutOutcome.PARTIALLY_APPLIED, record

    @staticmethod
    async def _refund(user: User, amount: float) -> bool:
        try:
            refunded = await UserService.credit_wallet(user.id, amount)
        except Exception as e:
            logger.error(f"Refund of {amount} to {user.email} failed: {e}", exc_info=True)
            return False
        if refunded is None:
            logger.error(f"Refund of {amount} to {user.email} failed: user not found")
            return False
        return True
