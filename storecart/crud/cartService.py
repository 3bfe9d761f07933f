import logging
from datetime import datetime
from typing import List, Optional
from beanie.exceptions import RevisionIdWasChanged
from pymongo.errors import DuplicateKeyError

from storecart.config.settings import settings
from storecart.commonUtils.cartErrors import (
    CartError,
    CartRevisionConflict,
    CART_NOT_FOUND,
    CART_NOT_FOUND_FOR_UPDATE,
    INTERNAL_ERROR,
    INVALID_QUANTITY,
    PRODUCT_ALREADY_IN_CART,
    PRODUCT_NOT_IN_CART,
    PRODUCT_NOT_IN_CATALOG,
)
from storecart.commonUtils.concurrencyUtil import Deadline, owner_locks, run_with_retries
from storecart.commonUtils.enumUtils import ErrorKind
from storecart.crud.productService import ProductService
from storecart.models.cartModel import Cart, CartItem
from storecart.models.productModel import Product, ProductSnapshot
from storecart.models.userModel import User

logger = logging.getLogger(__name__)


def make_deadline(timeout: Optional[float]) -> Deadline:
    """Deadline for one operation; None falls back to the configured default (0 disables it)"""
    if timeout is None:
        timeout = settings.CART_OPERATION_TIMEOUT_SECONDS or None
    return Deadline(timeout)


class CartService:
    """Service layer for cart operations"""

    @staticmethod
    async def find_cart(user: User, deadline: Deadline) -> Cart:
        """Load the owner's cart, NOT_FOUND when there is none"""
        try:
            cart = await deadline.run(Cart.find_one(Cart.email == user.email))
        except CartError:
            raise
        except Exception as e:
            logger.error(f"Failed to load cart of {user.email}: {e}", exc_info=True)
            raise CartError(ErrorKind.INTERNAL, INTERNAL_ERROR)

        if not cart:
            raise CartError(ErrorKind.NOT_FOUND, CART_NOT_FOUND)
        return cart

    @staticmethod
    async def find_product(product_id, deadline: Deadline) -> Product:
        """Resolve a product against the catalog, INVALID_REQUEST when it is not there"""
        product = await deadline.run(ProductService.get_product_by_id(product_id))
        if not product:
            raise CartError(ErrorKind.INVALID_REQUEST, PRODUCT_NOT_IN_CATALOG)
        return product

    @staticmethod
    async def save_cart(cart: Cart, deadline: Optional[Deadline] = None) -> Cart:
        """
        Rewrite the whole cart document, guarded by its revision.
        Raises CartRevisionConflict when another writer saved the cart since it was read.
        """
        if deadline is not None:
            deadline.ensure_time_left()
        cart.updated_at = datetime.utcnow()
        try:
            await cart.save()
        except RevisionIdWasChanged:
            raise CartRevisionConflict(cart.email)
        return cart

    @staticmethod
    async def create_cart(user: User, deadline: Deadline, items: Optional[List[CartItem]] = None) -> Cart:
        deadline.ensure_time_left()
        cart = Cart(email=user.email, cartItems=items or [])
        try:
            await cart.insert()
        except DuplicateKeyError:
            # Another request created the cart first, re-read it
            raise CartRevisionConflict(user.email)
        except Exception as e:
            logger.error(f"Cart creation failed for {user.email}: {e}", exc_info=True)
            raise CartError(ErrorKind.INTERNAL, INTERNAL_ERROR)

        logger.info(f"Created cart for {user.email}")
        return cart

    @staticmethod
    async def get_cart_by_user(user: User, timeout: Optional[float] = None) -> Cart:
        """Fetch the user's cart"""
        return await CartService.find_cart(user, make_deadline(timeout))

    @staticmethod
    async def add_product_to_cart(
            user: User,
            product_id,
            quantity: int,
            timeout: Optional[float] = None
    ) -> Cart:
        """Add a new product to the cart, creating the cart on first use"""
        if quantity < 1:
            raise CartError(ErrorKind.INVALID_REQUEST, INVALID_QUANTITY)

        deadline = make_deadline(timeout)
        async with owner_locks.hold(user.email, deadline):
            return await run_with_retries(
                lambda: CartService._add_product(user, product_id, quantity, deadline),
                settings.CART_WRITE_RETRIES,
                user.email,
            )

    @staticmethod
    async def _add_product(user: User, product_id, quantity: int, deadline: Deadline) -> Cart:
        try:
            cart = await CartService.find_cart(user, deadline)
        except CartError as e:
            if e.kind != ErrorKind.NOT_FOUND:
                raise
            cart = None

        # Catalog is checked before anything is written
        product = await CartService.find_product(product_id, deadline)
        item = CartItem(product=ProductSnapshot.from_product(product), quantity=quantity)

        if cart is None:
            # New cart goes in with its first item in a single insert
            cart = await CartService.create_cart(user, deadline, [item])
        else:
            if cart.find_item(product.id) is not None:
                raise CartError(ErrorKind.CONFLICT, PRODUCT_ALREADY_IN_CART)
            cart.cartItems.append(item)
            await CartService.save_cart(cart, deadline)

        logger.info(f"Added product {product.id} x{quantity} to cart of {user.email}")
        return cart

    @staticmethod
    async def update_product_in_cart(
            user: User,
            product_id,
            quantity: int,
            timeout: Optional[float] = None
    ) -> Cart:
        """Update the quantity of a product that is already in the cart"""
        if quantity < 1:
            raise CartError(ErrorKind.INVALID_REQUEST, INVALID_QUANTITY)

        deadline = make_deadline(timeout)
        async with owner_locks.hold(user.email, deadline):
            return await run_with_retries(
                lambda: CartService._update_product(user, product_id, quantity, deadline),
                settings.CART_WRITE_RETRIES,
                user.email,
            )

    @staticmethod
    async def _update_product(user: User, product_id, quantity: int, deadline: Deadline) -> Cart:
        try:
            cart = await CartService.find_cart(user, deadline)
        except CartError as e:
            if e.kind != ErrorKind.NOT_FOUND:
                raise
            raise CartError(ErrorKind.INVALID_REQUEST, CART_NOT_FOUND_FOR_UPDATE)

        product = await CartService.find_product(product_id, deadline)

        item = cart.find_item(product.id)
        if item is None:
            raise CartError(ErrorKind.INVALID_REQUEST, PRODUCT_NOT_IN_CART)

        # In place, so the captured product snapshot is kept
        item.quantity = quantity
        await CartService.save_cart(cart, deadline)

        logger.info(f"Set quantity of product {product.id} to {quantity} in cart of {user.email}")
        return cart

    @staticmethod
    async def delete_product_from_cart(
            user: User,
            product_id,
            timeout: Optional[float] = None
    ) -> None:
        """Remove a product from the cart"""
        deadline = make_deadline(timeout)
        async with owner_locks.hold(user.email, deadline):
            await run_with_retries(
                lambda: CartService._delete_product(user, product_id, deadline),
                settings.CART_WRITE_RETRIES,
                user.email,
            )

    @staticmethod
    async def _delete_product(user: User, product_id, deadline: Deadline) -> None:
        try:
            cart = await CartService.find_cart(user, deadline)
        except CartError as e:
            if e.kind != ErrorKind.NOT_FOUND:
                raise
            raise CartError(ErrorKind.INVALID_REQUEST, CART_NOT_FOUND)

        # Matched against the snapshot, so products since removed from the catalog can still go
        index = next(
            (i for i, item in enumerate(cart.cartItems) if str(item.product.id) == str(product_id)),
            None
        )
        if index is None:
            raise CartError(ErrorKind.INVALID_REQUEST, PRODUCT_NOT_IN_CART)

        del cart.cartItems[index]
        await CartService.save_cart(cart, deadline)

        logger.info(f"Removed product {product_id} from cart of {user.email}")

    @staticmethod
    async def move_cart(previous_email: str, new_email: str) -> Optional[Cart]:
        """Re-key a cart after its owner changed email. None when there was no cart"""
        async with owner_locks.hold(previous_email):
            return await run_with_retries(
                lambda: CartService._move_cart(previous_email, new_email),
                settings.CART_WRITE_RETRIES,
                previous_email,
            )

    @staticmethod
    async def _move_cart(previous_email: str, new_email: str) -> Optional[Cart]:
        cart = await Cart.find_one(Cart.email == previous_email)
        if not cart:
            return None

        cart.email = new_email
        await CartService.save_cart(cart)

        logger.info(f"Moved cart {cart.id} from {previous_email} to {new_email}")
        return cart
