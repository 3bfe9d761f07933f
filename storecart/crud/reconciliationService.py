import logging
from datetime import datetime
from typing import List, Optional

from beanie.odm.queries.update import UpdateResponse
from beanie.operators import Set

from storecart.commonUtils.enumUtils import ReconciliationStatus
from storecart.crud.userService import UserService
from storecart.models.reconciliationModel import CheckoutReconciliation
from storecart.models.userModel import User

logger = logging.getLogger(__name__)


class ReconciliationService:
    """Queue and replay refunds owed for partially applied checkouts"""

    @staticmethod
    async def enqueue_refund(
            user: User,
            amount: float,
            reason: str,
            error: Optional[str] = None
    ) -> Optional[CheckoutReconciliation]:
        """Record a refund that could not be applied immediately"""
        record = CheckoutReconciliation(
            user_id=user.id,
            email=user.email,
            amount=amount,
            reason=reason,
            last_error=error,
        )
        try:
            await record.insert()
        except Exception as e:
            logger.critical(
                f"Could not queue refund of {amount} for {user.email} ({reason}): {e}",
                exc_info=True
            )
            return None

        logger.warning(f"Queued refund {record.id} of {amount} for {user.email}: {reason}")
        return record

    @staticmethod
    async def list_pending(limit: int = 100) -> List[CheckoutReconciliation]:
        return await (
            CheckoutReconciliation.find(CheckoutReconciliation.status == ReconciliationStatus.PENDING)
            .sort(("created_at", 1))
            .limit(limit)
            .to_list()
        )

    @staticmethod
    async def claim(record: CheckoutReconciliation) -> Optional[CheckoutReconciliation]:
        """
        Atomically move a pending record to PROCESSING.
        Returns None when another run claimed or resolved it first.
        """
        return await CheckoutReconciliation.find_one(
            CheckoutReconciliation.id == record.id,
            CheckoutReconciliation.status == ReconciliationStatus.PENDING,
        ).update(
            Set({
                CheckoutReconciliation.status: ReconciliationStatus.PROCESSING.value,
                CheckoutReconciliation.updated_at: datetime.utcnow(),
            }),
            response_type=UpdateResponse.NEW_DOCUMENT,
        )

    @staticmethod
    async def process_pending(limit: int = 100) -> dict:
        """
        Credit every pending refund back to its user.

        Each record is claimed before it is credited, so overlapping runs
        (scheduler and admin route) never credit the same refund twice. A
        record is marked resolved only after the credit went through. A
        failed credit bumps `attempts`, keeps the error and puts the record
        back to pending for the next run.
        """
        pending = await ReconciliationService.list_pending(limit)
        processed = 0
        resolved = 0
        failed = 0

        for candidate in pending:
            record = await ReconciliationService.claim(candidate)
            if record is None:
                logger.info(f"Refund {candidate.id} already claimed by another run, skipping")
                continue
            processed += 1

            try:
                user = await UserService.credit_wallet(record.user_id, record.amount)
                if user is None:
                    raise LookupError(f"User {record.user_id} not found")
            except Exception as e:
                failed += 1
                await record.set({
                    CheckoutReconciliation.status: ReconciliationStatus.PENDING.value,
                    CheckoutReconciliation.attempts: record.attempts + 1,
                    CheckoutReconciliation.last_error: str(e),
                    CheckoutReconciliation.updated_at: datetime.utcnow(),
                })
                logger.error(f"Refund {record.id} for {record.email} failed (attempt {record.attempts}): {e}")
                continue

            now = datetime.utcnow()
            await record.set({
                CheckoutReconciliation.status: ReconciliationStatus.RESOLVED.value,
                CheckoutReconciliation.attempts: record.attempts + 1,
                CheckoutReconciliation.last_error: None,
                CheckoutReconciliation.resolved_at: now,
                CheckoutReconciliation.updated_at: now,
            })
            resolved += 1
            logger.info(f"Refund {record.id} of {record.amount} credited to {record.email}")

        return {"processed": processed, "resolved": resolved, "failed": failed}
