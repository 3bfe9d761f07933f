# storecart/schedulers/reconciliation_scheduler.py
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
import logging

from storecart.crud.reconciliationService import ReconciliationService
from storecart.config.settings import settings

logger = logging.getLogger(__name__)


class ReconciliationScheduler:
    """Handles periodic replay of refunds owed for partially applied checkouts."""

    def __init__(self):
        self.scheduler = AsyncIOScheduler()

    async def reconcile_task(self):
        """Task to run the reconciliation"""
        try:
            result = await ReconciliationService.process_pending()
            if result["processed"]:
                logger.info(f"Scheduled reconciliation completed: {result}")
        except Exception as e:
            logger.error(f"Scheduled reconciliation failed: {e}", exc_info=True)

    def start_periodic_reconciliation(self, minutes: int = settings.RECONCILIATION_INTERVAL_MINUTES):
        """Start the periodic reconciliation job. Enablement is checked in the lifespan function."""
        try:
            self.scheduler.add_job(
                func=self.reconcile_task,
                trigger=IntervalTrigger(minutes=minutes),
                id="checkout_reconciliation",
                name="Checkout Refund Reconciliation",
                replace_existing=True,
                max_instances=1,
            )
            self.scheduler.start()
            logger.info(f"Checkout reconciliation scheduled every {minutes} minute(s)")
        except Exception as e:
            logger.error(f"Failed to start reconciliation scheduler: {e}")

    def stop_periodic_reconciliation(self):
        """Stop the periodic reconciliation scheduler."""
        try:
            if self.scheduler.running:
                self.scheduler.shutdown()
                logger.info("Reconciliation scheduler stopped")
        except Exception as e:
            logger.error(f"Error stopping reconciliation scheduler: {e}")

    def is_running(self) -> bool:
        """Check if the scheduler is currently running."""
        return self.scheduler.running


# Global instance
reconciliation_scheduler = ReconciliationScheduler()
