from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from storecart.commonUtils.enumUtils import CheckoutOutcome, ReconciliationStatus
from storecart.models.cartModel import CartItem


class CheckoutResult(BaseModel):
    """Receipt of a checkout call"""
    outcome: CheckoutOutcome
    total: float
    walletMoney: float  # Balance after the debit
    items: List[CartItem] = Field(default_factory=list)  # Cart content that was checked out
    reconciliation_id: Optional[str] = None  # Set when a refund is still pending
    message: str = "Checkout completed successfully"


class ReconciliationRead(BaseModel):
    """Pending or resolved compensation of a partially applied checkout"""
    id: str
    user_id: str
    email: str
    amount: float
    reason: str
    status: ReconciliationStatus
    attempts: int
    last_error: Optional[str] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, record) -> "ReconciliationRead":
        return cls(
            id=str(record.id),
            user_id=str(record.user_id),
            email=record.email,
            amount=record.amount,
            reason=record.reason,
            status=record.status,
            attempts=record.attempts,
            last_error=record.last_error,
            created_at=record.created_at,
            resolved_at=record.resolved_at,
        )


class ReconciliationRunResponse(BaseModel):
    processed: int
    resolved: int
    failed: int
