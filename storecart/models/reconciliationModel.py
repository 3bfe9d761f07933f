from datetime import datetime
from typing import Optional
from beanie import Document, PydanticObjectId
from pydantic import Field, ConfigDict
from storecart.commonUtils.enumUtils import ReconciliationStatus


class CheckoutReconciliation(Document):
    """
    Compensation still owed after a partially applied checkout.
    The wallet was debited but the cart could not be cleared and the
    immediate refund failed, so `amount` must be credited back to the user.
    """
    id: Optional[PydanticObjectId] = Field(None, alias="_id")
    user_id: PydanticObjectId
    email: str

    amount: float = Field(..., gt=0)
    reason: str
    status: ReconciliationStatus = Field(default=ReconciliationStatus.PENDING)

    # Retry bookkeeping
    attempts: int = Field(default=0, ge=0)
    last_error: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    resolved_at: Optional[datetime] = None

    class Settings:
        name = "checkout_reconciliations"
        indexes = [
            [("status", 1)],
            [("email", 1)],
            [("created_at", -1)],
        ]

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,  # Store enum values as strings
    )
