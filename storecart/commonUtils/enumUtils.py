from enum import Enum


class ErrorKind(str, Enum):
    """Classification of cart engine failures, translated to a status code at the HTTP boundary"""
    NOT_FOUND = "not_found"  # Referenced cart or user is absent
    INVALID_REQUEST = "invalid_request"  # A precondition was violated
    CONFLICT = "conflict"  # Duplicate product or concurrent write clash
    INTERNAL = "internal"  # Cart creation failed or unexpected store failure
    TIMEOUT = "timeout"  # The operation deadline expired


class CheckoutOutcome(str, Enum):
    """
    Result of the two-phase checkout unit (wallet debit, then cart clear).

    FULLY_SUCCEEDED: wallet debited and cart emptied
    PARTIALLY_APPLIED: wallet debited, cart untouched, refund queued for reconciliation
    FAILED: nothing applied (rejected debit, or compensated cart failure)
    """
    FULLY_SUCCEEDED = "fully_succeeded"
    PARTIALLY_APPLIED = "partially_applied"
    FAILED = "failed"


class ReconciliationStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"  # Claimed by a reconciliation run
    RESOLVED = "resolved"
