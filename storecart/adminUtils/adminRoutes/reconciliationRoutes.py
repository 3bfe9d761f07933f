from fastapi import APIRouter, Depends, Query, status
from typing import List
import logging

from storecart.crud.userService import super_user
from storecart.crud.reconciliationService import ReconciliationService
from storecart.models.userModel import User
from storecart.schemas.checkOutSchema import ReconciliationRead, ReconciliationRunResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/reconciliations",
            summary="Admin: List refunds pending after partially applied checkouts",
            response_model=List[ReconciliationRead],
            status_code=status.HTTP_200_OK)
async def list_pending_reconciliations(
        limit: int = Query(100, ge=1, le=1000),
        admin: User = Depends(super_user)  # Only superusers can see pending refunds
):
    records = await ReconciliationService.list_pending(limit)
    return [ReconciliationRead.from_document(record) for record in records]


@router.post("/reconciliations/run",
             summary="Admin: Credit pending refunds now",
             response_model=ReconciliationRunResponse,
             status_code=status.HTTP_200_OK)
async def run_reconciliation(
        limit: int = Query(100, ge=1, le=1000),
        admin: User = Depends(super_user)
):
    """Replay pending refunds immediately instead of waiting for the scheduler"""
    logger.info(f"Admin {admin.email} triggered checkout reconciliation")
    return await ReconciliationService.process_pending(limit)
