"""
Transaction feed router — the global, cross-account transaction listing.

Endpoints (requires a bearer token):
  GET /transactions — Every transaction, newest first, with the source
                      account's holder name and masked number
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.database import get_db
from ledger.dependencies import get_current_user
from ledger.models.user import User
from ledger.schemas.transaction import FeedPageResponse
from ledger.services import transaction_service

router = APIRouter()


@router.get(
    "",
    response_model=FeedPageResponse,
    summary="List all transactions",
)
async def list_all_transactions(
    page: str | None = Query(None, description="Page number, starting at 1"),
    limit: str | None = Query(None, description="Page size, 1-100 (default 20)"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.list_all_transactions(db=db, page=page, limit=limit)
