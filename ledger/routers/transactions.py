"""
Transactions router — post and list transactions for an account.

Endpoints (all require a bearer token):
  POST /accounts/{account_id}/transactions  — Post a deposit, withdrawal or transfer
  GET  /accounts/{account_id}/transactions  — List the account's transactions

The POST handler is pure glue: it hands the raw body to the ledger engine,
which validates, posts atomically and returns a receipt. Every error path
is a LedgerError raised by the engine and rendered by the handlers in
ledger/exceptions.py.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.database import get_db
from ledger.dependencies import get_current_user, get_ledger_engine
from ledger.models.user import User
from ledger.schemas.common import ErrorResponse
from ledger.schemas.transaction import (
    TransactionCreateRequest,
    TransactionPageResponse,
    TransactionReceiptResponse,
)
from ledger.services import transaction_service
from ledger.services.ledger_engine import LedgerEngine, PostingRequest

router = APIRouter()


@router.post(
    "/{account_id}/transactions",
    response_model=TransactionReceiptResponse,
    response_model_exclude_none=True,
    status_code=201,
    summary="Post a transaction (deposit, withdrawal or transfer)",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def create_transaction(
    account_id: str,
    request: TransactionCreateRequest,
    user: User = Depends(get_current_user),
    engine: LedgerEngine = Depends(get_ledger_engine),
):
    """
    Post a transaction against an account.

    - **DEPOSIT**: Adds `amount` to the account
    - **WITHDRAWAL**: Removes `amount`; rejected if the balance would go negative
    - **TRANSFER**: Moves `amount` to `toAccountId`; same funds check

    Amounts are positive, at most 1,000,000, with at most two decimals.
    The receipt's `balance` is the account's new balance.
    """
    receipt = await engine.post_transaction(
        account_id,
        PostingRequest(
            type=request.type,
            amount=request.amount,
            description=request.description,
            to_account_id=request.to_account_id,
        ),
    )
    return receipt


@router.get(
    "/{account_id}/transactions",
    response_model=TransactionPageResponse,
    summary="List transactions for an account",
    responses={404: {"model": ErrorResponse}},
)
async def list_transactions(
    account_id: str,
    page: str | None = Query(None, description="Page number, starting at 1"),
    limit: str | None = Query(None, description="Page size, 1-100 (default 10)"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List transactions where the account is the source or the destination,
    newest first. Out-of-range paging values are clamped, not rejected.
    """
    return await transaction_service.list_account_transactions(
        db=db,
        account_id=account_id,
        page=page,
        limit=limit,
    )
