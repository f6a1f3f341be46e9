"""
Accounts router — read-only account endpoints.

Endpoints (all require a bearer token):
  GET /accounts                       — List all accounts
  GET /accounts/{account_id}          — Get one account
  GET /accounts/{account_id}/balance  — Stored vs. recomputed balance

Accounts are created by the seed/admin path (ledger/seed.py) and their
balances are changed only by posting transactions.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.database import get_db
from ledger.dependencies import get_current_user
from ledger.models.user import User
from ledger.schemas.account import AccountResponse, BalanceResponse
from ledger.schemas.common import ErrorResponse
from ledger.services import account_service

router = APIRouter()


@router.get(
    "",
    response_model=list[AccountResponse],
    summary="List accounts",
)
async def list_accounts(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List every account with its current balance."""
    return await account_service.list_accounts(db)


@router.get(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Get account details",
    responses={404: {"model": ErrorResponse}},
)
async def get_account(
    account_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.get_account(db, account_id)


@router.get(
    "/{account_id}/balance",
    response_model=BalanceResponse,
    summary="Check account balance integrity",
    responses={404: {"model": ErrorResponse}},
)
async def get_balance(
    account_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Get the stored balance and the balance recomputed from the log.

    `match` is false only if a posting was ever partially applied, which
    the ledger engine is built to prevent.
    """
    return await account_service.get_balance(db, account_id)
