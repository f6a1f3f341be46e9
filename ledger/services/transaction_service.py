"""
Transaction query service — read-only pagination over the transaction log.

Two listings share one contract:
  - list_account_transactions(): rows where the account is the source OR
    the destination of the transaction
  - list_all_transactions(): every row, each annotated with the source
    account's holder name and masked account number

Both order by created_at descending, then id descending so that rows
written in the same instant still come back in a stable order. Paging
parameters are normalized, never rejected: page falls back to 1, limit is
clamped into [1, 100]. `total` counts every matching row, independent of
the page window.

Nothing here takes the posting locks; readers only see committed data.
"""

import math

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.exceptions import AccountNotFoundError
from ledger.models.account import Account
from ledger.models.transaction import Transaction
from ledger.money import mask_account_number

MAX_PAGE_SIZE = 100
ACCOUNT_PAGE_SIZE = 10
GLOBAL_PAGE_SIZE = 20

# Largest OFFSET the database accepts (signed 64-bit)
MAX_OFFSET = 2**63 - 1


def _to_int(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def normalize_paging(page, limit, default_limit: int) -> tuple[int, int]:
    """
    Coerce raw page/limit query values into a valid window.

    Missing, non-numeric or zero values fall back to the defaults, then
    limit is clamped to [1, MAX_PAGE_SIZE] and page to [1, N], where N is
    the last page whose offset still fits a signed 64-bit SQL integer.
    Pages that far out are empty anyway.
    """
    page = _to_int(page) or 1
    limit = min(MAX_PAGE_SIZE, max(1, _to_int(limit) or default_limit))
    return min(max(1, page), MAX_OFFSET // limit + 1), limit


def _page(items: list, total: int, page: int, limit: int) -> dict:
    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit),
    }


async def list_account_transactions(
    db: AsyncSession,
    account_id: str,
    page=None,
    limit=None,
) -> dict:
    """
    List one account's transactions, newest first.

    Args:
        db: Database session.
        account_id: Account that is the source or destination.
        page: 1-based page number (normalized).
        limit: Page size (normalized, default 10).

    Returns:
        Dict with items (Transaction rows), total, page, limit, total_pages.

    Raises:
        AccountNotFoundError: If the account doesn't exist.
    """
    exists = await db.execute(select(Account.id).where(Account.id == account_id))
    if exists.scalar_one_or_none() is None:
        raise AccountNotFoundError(account_id)

    page, limit = normalize_paging(page, limit, ACCOUNT_PAGE_SIZE)
    touches_account = or_(
        Transaction.account_id == account_id,
        Transaction.to_account_id == account_id,
    )

    total = (
        await db.execute(
            select(func.count()).select_from(Transaction).where(touches_account)
        )
    ).scalar_one()

    result = await db.execute(
        select(Transaction)
        .where(touches_account)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return _page(list(result.scalars().all()), total, page, limit)


async def list_all_transactions(
    db: AsyncSession,
    page=None,
    limit=None,
) -> dict:
    """
    List every transaction across all accounts, newest first.

    Each item carries the source account's `account_holder` and a masked
    `account_number` for display. The join is a presentation convenience;
    a transaction whose account row is missing is still listed, with those
    fields set to None.
    """
    page, limit = normalize_paging(page, limit, GLOBAL_PAGE_SIZE)

    total = (
        await db.execute(select(func.count()).select_from(Transaction))
    ).scalar_one()

    result = await db.execute(
        select(Transaction, Account.account_holder, Account.account_number)
        .outerjoin(Account, Transaction.account_id == Account.id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )

    items = [
        {
            "id": txn.id,
            "account_id": txn.account_id,
            "type": txn.type,
            "amount": txn.amount,
            "description": txn.description,
            "to_account_id": txn.to_account_id,
            "created_at": txn.created_at,
            "account_holder": holder,
            "account_number": mask_account_number(number),
        }
        for txn, holder, number in result.all()
    ]
    return _page(items, total, page, limit)
