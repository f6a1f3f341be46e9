"""
Account service — business logic for bank account operations.

This module handles:
  - Account creation (seed/admin path only; there is no public endpoint)
  - Account retrieval (single or list)
  - Balance verification (stored balance vs. recomputed from the log)

Balances are never written here after creation. The ledger engine is the
only code that mutates `balance_cents`.
"""

import random
import string
import uuid

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.exceptions import AccountNotFoundError
from ledger.models.account import Account, AccountType
from ledger.models.transaction import Transaction, TransactionType
from ledger.money import from_cents


def _generate_account_number() -> str:
    """
    Generate a random 10-digit account number.

    In a real bank, this would follow a specific format (routing number,
    check digit, etc.). A random 10-digit string avoids sequential guessing.
    """
    return "".join(random.choices(string.digits, k=10))


async def create_account(
    db: AsyncSession,
    account_holder: str,
    account_type: AccountType = AccountType.CHECKING,
    account_number: str | None = None,
    account_id: str | None = None,
) -> Account:
    """
    Create a new account with a zero balance.

    Money only ever enters an account through a posted DEPOSIT, which keeps
    the stored balance equal to the sum of the log from the very first row.

    Args:
        db: Database session.
        account_holder: Display name of the holder.
        account_type: CHECKING or SAVINGS.
        account_number: Explicit number (seed data); generated if omitted.
        account_id: Explicit id (seed data); a UUID4 string if omitted.

    Returns:
        The newly created Account instance.
    """
    if account_number is None:
        # Retry on collision (extremely unlikely with 10 random digits)
        for _ in range(10):
            candidate = _generate_account_number()
            existing = await db.execute(
                select(Account.id).where(Account.account_number == candidate)
            )
            if existing.scalar_one_or_none() is None:
                account_number = candidate
                break
        else:
            raise RuntimeError("Failed to generate a unique account number")

    account = Account(
        id=account_id or str(uuid.uuid4()),
        account_holder=account_holder,
        account_type=AccountType(account_type).value,
        account_number=account_number,
        balance_cents=0,
    )
    db.add(account)
    await db.flush()
    return account


async def list_accounts(db: AsyncSession) -> list[Account]:
    """List every account, in account number order."""
    result = await db.execute(select(Account).order_by(Account.account_number))
    return list(result.scalars().all())


async def get_account(db: AsyncSession, account_id: str) -> Account:
    """
    Get a single account.

    Raises:
        AccountNotFoundError: If the account doesn't exist.
    """
    result = await db.execute(select(Account).where(Account.id == account_id))
    account = result.scalar_one_or_none()

    if account is None:
        raise AccountNotFoundError(account_id)

    return account


async def get_balance(db: AsyncSession, account_id: str) -> dict:
    """
    Get the stored balance alongside the balance recomputed from the log.

    The `match` field indicates whether the two agree. A mismatch would mean
    a posting was partially applied — a data integrity issue.
    """
    account = await get_account(db, account_id)
    computed_cents = await _compute_balance_from_transactions(db, account_id)

    return {
        "account_id": account.id,
        "balance": account.balance,
        "computed_balance": from_cents(computed_cents),
        "match": account.balance_cents == computed_cents,
    }


async def _compute_balance_from_transactions(db: AsyncSession, account_id: str) -> int:
    """
    Net effect of the log on one account, in cents.

    Deposits and incoming transfers add; withdrawals and outgoing transfers
    subtract.
    """
    signed_amount = case(
        (
            (Transaction.account_id == account_id)
            & (Transaction.type == TransactionType.DEPOSIT.value),
            Transaction.amount_cents,
        ),
        (
            Transaction.account_id == account_id,
            -Transaction.amount_cents,
        ),
        (
            Transaction.to_account_id == account_id,
            Transaction.amount_cents,
        ),
        else_=0,
    )
    result = await db.execute(
        select(func.coalesce(func.sum(signed_amount), 0)).where(
            (Transaction.account_id == account_id)
            | (Transaction.to_account_id == account_id)
        )
    )
    return int(result.scalar_one())
