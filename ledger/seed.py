"""
Sample data for a fresh database.

Runs once at startup when SEED_SAMPLE_DATA is true and the accounts table is
empty. It creates:

  - Account "1" (#1001, CHECKING, John Doe)   — balance 5,000.00
  - Account "2" (#1002, SAVINGS,  Jane Smith) — balance 10,000.00
  - A dated history for both accounts
  - Demo user admin@demo.com / Admin123

The history is written so that the stored balances equal the net effect of
the log, exactly as if every row had been posted through the ledger engine.
Each account opens with a deposit sized to make that true; GET
/accounts/{id}/balance reports match=true for both.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.models.account import Account, AccountType
from ledger.models.transaction import Transaction, TransactionType
from ledger.models.user import User
from ledger.money import to_cents
from ledger.security import hash_password
from ledger.services import account_service

logger = logging.getLogger(__name__)

DEMO_USER = {"email": "admin@demo.com", "password": "Admin123", "name": "Demo Admin"}

SAMPLE_ACCOUNTS = [
    {"id": "1", "number": "1001", "type": AccountType.CHECKING, "holder": "John Doe"},
    {"id": "2", "number": "1002", "type": AccountType.SAVINGS, "holder": "Jane Smith"},
]

# (source, type, amount, description, destination, created_at)
SAMPLE_TRANSACTIONS = [
    ("1", TransactionType.DEPOSIT, "4250.00", "Opening deposit", None, "2024-01-10T09:00:00"),
    ("2", TransactionType.DEPOSIT, "7400.00", "Opening deposit", None, "2024-01-10T09:05:00"),
    ("1", TransactionType.DEPOSIT, "1000.00", "Salary deposit", None, "2024-01-15T10:00:00"),
    ("2", TransactionType.DEPOSIT, "2000.00", "Investment return", None, "2024-01-15T11:00:00"),
    ("1", TransactionType.WITHDRAWAL, "50.00", "ATM withdrawal", None, "2024-01-16T14:30:00"),
    ("2", TransactionType.WITHDRAWAL, "100.00", "Online purchase debit", None, "2024-01-16T16:45:00"),
    ("1", TransactionType.TRANSFER, "200.00", "Transfer to savings account", "2", "2024-01-17T09:15:00"),
    ("2", TransactionType.DEPOSIT, "500.00", "Refund", None, "2024-01-17T13:20:00"),
]


def _apply(balances: dict[str, int], source: str, txn_type: TransactionType,
           amount_cents: int, destination: str | None) -> None:
    if txn_type is TransactionType.DEPOSIT:
        balances[source] += amount_cents
    else:
        balances[source] -= amount_cents
    if destination is not None:
        balances[destination] += amount_cents


async def seed_demo_user(db: AsyncSession) -> None:
    result = await db.execute(select(User.id).where(User.email == DEMO_USER["email"]))
    if result.scalar_one_or_none() is not None:
        return
    db.add(
        User(
            email=DEMO_USER["email"],
            name=DEMO_USER["name"],
            hashed_password=hash_password(DEMO_USER["password"]),
        )
    )
    await db.flush()
    logger.info("Demo user created", extra={"email": DEMO_USER["email"]})


async def seed_sample_data(db: AsyncSession) -> bool:
    """
    Insert the demo user, sample accounts and their history.

    Returns:
        True if accounts were inserted, False if the database already had
        accounts (the demo user is still ensured).
    """
    await seed_demo_user(db)

    count = (await db.execute(select(func.count()).select_from(Account))).scalar_one()
    if count:
        logger.info("Sample data already exists, skipping insertion")
        return False

    accounts = {}
    for row in SAMPLE_ACCOUNTS:
        accounts[row["id"]] = await account_service.create_account(
            db,
            account_holder=row["holder"],
            account_type=row["type"],
            account_number=row["number"],
            account_id=row["id"],
        )

    balances = {account_id: 0 for account_id in accounts}
    for source, txn_type, amount, description, destination, created_at in SAMPLE_TRANSACTIONS:
        amount_cents = to_cents(Decimal(amount))
        db.add(
            Transaction(
                account_id=source,
                type=txn_type.value,
                amount_cents=amount_cents,
                description=description,
                to_account_id=destination,
                created_at=datetime.fromisoformat(created_at).replace(tzinfo=timezone.utc),
            )
        )
        _apply(balances, source, txn_type, amount_cents, destination)

    for account_id, account in accounts.items():
        account.balance_cents = balances[account_id]

    await db.flush()
    logger.info(
        "Sample data inserted",
        extra={"accounts": len(accounts), "transactions": len(SAMPLE_TRANSACTIONS)},
    )
    return True
