"""
Account model — a bank account whose balance the ledger engine maintains.

Each account has:
  - A stable string id ("1", "2" for seeded accounts, UUID4 strings otherwise)
  - A unique account number (shown masked to other parties)
  - A type: "CHECKING" or "SAVINGS"
  - A balance in integer cents (updated atomically with transactions)
  - Descriptive holder name and creation timestamp, immutable after creation

Balance management:
  The `balance_cents` column stores the current balance as an integer
  (in cents, e.g., $10.50 = 1050). Only the ledger engine's posting unit of
  work writes it, always in the same DB transaction as the matching
  Transaction row — so it is always consistent with the transaction log.

  A CHECK constraint at the database level enforces that the balance can
  never go negative. The engine also checks before debiting; the DB
  constraint is the final safety net against bugs or race conditions.
"""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Integer, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger.database import Base, UTCDateTime, utcnow
from ledger.money import from_cents


class AccountType(str, enum.Enum):
    """Inherits from str so the value serializes naturally to JSON."""
    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"


class Account(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        # Database-level constraint: balance can never be negative
        CheckConstraint(
            "balance_cents >= 0",
            name="ck_accounts_non_negative_balance",
        ),
        CheckConstraint(
            "account_type IN ('CHECKING', 'SAVINGS')",
            name="ck_accounts_account_type",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
    )

    account_number: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
    )

    account_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=AccountType.CHECKING.value,
    )

    # Balance in cents: the source of truth for quick reads
    balance_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    account_holder: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
    )

    @property
    def balance(self) -> Decimal:
        return from_cents(self.balance_cents)
