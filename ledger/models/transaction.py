"""
Transaction model — the append-only log of every posting.

Every movement of money creates exactly one Transaction record:

  - DEPOSIT:    money into `account_id`
  - WITHDRAWAL: money out of `account_id`
  - TRANSFER:   money out of `account_id` and into `to_account_id`

Key fields:
  - id: Autoincrement integer, so ids are monotonic in commit order
  - type: Determines the polarity of the balance update
  - amount_cents: Always positive (the direction is implied by the type)
  - to_account_id: Set if and only if type is TRANSFER
  - created_at: Assigned once by the engine and returned in the receipt;
    indexed because every listing orders by it

Why amount_cents is always positive:
  Storing a positive amount with a separate type field is clearer than using
  signed integers. You never wonder "does negative mean deposit or
  withdrawal?" — the type field makes the direction explicit.

Rows are never updated or deleted after insert.
"""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Integer, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger.database import Base, UTCDateTime, utcnow
from ledger.money import from_cents


class TransactionType(str, enum.Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER = "TRANSFER"


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        # Amount must always be positive; direction is indicated by type
        CheckConstraint("amount_cents > 0", name="ck_transactions_positive_amount"),
        CheckConstraint(
            "type IN ('DEPOSIT', 'WITHDRAWAL', 'TRANSFER')",
            name="ck_transactions_type",
        ),
        # A destination exists exactly for transfers
        CheckConstraint(
            "(type = 'TRANSFER') = (to_account_id IS NOT NULL)",
            name="ck_transactions_transfer_target",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Source account, always present
    account_id: Mapped[str] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    # Destination account (transfers only)
    to_account_id: Mapped[str | None] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=True,
        index=True,
    )

    type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )

    # Amount in cents, always positive
    amount_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
        index=True,
    )

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)
