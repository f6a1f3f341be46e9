"""
User model — the authenticated identity of an API caller.

Users exist only so the API boundary can tell who is calling. They do not own
accounts: once authenticated, a caller can read and post against any account,
the same way a teller terminal would.

The password is stored as an Argon2id hash — never in plaintext. Argon2id
is the recommended password hashing algorithm (winner of the Password
Hashing Competition 2015) because it is resistant to both GPU-based
brute-force and side-channel attacks.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from ledger.database import Base, UTCDateTime, utcnow


class User(Base):
    __tablename__ = "users"

    # Primary key: UUID provides globally unique IDs without sequential guessing
    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Email is the login identifier; must be unique and indexed for fast lookups
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # Argon2id hash of the password (never store plaintext!)
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Soft-disable: deactivated users can't log in but their data is preserved
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
    )
