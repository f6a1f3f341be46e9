"""
Ledger store — the atomic persistence contract the ledger engine posts through.

The engine never touches a session or a connection directly. It asks a
LedgerStore for a unit of work and performs every read and write of one
posting through it:

    async with store.unit_of_work() as uow:
        await uow.lock_accounts(["1", "2"])
        source = await uow.get_account("1")
        await uow.update_balance("1", Decimal("800.00"))
        await uow.insert_transaction(...)
    # clean exit: committed; any exception or cancellation: rolled back

Values crossing this boundary are frozen dataclasses (AccountRecord,
TransactionRecord), never ORM rows, so the engine behaves identically against
the SQLAlchemy store and the in-memory fake used by its unit tests.

SqlAlchemyLedgerStore isolation:
  - PostgreSQL: lock_accounts() issues SELECT ... FOR UPDATE ordered by id,
    so two transfers touching the same pair of accounts lock them in the
    same order and cannot deadlock.
  - SQLite: FOR UPDATE is a no-op, so lock_accounts() starts the transaction
    with BEGIN IMMEDIATE instead. That takes the database write lock up
    front; a second writer waits on the busy timeout rather than reading a
    balance that is about to change.

Any SQLAlchemyError is logged here, with its traceback, and re-raised as
StorageError. Callers only ever see the generic message.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import AsyncIterator, Iterable

from sqlalchemy import select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ledger.exceptions import StorageError
from ledger.models.account import Account
from ledger.models.transaction import Transaction, TransactionType
from ledger.money import from_cents, to_cents

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AccountRecord:
    id: str
    account_number: str
    account_type: str
    balance: Decimal
    account_holder: str
    created_at: datetime


@dataclass(frozen=True)
class TransactionRecord:
    id: int
    account_id: str
    type: TransactionType
    amount: Decimal
    description: str
    to_account_id: str | None
    created_at: datetime


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------

class LedgerUnitOfWork(ABC):
    """Reads and writes of one posting, all inside one storage transaction."""

    @abstractmethod
    async def lock_accounts(self, account_ids: Iterable[str]) -> None:
        """Take storage-level locks on the given accounts, in ascending id order."""

    @abstractmethod
    async def get_account(self, account_id: str) -> AccountRecord | None:
        """Return the account, or None if it does not exist."""

    @abstractmethod
    async def update_balance(self, account_id: str, new_balance: Decimal) -> None:
        """Overwrite the stored balance of an existing account."""

    @abstractmethod
    async def insert_transaction(
        self,
        account_id: str,
        txn_type: TransactionType,
        amount: Decimal,
        description: str,
        to_account_id: str | None,
        created_at: datetime,
    ) -> TransactionRecord:
        """Append a transaction record and return it with its assigned id."""


class LedgerStore(ABC):
    """Factory for units of work. One instance is shared by all requests."""

    @abstractmethod
    def unit_of_work(self):
        """
        Async context manager yielding a LedgerUnitOfWork.

        Commits when the block exits cleanly; rolls back when it raises or
        is cancelled.
        """


# ---------------------------------------------------------------------------
# SQLAlchemy implementation
# ---------------------------------------------------------------------------

@contextmanager
def _storage_errors(operation: str):
    """Log driver/ORM failures and hide them behind StorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Storage failure during %s", operation)
        raise StorageError() from exc


def _account_record(account: Account) -> AccountRecord:
    return AccountRecord(
        id=account.id,
        account_number=account.account_number,
        account_type=account.account_type,
        balance=from_cents(account.balance_cents),
        account_holder=account.account_holder,
        created_at=account.created_at,
    )


def _transaction_record(txn: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=txn.id,
        account_id=txn.account_id,
        type=TransactionType(txn.type),
        amount=from_cents(txn.amount_cents),
        description=txn.description,
        to_account_id=txn.to_account_id,
        created_at=txn.created_at,
    )


class SqlAlchemyUnitOfWork(LedgerUnitOfWork):

    def __init__(self, session: AsyncSession):
        self._session = session

    async def lock_accounts(self, account_ids: Iterable[str]) -> None:
        ordered_ids = sorted(set(account_ids))
        with _storage_errors("lock_accounts"):
            if self._session.bind.dialect.name == "sqlite":
                # Must be the first statement of the transaction
                await self._session.execute(text("BEGIN IMMEDIATE"))
            else:
                await self._session.execute(
                    select(Account.id)
                    .where(Account.id.in_(ordered_ids))
                    .order_by(Account.id)
                    .with_for_update()
                )

    async def get_account(self, account_id: str) -> AccountRecord | None:
        with _storage_errors("get_account"):
            result = await self._session.execute(
                select(Account).where(Account.id == account_id)
            )
            account = result.scalar_one_or_none()
        return _account_record(account) if account is not None else None

    async def update_balance(self, account_id: str, new_balance: Decimal) -> None:
        with _storage_errors("update_balance"):
            result = await self._session.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(balance_cents=to_cents(new_balance))
                .execution_options(synchronize_session=False)
            )
        if result.rowcount != 1:
            logger.error(
                "Balance update matched %s rows", result.rowcount,
                extra={"account_id": account_id},
            )
            raise StorageError()

    async def insert_transaction(
        self,
        account_id: str,
        txn_type: TransactionType,
        amount: Decimal,
        description: str,
        to_account_id: str | None,
        created_at: datetime,
    ) -> TransactionRecord:
        txn = Transaction(
            account_id=account_id,
            type=txn_type.value,
            amount_cents=to_cents(amount),
            description=description,
            to_account_id=to_account_id,
            created_at=created_at,
        )
        with _storage_errors("insert_transaction"):
            self._session.add(txn)
            await self._session.flush()
        return _transaction_record(txn)


class SqlAlchemyLedgerStore(LedgerStore):
    """
    LedgerStore backed by an async_sessionmaker.

    Each unit of work gets its own session, independent of the request's
    read session, so its transaction covers exactly one posting.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[SqlAlchemyUnitOfWork]:
        async with self._session_factory() as session:
            with _storage_errors("commit"):
                async with session.begin():
                    yield SqlAlchemyUnitOfWork(session)
