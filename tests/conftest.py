"""
Test fixtures for the Ledger API test suite.

This module provides shared fixtures used across all test files:

  - db_engine / session_factory / db_session: Fresh SQLite database per test
  - ledger_engine: LedgerEngine posting through SqlAlchemyLedgerStore
  - client: Async HTTP test client (unauthenticated)
  - authenticated_client: Test client with a registered user and JWT
  - make_account: Factory creating an account funded by a posted deposit
  - memory_store / memory_engine: LedgerEngine over an in-memory store fake

Key design decisions:
  - Each test gets its own SQLite FILE under tmp_path rather than an
    in-memory database. Postings open their own session next to the
    request's read session, and only a file database gives each session its
    own connection (and therefore real transaction isolation).
  - We override FastAPI's get_db and get_ledger_engine dependencies to
    inject the test database, so the application code works exactly as it
    does in production.
  - The authenticated_client fixture registers a user via the real
    endpoint, so it exercises the real auth flow.
"""

import asyncio
import os
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable

# Settings are read at import time; these must be set before importing ledger.*
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("SEED_SAMPLE_DATA", "false")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from ledger.database import Base, get_db, utcnow
from ledger.dependencies import get_ledger_engine
from ledger.exceptions import StorageError
from ledger.main import app
from ledger.models.account import AccountType
from ledger.models.transaction import TransactionType
from ledger.services import account_service
from ledger.services.ledger_engine import LedgerEngine, PostingRequest
from ledger.services.ledger_store import (
    AccountRecord,
    LedgerStore,
    LedgerUnitOfWork,
    SqlAlchemyLedgerStore,
    TransactionRecord,
)


# ---------------------------------------------------------------------------
# SQLite-backed fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger-test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def ledger_engine(session_factory):
    return LedgerEngine(SqlAlchemyLedgerStore(session_factory), timeout_seconds=5)


@pytest_asyncio.fixture
async def client(session_factory, ledger_engine):
    """
    Async HTTP test client with the test database injected.

    Overrides get_db (read sessions) and get_ledger_engine (postings) so
    all requests hit the per-test database.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ledger_engine] = lambda: ledger_engine

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def authenticated_client(client):
    """
    Test client with a registered user and JWT token.

    Registers a user via the real endpoint, then sets the Authorization
    header on the client for all subsequent requests.
    """
    response = await client.post(
        "/auth/register",
        json={
            "email": "teller@example.com",
            "password": "SecurePass123!",
            "name": "Test Teller",
        },
    )
    assert response.status_code == 201, f"Register failed: {response.text}"
    token = response.json()["token"]
    client.headers["Authorization"] = f"Bearer {token}"
    return client


@pytest.fixture
def make_account(session_factory, ledger_engine):
    """
    Factory: create an account and fund it with a posted opening deposit.

    Funding through the engine keeps the stored balance equal to the sum
    of the log, so balance integrity checks hold in every test.
    """

    async def _make(
        account_id: str,
        balance: Decimal | int | str = 0,
        account_holder: str = "Test Holder",
        account_type: AccountType = AccountType.CHECKING,
        account_number: str | None = None,
    ):
        async with session_factory() as session:
            account = await account_service.create_account(
                session,
                account_holder=account_holder,
                account_type=account_type,
                account_number=account_number,
                account_id=account_id,
            )
            await session.commit()

        if Decimal(balance) > 0:
            await ledger_engine.post_transaction(
                account_id,
                PostingRequest(
                    type="DEPOSIT",
                    amount=Decimal(balance),
                    description="Opening deposit",
                ),
            )
        return account

    return _make


# ---------------------------------------------------------------------------
# In-memory store fake
# ---------------------------------------------------------------------------

class InMemoryUnitOfWork(LedgerUnitOfWork):
    """Stages writes; the owning store applies them only on commit."""

    def __init__(self, store: "InMemoryLedgerStore"):
        self._store = store
        self.staged_accounts: dict[str, AccountRecord] = {}
        self.staged_transactions: list[TransactionRecord] = []

    async def _checkpoint(self, operation: str) -> None:
        # Yield to the event loop so concurrent postings really interleave
        await asyncio.sleep(self._store.delay)
        if self._store.fail_on == operation:
            raise StorageError()

    async def lock_accounts(self, account_ids: Iterable[str]) -> None:
        self._store.lock_calls.append(list(account_ids))
        await self._checkpoint("lock_accounts")

    async def get_account(self, account_id: str) -> AccountRecord | None:
        await self._checkpoint("get_account")
        if account_id in self.staged_accounts:
            return self.staged_accounts[account_id]
        return self._store.accounts.get(account_id)

    async def update_balance(self, account_id: str, new_balance: Decimal) -> None:
        self._store.write_calls += 1
        await self._checkpoint("update_balance")
        current = await self.get_account(account_id)
        self.staged_accounts[account_id] = replace(current, balance=new_balance)

    async def insert_transaction(
        self,
        account_id: str,
        txn_type: TransactionType,
        amount: Decimal,
        description: str,
        to_account_id: str | None,
        created_at: datetime,
    ) -> TransactionRecord:
        self._store.write_calls += 1
        await self._checkpoint("insert_transaction")
        record = TransactionRecord(
            id=self._store.next_transaction_id(),
            account_id=account_id,
            type=txn_type,
            amount=amount,
            description=description,
            to_account_id=to_account_id,
            created_at=created_at,
        )
        self.staged_transactions.append(record)
        return record


class InMemoryLedgerStore(LedgerStore):
    """
    LedgerStore fake for engine unit tests.

    Counts units of work, write calls, commits and rollbacks; can be told
    to fail a given operation (fail_on) or to stall at every step (delay).
    """

    def __init__(self):
        self.accounts: dict[str, AccountRecord] = {}
        self.transactions: list[TransactionRecord] = []
        self.units_opened = 0
        self.write_calls = 0
        self.commits = 0
        self.rollbacks = 0
        self.lock_calls: list[list[str]] = []
        self.fail_on: str | None = None
        self.delay: float = 0
        self._last_id = 0

    def add_account(self, account_id: str, balance, account_holder: str = "Test Holder"):
        self.accounts[account_id] = AccountRecord(
            id=account_id,
            account_number=f"100{account_id}",
            account_type=AccountType.CHECKING.value,
            balance=Decimal(balance),
            account_holder=account_holder,
            created_at=utcnow(),
        )

    def balance(self, account_id: str) -> Decimal:
        return self.accounts[account_id].balance

    def next_transaction_id(self) -> int:
        self._last_id += 1
        return self._last_id

    @asynccontextmanager
    async def unit_of_work(self):
        self.units_opened += 1
        uow = InMemoryUnitOfWork(self)
        try:
            yield uow
        except BaseException:
            self.rollbacks += 1
            raise
        self.accounts.update(uow.staged_accounts)
        self.transactions.extend(uow.staged_transactions)
        self.commits += 1


@pytest.fixture
def memory_store():
    store = InMemoryLedgerStore()
    store.add_account("1", 1000, account_holder="John Doe")
    store.add_account("2", 500, account_holder="Jane Smith")
    return store


@pytest.fixture
def memory_engine(memory_store):
    return LedgerEngine(memory_store, timeout_seconds=5)
