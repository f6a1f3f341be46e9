"""
Per-account mutual exclusion for postings inside one process.

Two postings against the same account must never both read the same
pre-update balance. The storage layer guards against that across processes
(row locks / BEGIN IMMEDIATE, see ledger_store.py); this registry does it
cheaply inside the event loop, so same-account postings queue up on an
asyncio.Lock instead of contending at the database.

Deadlock prevention:
  A transfer needs two locks. They are always acquired in ascending id
  order, so transfer A->B and transfer B->A both take min(A, B) first and
  can never each hold the lock the other is waiting for.

Locks are created on first use and dropped once nobody holds or waits for
them, so the registry does not grow with the number of accounts ever posted to.
"""

import asyncio
from collections import Counter
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable


class AccountLockRegistry:

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: Counter[str] = Counter()

    def __len__(self) -> int:
        return len(self._locks)

    def is_locked(self, account_id: str) -> bool:
        lock = self._locks.get(account_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, account_ids: Iterable[str]) -> AsyncIterator[list[str]]:
        """
        Hold the locks of all given accounts for the duration of the block.

        Duplicate ids collapse to one lock (a self-transfer takes a single
        lock). Yields the ids in the order they were locked.
        """
        ordered_ids = sorted(set(account_ids))
        registered: list[str] = []
        acquired: list[asyncio.Lock] = []
        try:
            for account_id in ordered_ids:
                lock = self._locks.setdefault(account_id, asyncio.Lock())
                self._users[account_id] += 1
                registered.append(account_id)
                await lock.acquire()
                acquired.append(lock)
            yield ordered_ids
        finally:
            for lock in reversed(acquired):
                lock.release()
            for account_id in registered:
                self._users[account_id] -= 1
                if self._users[account_id] == 0:
                    del self._users[account_id]
                    del self._locks[account_id]
