"""
Ledger engine — validates and posts transactions.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Request validation (type, amount, description, transfer target)
  - Atomic posting of deposits, withdrawals and transfers
  - Balance enforcement (no negative balances)
  - The receipt returned to the caller

Validation before mutation:
  validate_posting() runs before any lock is taken or any storage call is
  made. A request that fails validation never touches the store, and the
  checks always run in the same order, so the same bad request always gets
  the same message.

Atomicity:
  Every balance change and its Transaction record are written inside ONE
  unit of work (see ledger_store.py). Not-found and business-rule errors are
  raised from inside the `async with` block, so the unit rolls back on its
  own — there is no rollback call on any individual branch. Either both
  balance effects and the record exist, or none of them do.

Serialization per account:
  The engine holds the in-process account locks (ascending id order) for the
  whole unit of work, and the unit of work takes storage-level locks on the
  same accounts. Postings to unrelated accounts run concurrently.

Timeouts:
  The whole locked section runs under asyncio.timeout(). If it fires, the
  task is cancelled inside the unit of work, which rolls back; the caller
  gets PostingTimeoutError. A client disconnect cancels the task the same way.

Receipt:
  `created_at` is computed once, written to the record, and read back from the
  record for the receipt, so the receipt and the stored row always agree.
  `balance` is always the new SOURCE balance, whatever the direction.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable

from ledger.database import utcnow
from ledger.exceptions import (
    AccountNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidDescriptionError,
    InvalidTypeError,
    LedgerError,
    MissingTargetError,
    PostingTimeoutError,
    SelfTransferError,
    TargetAccountNotFoundError,
)
from ledger.models.transaction import TransactionType
from ledger.money import CENT
from ledger.services.account_locks import AccountLockRegistry
from ledger.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)

MAX_AMOUNT = Decimal("1000000")
MAX_DESCRIPTION_LENGTH = 200


@dataclass(frozen=True)
class PostingRequest:
    """A proposed transaction exactly as the caller sent it (unvalidated)."""
    type: Any
    amount: Any
    description: Any
    to_account_id: Any = None


@dataclass(frozen=True)
class ValidatedPosting:
    type: TransactionType
    amount: Decimal
    description: str
    to_account_id: str | None


@dataclass(frozen=True)
class TransactionReceipt:
    id: int
    account_id: str
    type: TransactionType
    amount: Decimal
    description: str
    to_account_id: str | None
    created_at: datetime
    balance: Decimal


def validate_posting(request: PostingRequest) -> ValidatedPosting:
    """
    Check a posting request and normalize its fields.

    Order: type, amount, description, transfer target. The first failing
    check raises; later checks are not evaluated.

    Raises:
        InvalidTypeError, InvalidAmountError, InvalidDescriptionError,
        MissingTargetError
    """
    # 1. Type
    if not isinstance(request.type, str) or request.type not in TransactionType.__members__:
        raise InvalidTypeError()
    txn_type = TransactionType(request.type)

    # 2. Amount: JSON numbers only. bool is an int subclass but not an amount
    amount = request.amount
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
        raise InvalidAmountError("Amount must be a positive number")
    amount = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError("Amount must be a positive number")
    if amount > MAX_AMOUNT:
        raise InvalidAmountError("Amount exceeds maximum limit of $1,000,000")
    if amount % CENT != 0:
        raise InvalidAmountError("Amount cannot have more than 2 decimal places")

    # 3. Description
    description = request.description
    if not isinstance(description, str) or not description.strip():
        raise InvalidDescriptionError("Description is required")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidDescriptionError(
            f"Description must be less than {MAX_DESCRIPTION_LENGTH} characters"
        )

    # 4. Transfer target (ignored for deposits and withdrawals)
    to_account_id = None
    if txn_type is TransactionType.TRANSFER:
        if request.to_account_id is None or str(request.to_account_id).strip() == "":
            raise MissingTargetError()
        to_account_id = str(request.to_account_id)

    return ValidatedPosting(
        type=txn_type,
        amount=amount.quantize(CENT),
        description=description.strip(),
        to_account_id=to_account_id,
    )


class LedgerEngine:
    """
    Posts transactions through an injected LedgerStore.

    One engine (and therefore one lock registry) is shared by every request
    handler in the process; see ledger/dependencies.py.
    """

    def __init__(
        self,
        store: LedgerStore,
        locks: AccountLockRegistry | None = None,
        timeout_seconds: float | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._locks = locks if locks is not None else AccountLockRegistry()
        self._timeout_seconds = timeout_seconds
        self._clock = clock

    async def post_transaction(
        self,
        account_id: str,
        request: PostingRequest,
    ) -> TransactionReceipt:
        """
        Validate and atomically post one transaction.

        Args:
            account_id: The source account.
            request: The proposed transaction.

        Returns:
            A TransactionReceipt carrying the new source balance.

        Raises:
            ValidationError subclasses: before any storage access.
            AccountNotFoundError, TargetAccountNotFoundError: nothing written.
            InsufficientFundsError, SelfTransferError: nothing written.
            StorageError (incl. PostingTimeoutError): rolled back.
        """
        try:
            posting = validate_posting(request)
            try:
                async with asyncio.timeout(self._timeout_seconds):
                    receipt = await self._post(account_id, posting)
            except TimeoutError:
                raise PostingTimeoutError("Transaction timed out") from None
        except LedgerError as exc:
            logger.info(
                "Posting rejected: %s",
                exc.detail,
                extra={"account_id": account_id, "error_type": exc.error_type},
            )
            raise

        logger.info(
            "Posted %s of %s",
            receipt.type.value,
            receipt.amount,
            extra={
                "transaction_id": receipt.id,
                "account_id": receipt.account_id,
                "to_account_id": receipt.to_account_id,
            },
        )
        return receipt

    async def _post(self, account_id: str, posting: ValidatedPosting) -> TransactionReceipt:
        lock_ids = [account_id]
        if posting.to_account_id is not None:
            lock_ids.append(posting.to_account_id)

        async with self._locks.hold(lock_ids) as ordered_ids:
            async with self._store.unit_of_work() as uow:
                await uow.lock_accounts(ordered_ids)

                source = await uow.get_account(account_id)
                if source is None:
                    raise AccountNotFoundError(account_id)

                target = None
                if posting.type is TransactionType.TRANSFER:
                    target = await uow.get_account(posting.to_account_id)
                    if target is None:
                        raise TargetAccountNotFoundError(posting.to_account_id)
                    if posting.to_account_id == account_id:
                        raise SelfTransferError(account_id)

                if posting.type is TransactionType.DEPOSIT:
                    new_source_balance = source.balance + posting.amount
                else:
                    new_source_balance = source.balance - posting.amount
                    if new_source_balance < 0:
                        raise InsufficientFundsError(
                            account_id=account_id,
                            requested=posting.amount,
                            available=source.balance,
                        )

                await uow.update_balance(account_id, new_source_balance)
                if target is not None:
                    await uow.update_balance(target.id, target.balance + posting.amount)

                record = await uow.insert_transaction(
                    account_id=account_id,
                    txn_type=posting.type,
                    amount=posting.amount,
                    description=posting.description,
                    to_account_id=posting.to_account_id,
                    created_at=self._clock(),
                )

        # Only reached once the unit of work has committed
        return TransactionReceipt(
            id=record.id,
            account_id=record.account_id,
            type=record.type,
            amount=record.amount,
            description=record.description,
            to_account_id=record.to_account_id,
            created_at=record.created_at,
            balance=new_source_balance,
        )
