"""
Pydantic schemas for transaction posting and listing.

The posting request is deliberately loose: every field is accepted as-is and
checked by the ledger engine's validate_posting(), which runs the checks in
a fixed order and produces the exact error messages clients rely on.
Strict pydantic types here would reject bad input earlier, with different
messages and in a different order.
"""

from datetime import datetime
from typing import Any

from ledger.models.transaction import TransactionType
from ledger.schemas.common import CamelModel, Money


class TransactionCreateRequest(CamelModel):
    """Request body for POST /accounts/{id}/transactions."""
    type: Any = None
    amount: Any = None
    description: Any = None
    to_account_id: str | int | None = None


class TransactionReceiptResponse(CamelModel):
    """Response body for a successful posting."""
    id: int
    account_id: str
    type: TransactionType
    amount: Money
    description: str
    to_account_id: str | None = None
    created_at: datetime
    balance: Money


class TransactionResponse(CamelModel):
    """Public representation of a logged transaction."""
    id: int
    account_id: str
    type: TransactionType
    amount: Money
    description: str
    to_account_id: str | None
    created_at: datetime


class FeedTransactionResponse(TransactionResponse):
    """A transaction in the global feed, with source-account display fields."""
    account_holder: str | None
    account_number: str | None


class TransactionPageResponse(CamelModel):
    items: list[TransactionResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class FeedPageResponse(CamelModel):
    items: list[FeedTransactionResponse]
    total: int
    page: int
    limit: int
    total_pages: int
