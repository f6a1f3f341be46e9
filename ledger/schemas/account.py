"""
Pydantic schemas for Account endpoints.

These schemas define the API contract for account retrieval and balance
checking. Accounts are read-only over the API.
"""

from datetime import datetime

from ledger.schemas.common import CamelModel, Money


class AccountResponse(CamelModel):
    """Public representation of a bank account."""
    id: str
    account_number: str
    account_type: str
    balance: Money
    account_holder: str
    created_at: datetime


class BalanceResponse(CamelModel):
    """
    Balance check response — stored and recomputed values.

    The `match` field indicates whether the stored balance agrees with
    the balance computed by summing the transaction log. A mismatch would
    indicate a data integrity issue.
    """
    account_id: str
    balance: Money
    computed_balance: Money
    match: bool
