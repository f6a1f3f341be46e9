"""
Tests for POST /accounts/{id}/transactions over HTTP.

These tests verify:
  - Deposits, withdrawals and transfers return 201 with a camelCase receipt
  - The receipt's balance is the new SOURCE balance
  - Validation failures return 400 with the exact message and no writes
  - Unknown source/target accounts return 404 and change nothing
  - Insufficient funds returns 400 with requested/available amounts
  - A storage failure mid-posting returns a generic 500 and rolls back
  - The stored balance always matches the sum of the log
  - Every endpoint requires a bearer token
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from ledger.exceptions import StorageError
from ledger.models.account import AccountType


@pytest.fixture
async def accounts(make_account):
    """Account 1 (John Doe) at 1000.00 and account 2 (Jane Smith) at 500.00."""
    await make_account("1", 1000, "John Doe", AccountType.CHECKING, "1001")
    await make_account("2", 500, "Jane Smith", AccountType.SAVINGS, "1002")


async def get_balance(client, account_id):
    response = await client.get(f"/accounts/{account_id}/balance")
    assert response.status_code == 200
    return response.json()


async def transaction_count(client, account_id):
    response = await client.get(f"/accounts/{account_id}/transactions")
    return response.json()["total"]


# ---------------------------------------------------------------------------
# Successful postings
# ---------------------------------------------------------------------------

class TestPostTransaction:
    """Tests for successful postings."""

    async def test_deposit(self, authenticated_client, accounts):
        response = await authenticated_client.post(
            "/accounts/1/transactions",
            json={"type": "DEPOSIT", "amount": 100, "description": "Cash deposit"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["accountId"] == "1"
        assert data["type"] == "DEPOSIT"
        assert data["amount"] == 100.0
        assert data["description"] == "Cash deposit"
        assert data["balance"] == 1100.0
        assert "toAccountId" not in data
        assert isinstance(data["id"], int)
        assert data["createdAt"]

        balance = await get_balance(authenticated_client, "1")
        assert balance["balance"] == 1100.0
        assert balance["match"] is True

    async def test_withdrawal(self, authenticated_client, accounts):
        response = await authenticated_client.post(
            "/accounts/1/transactions",
            json={"type": "WITHDRAWAL", "amount": 99.99, "description": "ATM"},
        )
        assert response.status_code == 201
        assert response.json()["balance"] == 900.01

    async def test_transfer(self, authenticated_client, accounts):
        """1 at 1000, 2 at 500, transfer 200: receipt 800, account 2 at 700."""
        response = await authenticated_client.post(
            "/accounts/1/transactions",
            json={
                "type": "TRANSFER",
                "amount": 200,
                "description": "Rent share",
                "toAccountId": "2",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["balance"] == 800.0
        assert data["toAccountId"] == "2"

        source = await get_balance(authenticated_client, "1")
        target = await get_balance(authenticated_client, "2")
        assert source["balance"] == 800.0
        assert target["balance"] == 700.0
        assert source["match"] and target["match"]

    async def test_numeric_target_id_accepted(self, authenticated_client, accounts):
        response = await authenticated_client.post(
            "/accounts/2/transactions",
            json={"type": "TRANSFER", "amount": 1, "description": "x", "toAccountId": 1},
        )
        assert response.status_code == 201
        assert response.json()["toAccountId"] == "1"

    async def test_transfer_appears_in_both_histories(self, authenticated_client, accounts):
        await authenticated_client.post(
            "/accounts/1/transactions",
            json={"type": "TRANSFER", "amount": 5, "description": "x", "toAccountId": "2"},
        )
        source = await authenticated_client.get("/accounts/1/transactions")
        target = await authenticated_client.get("/accounts/2/transactions")
        assert source.json()["items"][0]["type"] == "TRANSFER"
        assert target.json()["items"][0]["type"] == "TRANSFER"
        assert source.json()["items"][0]["id"] == target.json()["items"][0]["id"]

    async def test_description_is_trimmed(self, authenticated_client, accounts):
        response = await authenticated_client.post(
            "/accounts/1/transactions",
            json={"type": "DEPOSIT", "amount": 1, "description": "  Coffee refund  "},
        )
        assert response.json()["description"] == "Coffee refund"

    async def test_receipt_matches_listed_row(self, authenticated_client, accounts):
        response = await authenticated_client.post(
            "/accounts/1/transactions",
            json={"type": "DEPOSIT", "amount": 1, "description": "x"},
        )
        receipt = response.json()
        listed = (await authenticated_client.get("/accounts/1/transactions")).json()["items"][0]
        assert listed["id"] == receipt["id"]
        assert listed["createdAt"] == receipt["createdAt"]

    async def test_repeated_small_amounts_are_exact(self, authenticated_client, accounts):
        """Ten deposits of 0.10 add exactly 1.00; no float drift."""
        for _ in range(10):
            await authenticated_client.post(
                "/accounts/2/transactions",
                json={"type": "DEPOSIT", "amount": 0.1, "description": "Dime"},
            )
        balance = await get_balance(authenticated_client, "2")
        assert balance["balance"] == 501.0
        assert balance["match"] is True


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------

class TestPostTransactionValidation:
    """Validation errors: 400, exact message, nothing written."""

    @pytest.mark.parametrize(
        "body,message",
        [
            (
                {"type": "REFUND", "amount": 10, "description": "x"},
                "Invalid transaction type. Must be 'DEPOSIT', 'WITHDRAWAL', or 'TRANSFER'",
            ),
            ({"amount": 10, "description": "x"},
             "Invalid transaction type. Must be 'DEPOSIT', 'WITHDRAWAL', or 'TRANSFER'"),
            ({"type": "DEPOSIT", "amount": 0, "description": "x"},
             "Amount must be a positive number"),
            ({"type": "DEPOSIT", "amount": -100, "description": "x"},
             "Amount must be a positive number"),
            ({"type": "DEPOSIT", "amount": "100", "description": "x"},
             "Amount must be a positive number"),
            ({"type": "DEPOSIT", "amount": 1000001, "description": "x"},
             "Amount exceeds maximum limit of $1,000,000"),
            ({"type": "DEPOSIT", "amount": 1.234, "description": "x"},
             "Amount cannot have more than 2 decimal places"),
            ({"type": "DEPOSIT", "amount": 10, "description": "   "},
             "Description is required"),
            ({"type": "DEPOSIT", "amount": 10, "description": "x" * 201},
             "Description must be less than 200 characters"),
            ({"type": "TRANSFER", "amount": 10, "description": "x"},
             "Target account ID is required for transfers"),
        ],
    )
    async def test_rejected_with_message(self, authenticated_client, accounts, body, message):
        response = await authenticated_client.post("/accounts/1/transactions", json=body)
        assert response.status_code == 400
        assert response.json()["error"] == message

        balance = await get_balance(authenticated_client, "1")
        assert balance["balance"] == 1000.0
        assert await transaction_count(authenticated_client, "1") == 1

    async def test_validation_runs_before_account_lookup(self, authenticated_client, accounts):
        """A bad request against a missing account is a 400, not a 404."""
        response = await authenticated_client.post(
            "/accounts/999/transactions",
            json={"type": "DEPOSIT", "amount": 0, "description": "x"},
        )
        assert response.status_code == 400

    async def test_body_not_an_object(self, authenticated_client, accounts):
        response = await authenticated_client.post("/accounts/1/transactions", json=[1, 2])
        assert response.status_code == 400
        data = response.json()
        assert data["errorType"] == "validation_error"
        assert data["errors"]


class TestPostTransactionRejection:
    """Rejections discovered after loading accounts."""

    async def test_unknown_account(self, authenticated_client, accounts):
        response = await authenticated_client.post(
            "/accounts/999/transactions",
            json={"type": "DEPOSIT", "amount": 10, "description": "x"},
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Account not found"

    async def test_unknown_target(self, authenticated_client, accounts):
        response = await authenticated_client.post(
            "/accounts/1/transactions",
            json={"type": "TRANSFER", "amount": 10, "description": "x", "toAccountId": "999"},
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Target account not found"
        assert (await get_balance(authenticated_client, "1"))["balance"] == 1000.0

    async def test_insufficient_funds(self, authenticated_client, accounts):
        """Account 1 at 1000, withdraw 2000: rejected, balance stays 1000."""
        response = await authenticated_client.post(
            "/accounts/1/transactions",
            json={"type": "WITHDRAWAL", "amount": 2000, "description": "x"},
        )
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Insufficient funds"
        assert data["errorType"] == "insufficient_funds"
        assert data["requested"] == 2000.0
        assert data["available"] == 1000.0

        assert (await get_balance(authenticated_client, "1"))["balance"] == 1000.0
        assert await transaction_count(authenticated_client, "1") == 1

    async def test_self_transfer(self, authenticated_client, accounts):
        response = await authenticated_client.post(
            "/accounts/1/transactions",
            json={"type": "TRANSFER", "amount": 10, "description": "x", "toAccountId": "1"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot transfer to the same account"
        assert (await get_balance(authenticated_client, "1"))["balance"] == 1000.0
        assert await transaction_count(authenticated_client, "1") == 1


# ---------------------------------------------------------------------------
# Atomicity and concurrency
# ---------------------------------------------------------------------------

class TestAtomicity:

    async def test_failed_insert_rolls_back_balances(self, authenticated_client, accounts):
        """
        Both balance updates run, then the log insert fails. Neither balance
        change may survive.
        """
        with patch(
            "ledger.services.ledger_store.SqlAlchemyUnitOfWork.insert_transaction",
            new=AsyncMock(side_effect=StorageError()),
        ):
            response = await authenticated_client.post(
                "/accounts/1/transactions",
                json={"type": "TRANSFER", "amount": 200, "description": "x", "toAccountId": "2"},
            )

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to create transaction",
            "errorType": "storage_error",
        }

        source = await get_balance(authenticated_client, "1")
        target = await get_balance(authenticated_client, "2")
        assert source["balance"] == 1000.0
        assert target["balance"] == 500.0
        assert source["match"] and target["match"]
        assert await transaction_count(authenticated_client, "1") == 1

    async def test_ledger_usable_after_failure(self, authenticated_client, accounts):
        with patch(
            "ledger.services.ledger_store.SqlAlchemyUnitOfWork.insert_transaction",
            new=AsyncMock(side_effect=StorageError()),
        ):
            await authenticated_client.post(
                "/accounts/1/transactions",
                json={"type": "DEPOSIT", "amount": 1, "description": "x"},
            )

        response = await authenticated_client.post(
            "/accounts/1/transactions",
            json={"type": "DEPOSIT", "amount": 1, "description": "x"},
        )
        assert response.status_code == 201
        assert response.json()["balance"] == 1001.0

    async def test_concurrent_withdrawals(self, authenticated_client, accounts):
        """Five concurrent 200 withdrawals against 500: two succeed."""
        responses = await asyncio.gather(
            *(
                authenticated_client.post(
                    "/accounts/2/transactions",
                    json={"type": "WITHDRAWAL", "amount": 200, "description": "x"},
                )
                for _ in range(5)
            )
        )
        codes = sorted(r.status_code for r in responses)
        assert codes == [201, 201, 400, 400, 400]

        balance = await get_balance(authenticated_client, "2")
        assert balance["balance"] == 100.0
        assert balance["match"] is True


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class TestTransactionAuth:

    async def test_post_requires_token(self, client, accounts):
        response = await client.post(
            "/accounts/1/transactions",
            json={"type": "DEPOSIT", "amount": 1, "description": "x"},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Access token required"

    async def test_invalid_token(self, client, accounts):
        response = await client.get(
            "/accounts/1/transactions",
            headers={"Authorization": "Bearer not-a-real-token"},
        )
        assert response.status_code == 403
        assert response.json()["error"] == "Invalid or expired token"
