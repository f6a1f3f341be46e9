#!/usr/bin/env python3
"""
Demo traffic script: posts realistic transactions against a running API.

!! NOT FOR PRODUCTION !!
The server seeds two sample accounts and a demo user on first start
(SEED_SAMPLE_DATA=true). This script logs in as that user and posts a mix of
deposits, withdrawals and transfers, some of which are expected to be
rejected, then prints every account's stored vs. recomputed balance.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # More traffic, fired concurrently to exercise per-account locking:
    python demo/seed.py --count 200 --concurrency 20

    # Reset the database (restart the server to re-seed):
    python demo/seed.py --reset

Login credentials:
    admin@demo.com / Admin123
"""

import argparse
import asyncio
import os
import random
import sys

import httpx

DEMO_LOGIN = {"email": "admin@demo.com", "password": "Admin123"}

DEPOSIT_DESCRIPTIONS = [
    "Payroll deposit", "Freelance payment", "Refund", "Cash deposit",
]

WITHDRAWAL_DESCRIPTIONS = [
    "Coffee shop", "Grocery store", "Gas station", "Online subscription",
    "Restaurant", "Utility bill", "Phone bill", "Parking", "Pharmacy",
    "ATM withdrawal",
]


def log(msg: str) -> None:
    print(f"  {msg}")


def dollars(amount: float) -> str:
    return f"${amount:,.2f}"


async def login(client: httpx.AsyncClient) -> str:
    resp = await client.post("/auth/login", json=DEMO_LOGIN)
    resp.raise_for_status()
    return resp.json()["token"]


def random_posting(account_ids: list[str]) -> tuple[str, dict]:
    """Pick a source account and a random request body for it."""
    source = random.choice(account_ids)
    roll = random.random()

    if roll < 0.4:
        return source, {
            "type": "DEPOSIT",
            "amount": round(random.uniform(50, 2500), 2),
            "description": random.choice(DEPOSIT_DESCRIPTIONS),
        }
    if roll < 0.8 or len(account_ids) < 2:
        return source, {
            "type": "WITHDRAWAL",
            "amount": round(random.uniform(3, 400), 2),
            "description": random.choice(WITHDRAWAL_DESCRIPTIONS),
        }
    target = random.choice([a for a in account_ids if a != source])
    return source, {
        "type": "TRANSFER",
        "amount": round(random.uniform(25, 800), 2),
        "description": "Transfer between accounts",
        "toAccountId": target,
    }


async def post(client: httpx.AsyncClient, account_id: str, body: dict) -> httpx.Response:
    return await client.post(f"/accounts/{account_id}/transactions", json=body)


async def run(base_url: str, count: int, concurrency: int) -> None:
    print("\n========================================")
    print("  DEMO TRAFFIC — NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        try:
            health = await client.get("/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {base_url}")
            print("  Start the server first: uvicorn ledger.main:app --reload\n")
            sys.exit(1)

        token = await login(client)
        client.headers["Authorization"] = f"Bearer {token}"
        log(f"Logged in as {DEMO_LOGIN['email']}")

        accounts = (await client.get("/accounts")).json()
        account_ids = [a["id"] for a in accounts]
        if not account_ids:
            print("  ERROR: No accounts. Start the server with SEED_SAMPLE_DATA=true\n")
            sys.exit(1)
        for account in accounts:
            log(f"{account['accountNumber']} {account['accountHolder']}: {dollars(account['balance'])}")

        print(f"\nPosting {count} transactions ({concurrency} at a time)...")
        semaphore = asyncio.Semaphore(concurrency)
        outcomes: dict[str, int] = {}

        async def one() -> None:
            source, body = random_posting(account_ids)
            async with semaphore:
                resp = await post(client, source, body)
            key = "posted" if resp.status_code == 201 else resp.json().get("errorType", "error")
            outcomes[key] = outcomes.get(key, 0) + 1

        await asyncio.gather(*(one() for _ in range(count)))
        for key, n in sorted(outcomes.items()):
            log(f"{key}: {n}")

        print("\nBalance check:")
        for account_id in account_ids:
            balance = (await client.get(f"/accounts/{account_id}/balance")).json()
            status = "OK" if balance["match"] else "MISMATCH"
            log(
                f"{account_id}: stored {dollars(balance['balance'])}, "
                f"computed {dollars(balance['computedBalance'])} [{status}]"
            )
    print()


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "ledger.db")
    db_path = os.path.normpath(db_path)

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate and re-seed the tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo traffic script — NOT FOR PRODUCTION",
        epilog="Posts random transactions against the sample accounts.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    parser.add_argument("--count", type=int, default=50, help="Transactions to post")
    parser.add_argument(
        "--concurrency", type=int, default=5,
        help="Maximum requests in flight at once",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the database file and exit (restart server to recreate)",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    await run(args.base_url, args.count, args.concurrency)


if __name__ == "__main__":
    asyncio.run(main())
