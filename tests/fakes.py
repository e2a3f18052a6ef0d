"""Hand-written Plaid and Firefly doubles shared by the sync tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from plaidsync.adapters.clients.firefly import TransactionSplit
from plaidsync.adapters.clients.plaid import (
    AccountsGetResponse,
    AuthGetResponse,
    PlaidClientError,
    PlaidTransaction,
)
from plaidsync.adapters.db.facade import DB
from plaidsync.core.config import SyncTarget


def create_db() -> DB:
    """Create in-memory database instance with the schema applied."""
    db = DB("sqlite:///:memory:")
    db.create_schema()
    return db


def create_transaction(
    *,
    transaction_id: str = "txn_1",
    account_id: str = "acc_checking",
    amount: str | int | Decimal = "10.00",
    date_value: date = date(2025, 1, 10),
    name: str = "Test Transaction",
    category_id: str | None = None,
    category: list[str] | None = None,
    pending: bool = False,
    currency: str | None = "USD",
) -> PlaidTransaction:
    return PlaidTransaction(
        transaction_id=transaction_id,
        account_id=account_id,
        amount=Decimal(str(amount)),
        iso_currency_code=currency,
        date=date_value,
        name=name,
        pending=pending,
        category=category,
        category_id=category_id,
    )


def create_target(
    *,
    plaid_account_id: str = "acc_checking",
    firefly_account_id: str | None = "1",
    access_token: str | None = "access-token",
    account_name: str | None = None,
) -> SyncTarget:
    """A target as it looks after account resolution."""
    return SyncTarget(
        plaid_account_id=plaid_account_id,
        firefly_account_id=firefly_account_id,
        plaid_access_token=access_token,
        account_name=account_name,
    )


class MockPlaidClient:
    """Mock PlaidClient returning canned accounts and transactions."""

    def __init__(
        self,
        *,
        transactions: list[PlaidTransaction] | None = None,
        accounts: dict[str, dict[str, Any]] | None = None,
        auth: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self._transactions = transactions or []
        self._accounts = accounts or {}
        self._auth = auth or {}
        self.list_calls: list[dict[str, Any]] = []

    def get_auth(self, access_token: str) -> AuthGetResponse:
        if access_token not in self._auth:
            raise PlaidClientError("Plaid API error (400): PRODUCTS_NOT_SUPPORTED")
        return AuthGetResponse.parse(self._auth[access_token])

    def get_accounts(self, access_token: str) -> AccountsGetResponse:
        if access_token not in self._accounts:
            raise PlaidClientError("Plaid API error (400): INVALID_ACCESS_TOKEN")
        return AccountsGetResponse.parse(self._accounts[access_token])

    def list_transactions(
        self,
        access_token: str,
        *,
        start_date: date,
        end_date: date,
        account_ids: list[str] | None = None,
    ) -> list[PlaidTransaction]:
        self.list_calls.append(
            {
                "access_token": access_token,
                "start_date": start_date,
                "end_date": end_date,
                "account_ids": account_ids,
            }
        )
        return [
            txn
            for txn in self._transactions
            if account_ids is None or txn.account_id in account_ids
        ]


class MockFireflyClient:
    """Mock FireflyClient recording every stored split."""

    def __init__(self, *, fail_on_call: int | None = None) -> None:
        self._fail_on_call = fail_on_call
        self.stored: list[list[TransactionSplit]] = []

    def store_transaction(self, splits: list[TransactionSplit]) -> str:
        if self._fail_on_call is not None and len(self.stored) == self._fail_on_call:
            raise RuntimeError("Firefly unavailable")
        self.stored.append(splits)
        return str(len(self.stored))
