from __future__ import annotations

import datetime as dt
from decimal import Decimal
import json
from typing import TYPE_CHECKING, Any, Literal, Self, cast
import urllib.error
import urllib.request

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from plaidsync.core.config import PlaidSettings

PlaidEnv = Literal["sandbox", "development", "production"]


class PlaidClientError(Exception):
    """Base error for Plaid client failures."""


PLAID_ENV_MAP: dict[PlaidEnv, str] = {
    "sandbox": "https://sandbox.plaid.com",
    "development": "https://development.plaid.com",
    "production": "https://production.plaid.com",
}


class PlaidBaseModel(BaseModel):
    """Shared base for Plaid response models with a short parse alias."""

    @classmethod
    def parse(cls, data: Any) -> Self:
        return cls.model_validate(data)


class PlaidAccount(PlaidBaseModel):
    account_id: str
    name: str
    official_name: str | None = None
    mask: str | None = None
    subtype: str | None = None
    type: str | None = None


class PlaidItem(PlaidBaseModel):
    item_id: str
    institution_id: str | None = None


class AchNumber(PlaidBaseModel):
    account_id: str
    account: str
    routing: str | None = None


class AuthNumbers(PlaidBaseModel):
    ach: list[AchNumber] = Field(default_factory=list)


class AccountsGetResponse(PlaidBaseModel):
    accounts: list[PlaidAccount]
    item: PlaidItem


class AuthGetResponse(AccountsGetResponse):
    numbers: AuthNumbers = Field(default_factory=AuthNumbers)

    def account_number(self, account_id: str) -> str | None:
        """Return the full ACH account number for an account, if Plaid sent one."""
        for ach in self.numbers.ach:
            if ach.account_id == account_id:
                return ach.account
        return None


class PlaidTransaction(PlaidBaseModel):
    """A single transaction as returned by /transactions/get.

    Plaid signs amounts from the account's point of view: positive values move
    money out of the account, negative values move money in.
    """

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    account_id: str
    amount: Decimal
    iso_currency_code: str | None = None
    date: dt.date
    name: str
    merchant_name: str | None = None
    pending: bool = False
    category: list[str] | None = None
    category_id: str | None = None


class TransactionsGetResponse(PlaidBaseModel):
    transactions: list[PlaidTransaction] = Field(default_factory=list)
    total_transactions: int = 0


class PlaidClient:
    def __init__(
        self,
        *,
        client_id: str,
        secret: str,
        env: PlaidEnv = "sandbox",
        timeout_seconds: float = 30.0,
    ) -> None:
        self._client_id = client_id
        self._secret = secret
        self._env = env
        self._timeout_seconds = timeout_seconds

    @property
    def env(self) -> PlaidEnv:
        return self._env

    @classmethod
    def from_config(cls, settings: PlaidSettings) -> PlaidClient:
        return cls(
            client_id=settings.client_id,
            secret=settings.secret,
            env=settings.environment,
        )

    def _base_url(self) -> str:
        try:
            return PLAID_ENV_MAP[self._env]
        except KeyError as e:
            raise PlaidClientError(
                f"Unsupported Plaid environment: {self._env!r}"
            ) from e

    def _parse_json_response(self, body: str) -> dict[str, Any]:
        """Parse JSON response from Plaid API.

        Args:
            body: JSON response body as string

        Returns:
            Parsed JSON as dictionary

        Raises:
            PlaidClientError: If JSON parsing fails
        """
        try:
            return cast(dict[str, Any], json.loads(body))
        except json.JSONDecodeError as e:
            raise PlaidClientError(
                f"Failed to parse Plaid response as JSON: {e}: {body}"
            ) from e

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = self._base_url().rstrip("/") + path
        body_payload = {
            "client_id": self._client_id,
            "secret": self._secret,
            **payload,
        }
        data = json.dumps(body_payload).encode("utf-8")
        req = urllib.request.Request(  # noqa: S310
            url,
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        try:
            with urllib.request.urlopen(  # noqa: S310 - external HTTPS
                req, timeout=self._timeout_seconds
            ) as resp:
                body = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:  # pragma: no cover - network-dependent
            err_body = e.read().decode("utf-8", "ignore")
            raise PlaidClientError(f"Plaid API error ({e.code}): {err_body}") from e
        except urllib.error.URLError as e:  # pragma: no cover - network-dependent
            raise PlaidClientError(f"Network error calling Plaid API: {e}") from e

        return self._parse_json_response(body)

    # High-level APIs -----------------------------------------------------

    def get_accounts(self, access_token: str) -> AccountsGetResponse:
        """Return accounts and item info using Plaid's /accounts/get endpoint."""
        return AccountsGetResponse.parse(
            self._post("/accounts/get", {"access_token": access_token})
        )

    def get_auth(self, access_token: str) -> AuthGetResponse:
        """Return accounts with full ACH numbers using Plaid's /auth/get endpoint.

        Only items linked with the auth product support this call; callers
        should fall back to get_accounts() on PlaidClientError.
        """
        return AuthGetResponse.parse(
            self._post("/auth/get", {"access_token": access_token})
        )

    def list_transactions(
        self,
        access_token: str,
        *,
        start_date: dt.date,
        end_date: dt.date,
        account_ids: list[str] | None = None,
        page_size: int = 500,
    ) -> list[PlaidTransaction]:
        """Return every transaction in the date range, paging through /transactions/get.

        The date range is inclusive on both ends.
        """
        collected: list[PlaidTransaction] = []
        while True:
            options: dict[str, Any] = {
                "count": page_size,
                "offset": len(collected),
            }
            if account_ids:
                options["account_ids"] = account_ids

            payload: dict[str, Any] = {
                "access_token": access_token,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "options": options,
            }
            resp = TransactionsGetResponse.parse(
                self._post("/transactions/get", payload)
            )
            collected.extend(resp.transactions)

            if not resp.transactions or len(collected) >= resp.total_transactions:
                return collected
