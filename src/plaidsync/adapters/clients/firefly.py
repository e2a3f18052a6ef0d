from __future__ import annotations

import datetime as dt
from decimal import Decimal
import json
from typing import TYPE_CHECKING, Any, Literal, Self, cast
import urllib.error
import urllib.request

from pydantic import BaseModel, field_serializer

if TYPE_CHECKING:
    from plaidsync.core.config import FireflySettings

SplitType = Literal["withdrawal", "deposit", "transfer"]


class FireflyClientError(Exception):
    """Base error for Firefly III client failures."""


class TransactionSplit(BaseModel):
    """One split of a Firefly III transaction journal.

    Accounts can be given either by Firefly id or by name; Firefly creates
    expense/revenue accounts on the fly for unknown names.
    """

    type: SplitType
    date: dt.date
    process_date: dt.date | None = None
    description: str
    amount: Decimal
    currency_code: str | None = None
    external_id: str | None = None
    source_id: str | None = None
    source_name: str | None = None
    destination_id: str | None = None
    destination_name: str | None = None
    tags: list[str] | None = None

    @field_serializer("amount")
    def _serialize_amount(self, amount: Decimal) -> str:
        return format(amount, "f")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class StoredTransaction(BaseModel):
    id: str
    type: str = "transactions"


class StoreTransactionResponse(BaseModel):
    data: StoredTransaction

    @classmethod
    def parse(cls, data: Any) -> Self:
        return cls.model_validate(data)


class FireflyClient:
    """Minimal Firefly III REST client covering transaction creation."""

    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        timeout_seconds: float = 30.0,
        error_if_duplicate_hash: bool = False,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout_seconds = timeout_seconds
        self._error_if_duplicate_hash = error_if_duplicate_hash

    @classmethod
    def from_config(cls, settings: FireflySettings) -> FireflyClient:
        return cls(base_url=settings.url, token=settings.token)

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = self._base_url + path
        req = urllib.request.Request(  # noqa: S310
            url,
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Authorization": f"Bearer {self._token}",
                "Content-Type": "application/json",
                "Accept": "application/vnd.api+json",
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(  # noqa: S310 - user-configured host
                req, timeout=self._timeout_seconds
            ) as resp:
                body = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:  # pragma: no cover - network-dependent
            err_body = e.read().decode("utf-8", "ignore")
            raise FireflyClientError(
                f"Firefly API error ({e.code}): {err_body}"
            ) from e
        except urllib.error.URLError as e:  # pragma: no cover - network-dependent
            raise FireflyClientError(f"Network error calling Firefly API: {e}") from e

        try:
            return cast(dict[str, Any], json.loads(body))
        except json.JSONDecodeError as e:
            raise FireflyClientError(
                f"Failed to parse Firefly response as JSON: {e}: {body}"
            ) from e

    def store_transaction(self, splits: list[TransactionSplit]) -> str:
        """Create one transaction journal from the given splits.

        Returns:
            The Firefly id of the stored transaction group.

        Raises:
            FireflyClientError: If the request fails or the response is malformed
        """
        if not splits:
            raise FireflyClientError("Cannot store a transaction without splits")

        payload: dict[str, Any] = {
            "error_if_duplicate_hash": self._error_if_duplicate_hash,
            "transactions": [split.to_payload() for split in splits],
        }
        if len(splits) > 1:
            payload["group_title"] = splits[0].description

        raw = self._post("/api/v1/transactions", payload)
        try:
            return StoreTransactionResponse.parse(raw).data.id
        except ValueError as e:
            raise FireflyClientError(
                f"Unexpected Firefly response: {raw}"
            ) from e

