from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta

from plaidsync.adapters.db.facade import DB
from plaidsync.sync.errors import StaleWatermarkError


class WatermarkStore:
    """Per-account cursor marking how far Plaid has been read."""

    def __init__(self, db: DB) -> None:
        self._db = db

    def get(self, plaid_account_id: str) -> datetime | None:
        return self._db.get_last_poll(plaid_account_id)

    def set(self, plaid_account_id: str, polled_at: datetime) -> None:
        self._db.save_last_polls({plaid_account_id: polled_at})

    def set_many(self, polls: Mapping[str, datetime]) -> None:
        """Commit several cursors together."""
        self._db.save_last_polls(polls)


def resolve_start(
    last_poll: datetime | None,
    *,
    now: datetime,
    max_sync_days: int,
    force_sync: bool = False,
) -> datetime:
    """Pick the fetch start for an account.

    Raises:
        StaleWatermarkError: If the stored cursor is older than the window and
            force_sync is off.
    """
    window_start = now - timedelta(days=max_sync_days)
    if force_sync or last_poll is None:
        return window_start
    if last_poll < window_start:
        raise StaleWatermarkError(
            f"last program run was more than {max_sync_days} days ago. "
            "Increase 'max_sync_days' in the config or use the '--force-sync' "
            "argument to ignore this error"
        )
    return last_poll
