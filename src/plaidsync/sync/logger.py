"""Logging for sync operations, kept apart from the sync logic."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

import loguru
from loguru import logger

if TYPE_CHECKING:
    from plaidsync.sync.orchestrator import PassSummary


class SyncLogger:
    """Handles all logging for account resolution and sync passes."""

    def __init__(self, logger_instance: loguru.Logger = logger) -> None:
        self._logger = logger_instance

    def force_sync(self, max_sync_days: int) -> None:
        self._logger.bind(max_sync_days=max_sync_days).info(
            "Force sync enabled - requesting data from the last {} days",
            max_sync_days,
        )

    def auth_fallback(self, item_hint: str, error: Exception) -> None:
        """Log that /auth/get failed and plain account info is used instead."""
        self._logger.bind(item=item_hint).debug(
            "Full account numbers unavailable ({}), falling back to account info",
            error,
        )

    def unknown_account(self, name: str, official_name: str | None) -> None:
        self._logger.bind(name=name, official_name=official_name).warning(
            "Plaid reported an unknown account: {} {}", name, official_name or ""
        )

    def account_resolved(self, plaid_account_id: str, name: str) -> None:
        self._logger.bind(account_id=plaid_account_id).info(
            "Resolved account {} ({})", name, plaid_account_id
        )

    def fetch_start(self, plaid_account_id: str, start: date, end: date) -> None:
        self._logger.bind(account_id=plaid_account_id).info(
            "Fetching transactions for {} from {} to {}",
            plaid_account_id,
            start,
            end,
        )

    def fetch_complete(
        self, plaid_account_id: str, fetched: int, pending: int
    ) -> None:
        self._logger.bind(
            account_id=plaid_account_id, fetched=fetched, pending=pending
        ).info(
            "Fetched {} transactions for {} ({} pending)",
            fetched,
            plaid_account_id,
            pending,
        )

    def transfer_found(
        self, source_id: str, dest_id: str, amount: Decimal, firefly_id: str
    ) -> None:
        self._logger.bind(
            source=source_id, destination=dest_id, firefly_id=firefly_id
        ).info(
            "Found matching txn pair {} -> {} ({}), stored as {}",
            source_id,
            dest_id,
            amount,
            firefly_id,
        )

    def single_created(
        self, transaction_id: str, split_type: str, firefly_id: str
    ) -> None:
        self._logger.bind(
            transaction_id=transaction_id, type=split_type, firefly_id=firefly_id
        ).info(
            "Created single sided {} for {}, stored as {}",
            split_type,
            transaction_id,
            firefly_id,
        )

    def dropped(self, transaction_id: str, plaid_account_id: str) -> None:
        self._logger.bind(
            transaction_id=transaction_id, account_id=plaid_account_id
        ).info(
            "Dropping transaction {}; account not configured for sync: {}",
            transaction_id,
            plaid_account_id,
        )

    def already_imported(self, count: int) -> None:
        if count:
            self._logger.bind(count=count).debug(
                "Skipping {} already imported transactions", count
            )

    def watermark_advanced(self, plaid_account_id: str, polled_at: datetime) -> None:
        self._logger.bind(account_id=plaid_account_id).debug(
            "Next sync for {} starts at {}", plaid_account_id, polled_at
        )

    def pass_complete(self, summary: PassSummary) -> None:
        self._logger.bind(
            fetched=summary.fetched,
            pending=summary.pending,
            transfers=summary.transfers,
            singles=summary.singles,
            dropped=summary.dropped,
            skipped=summary.skipped,
        ).info(
            "Sync pass complete: {} fetched, {} pending, {} transfers, "
            "{} single sided, {} dropped, {} already imported",
            summary.fetched,
            summary.pending,
            summary.transfers,
            summary.singles,
            summary.dropped,
            summary.skipped,
        )

    def sleeping(self, minutes: float) -> None:
        self._logger.bind(minutes=minutes).info(
            "Next sync in {} minutes", minutes
        )

    def shutdown(self) -> None:
        self._logger.info("Shutdown requested, stopping sync loop")
