"""One synchronization pass: fetch, filter, match, post, record, advance."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, time

from plaidsync.adapters.clients.firefly import FireflyClient, TransactionSplit
from plaidsync.adapters.clients.plaid import PlaidClient, PlaidTransaction
from plaidsync.core.config import SyncTarget
from plaidsync.sync.errors import AccountNotConfiguredError
from plaidsync.sync.ledger import DedupLedger
from plaidsync.sync.logger import SyncLogger
from plaidsync.sync.matcher import TransferMatcher, TransferPair
from plaidsync.sync.watermarks import WatermarkStore, resolve_start


@dataclass
class PassSummary:
    """Counts for one completed pass."""

    fetched: int = 0
    pending: int = 0
    transfers: int = 0
    singles: int = 0
    dropped: int = 0
    skipped: int = 0


@dataclass
class FetchResult:
    """Finalized transactions across all accounts plus the next cursor per account."""

    transactions: list[PlaidTransaction]
    next_polls: dict[str, datetime]
    pending: int


def next_poll_for(transactions: Sequence[PlaidTransaction], now: datetime) -> datetime:
    """Earliest pending date, so the next pass sees it again once finalized; else now."""
    pending_dates = [txn.date for txn in transactions if txn.pending]
    if not pending_dates:
        return now
    return datetime.combine(min(pending_dates), time.min)


class SyncOrchestrator:
    """Drives sync passes for a fixed, already resolved set of targets."""

    def __init__(
        self,
        *,
        plaid_client: PlaidClient,
        firefly_client: FireflyClient,
        targets: Sequence[SyncTarget],
        watermarks: WatermarkStore,
        ledger: DedupLedger,
        max_sync_days: int,
        force_sync: bool = False,
        matcher: TransferMatcher | None = None,
        clock: Callable[[], datetime] = datetime.now,
        sync_logger: SyncLogger | None = None,
    ) -> None:
        self._plaid_client = plaid_client
        self._firefly_client = firefly_client
        self._targets = targets
        self._watermarks = watermarks
        self._ledger = ledger
        self._max_sync_days = max_sync_days
        self._force_sync = force_sync
        self._matcher = matcher or TransferMatcher()
        self._clock = clock
        self._logger = sync_logger or SyncLogger()

    def run_pass(self) -> PassSummary:
        """Run one full pass.

        Firefly or Plaid failures propagate and abort the pass. Anything posted
        before the failure is already recorded; watermarks are left untouched.
        """
        now = self._clock()
        summary = PassSummary()

        fetched = self._fetch(now)
        summary.fetched = len(fetched.transactions) + fetched.pending
        summary.pending = fetched.pending

        already = self._ledger.processed(
            txn.transaction_id for txn in fetched.transactions
        )
        # Plaid fetches are inclusive of the cursor date and may repeat
        # transactions; each id is handled at most once.
        seen = set(already)
        pool: list[PlaidTransaction] = []
        for txn in fetched.transactions:
            if txn.transaction_id in seen:
                continue
            seen.add(txn.transaction_id)
            pool.append(txn)
        summary.skipped = len(fetched.transactions) - len(pool)
        self._logger.already_imported(summary.skipped)

        for item in self._matcher.match(pool).items:
            if isinstance(item, TransferPair):
                self._post_transfer(item)
                summary.transfers += 1
            elif self._post_single(item):
                summary.singles += 1
            else:
                summary.dropped += 1

        self._watermarks.set_many(fetched.next_polls)
        for plaid_account_id, polled_at in fetched.next_polls.items():
            self._logger.watermark_advanced(plaid_account_id, polled_at)

        self._logger.pass_complete(summary)
        return summary

    def _syncable_accounts(self) -> list[tuple[str, str]]:
        """Return (plaid_account_id, access_token) for every resolved target."""
        # Targets Plaid never matched have no token and are skipped.
        return [
            (target.plaid_account_id, target.plaid_access_token)
            for target in self._targets
            if target.plaid_access_token is not None
            and target.plaid_account_id is not None
        ]

    def _fetch(self, now: datetime) -> FetchResult:
        accounts = self._syncable_accounts()
        if self._force_sync:
            self._logger.force_sync(self._max_sync_days)

        # Check every cursor before fetching anything, so a stale account
        # stops the pass before any request goes out.
        starts: dict[str, datetime] = {}
        for account_id, _ in accounts:
            starts[account_id] = resolve_start(
                self._watermarks.get(account_id),
                now=now,
                max_sync_days=self._max_sync_days,
                force_sync=self._force_sync,
            )

        finalized: list[PlaidTransaction] = []
        next_polls: dict[str, datetime] = {}
        pending_total = 0
        for account_id, access_token in accounts:
            start = starts[account_id]
            self._logger.fetch_start(account_id, start.date(), now.date())

            transactions = self._plaid_client.list_transactions(
                access_token,
                start_date=start.date(),
                end_date=now.date(),
                account_ids=[account_id],
            )
            pending = sum(1 for txn in transactions if txn.pending)
            pending_total += pending
            self._logger.fetch_complete(account_id, len(transactions), pending)

            finalized.extend(txn for txn in transactions if not txn.pending)
            next_polls[account_id] = next_poll_for(transactions, now)

        return FetchResult(
            transactions=finalized, next_polls=next_polls, pending=pending_total
        )

    def _target_for(self, plaid_account_id: str) -> SyncTarget | None:
        for target in self._targets:
            if target.plaid_account_id == plaid_account_id:
                return target
        return None

    def _post_transfer(self, pair: TransferPair) -> None:
        source = pair.source
        dest = pair.destination
        source_target = self._target_for(source.account_id)
        dest_target = self._target_for(dest.account_id)
        if (
            source_target is None
            or dest_target is None
            or source_target.firefly_account_id is None
            or dest_target.firefly_account_id is None
        ):
            raise AccountNotConfiguredError(
                f"Account not found in config: {source.account_id} "
                f"or {dest.account_id}"
            )

        split = TransactionSplit(
            type="transfer",
            date=source.date,
            process_date=dest.date,
            description=f"{source.name} -> {dest.name}",
            amount=abs(source.amount),
            currency_code=source.iso_currency_code,
            external_id=f"{source.transaction_id} -> {dest.transaction_id}",
            source_id=source_target.firefly_account_id,
            destination_id=dest_target.firefly_account_id,
        )
        firefly_id = self._firefly_client.store_transaction([split])
        self._ledger.record_transfer(
            source.transaction_id, dest.transaction_id, firefly_id
        )
        self._logger.transfer_found(
            source.transaction_id, dest.transaction_id, split.amount, firefly_id
        )

    def _post_single(self, txn: PlaidTransaction) -> bool:
        """Post a one-sided transaction. Returns False if it was dropped instead."""
        target = self._target_for(txn.account_id)
        if target is None or target.firefly_account_id is None:
            self._logger.dropped(txn.transaction_id, txn.account_id)
            self._ledger.record_processed(txn.transaction_id, None)
            return False

        common = {
            "date": txn.date,
            "description": txn.name,
            "amount": abs(txn.amount),
            "currency_code": txn.iso_currency_code,
            "external_id": txn.transaction_id,
            "tags": list(txn.category) if txn.category else None,
        }
        if txn.amount > 0:
            split = TransactionSplit(
                type="withdrawal",
                source_id=target.firefly_account_id,
                destination_name=txn.name,
                **common,
            )
        else:
            split = TransactionSplit(
                type="deposit",
                source_name=txn.name,
                destination_id=target.firefly_account_id,
                **common,
            )

        firefly_id = self._firefly_client.store_transaction([split])
        self._ledger.record_processed(txn.transaction_id, firefly_id)
        self._logger.single_created(txn.transaction_id, split.type, firefly_id)
        return True
