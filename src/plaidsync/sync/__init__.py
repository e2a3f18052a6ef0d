"""Sync engine: account resolution, watermarks, dedup, transfer matching."""

from plaidsync.sync.accounts import AccountResolver
from plaidsync.sync.errors import (
    AccountNotConfiguredError,
    AccountResolutionError,
    AmbiguousAccountConfigError,
    StaleWatermarkError,
    SyncError,
)
from plaidsync.sync.ledger import DedupLedger
from plaidsync.sync.matcher import TransferMatcher, TransferPair
from plaidsync.sync.orchestrator import PassSummary, SyncOrchestrator
from plaidsync.sync.runner import SyncRunner
from plaidsync.sync.watermarks import WatermarkStore

__all__ = [
    "AccountNotConfiguredError",
    "AccountResolutionError",
    "AccountResolver",
    "AmbiguousAccountConfigError",
    "DedupLedger",
    "PassSummary",
    "StaleWatermarkError",
    "SyncError",
    "SyncOrchestrator",
    "SyncRunner",
    "TransferMatcher",
    "TransferPair",
    "WatermarkStore",
]
