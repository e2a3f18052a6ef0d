"""Fatal conditions that end a sync run."""

from __future__ import annotations


class SyncError(Exception):
    """Base error for conditions that must stop the process."""


class AccountResolutionError(SyncError):
    """Plaid refused to list accounts for a configured access token."""


class AmbiguousAccountConfigError(SyncError):
    """More than one configured sync target matches the same Plaid account."""


class StaleWatermarkError(SyncError):
    """The last sync of an account is older than the allowed window."""


class AccountNotConfiguredError(SyncError):
    """A transfer leg belongs to an account with no sync configuration."""
