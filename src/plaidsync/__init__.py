"""Sync Plaid transactions into a Firefly III ledger."""

__version__ = "0.1.0"
