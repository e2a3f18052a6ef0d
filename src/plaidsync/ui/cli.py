from __future__ import annotations

import os
from pathlib import Path
import sys

from dotenv import load_dotenv
from loguru import logger
import typer

from plaidsync.adapters.clients.firefly import FireflyClient, FireflyClientError
from plaidsync.adapters.clients.plaid import PlaidClient, PlaidClientError
from plaidsync.adapters.db.facade import DB
from plaidsync.core.config import (
    ConfigError,
    ConnectorConfig,
    config_dir_from_env,
    database_url_for,
    find_config_file,
    load_config,
)
from plaidsync.sync import (
    AccountResolver,
    DedupLedger,
    SyncError,
    SyncOrchestrator,
    SyncRunner,
    WatermarkStore,
)

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} [{level}] {name}: {message}"

app = typer.Typer(
    help="Sync Plaid transactions into a Firefly III ledger.",
    add_completion=False,
)


def configure_logging() -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=os.environ.get("PLAIDSYNC_LOG_LEVEL", "INFO").upper(),
    )


def build_runner(
    config: ConnectorConfig,
    db: DB,
    *,
    force_sync: bool,
    plaid_client: PlaidClient | None = None,
    firefly_client: FireflyClient | None = None,
) -> SyncRunner:
    """Resolve accounts against Plaid and wire up a runner for the config.

    Raises:
        SyncError: If account resolution fails
    """
    plaid = plaid_client or PlaidClient.from_config(config.plaid)
    firefly = firefly_client or FireflyClient.from_config(config.firefly)

    AccountResolver(plaid, config.sync).resolve(config.plaid.access_tokens)

    orchestrator = SyncOrchestrator(
        plaid_client=plaid,
        firefly_client=firefly,
        targets=config.sync,
        watermarks=WatermarkStore(db),
        ledger=DedupLedger(db),
        max_sync_days=config.max_sync_days,
        force_sync=force_sync,
    )
    return SyncRunner(orchestrator, interval_minutes=config.sync_frequency_minutes)


@app.command()
def main(
    force_sync: bool = typer.Option(
        False,
        "--force-sync",
        help="Force synchronization of max_sync_days of data",
    ),
    config_path: Path | None = typer.Option(  # noqa: B008
        None,
        "--config-path",
        help="Directory holding config.json; defaults to $CONFIG_PATH or cwd",
    ),
) -> None:
    """Run the sync once (batch mode) or forever (polled mode)."""
    load_dotenv()
    configure_logging()

    config_dir = config_path or config_dir_from_env()
    try:
        config = load_config(find_config_file(config_dir))
        db = DB(database_url_for(config_dir))
        db.create_schema()
        runner = build_runner(config, db, force_sync=force_sync)
        runner.run(config.sync_mode)
    except (ConfigError, SyncError, PlaidClientError, FireflyClientError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def run() -> None:
    app()
