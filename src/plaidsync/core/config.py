from __future__ import annotations

from enum import Enum
import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
import yaml

from plaidsync.adapters.clients.plaid import PlaidEnv

CONFIG_FILENAMES = ("config.json", "config.yaml", "config.yml")
DATABASE_FILENAME = "import-db.sqlite3"


class ConfigError(Exception):
    """Raised when the connector configuration is missing or invalid."""


class SyncMode(str, Enum):
    BATCH = "batch"
    POLLED = "polled"


class PlaidSettings(BaseModel):
    client_id: str
    secret: str
    environment: PlaidEnv = "development"
    access_tokens: list[str] = Field(default_factory=list)


class FireflySettings(BaseModel):
    url: str
    token: str


class SyncTarget(BaseModel):
    """One tracked account.

    The identity fields are optional and, when set, must all agree with a Plaid
    account for the target to match it. Resolution overwrites them with the
    values Plaid reports and fills in the access token and item id.
    """

    firefly_account_id: str | None = None

    plaid_account_id: str | None = None
    account_name: str | None = None
    account_officialname: str | None = None
    account_lastfour: str | None = None
    account_institution_id: str | None = None

    plaid_access_token: str | None = None
    plaid_item_id: str | None = None
    account_number: str | None = None

    @property
    def has_identity(self) -> bool:
        return any(
            value is not None
            for value in (
                self.plaid_account_id,
                self.account_name,
                self.account_officialname,
                self.account_lastfour,
                self.account_institution_id,
            )
        )


class ConnectorConfig(BaseModel):
    plaid: PlaidSettings
    firefly: FireflySettings
    sync: list[SyncTarget] = Field(default_factory=list)
    max_sync_days: int = Field(default=90, gt=0)
    sync_mode: SyncMode = SyncMode.BATCH
    sync_frequency_minutes: float = Field(default=60, gt=0)


def config_dir_from_env() -> Path:
    """Return the directory holding config and database, from CONFIG_PATH or cwd."""
    value = os.environ.get("CONFIG_PATH", "").strip()
    return Path(value) if value else Path.cwd()


def find_config_file(config_dir: Path) -> Path:
    for name in CONFIG_FILENAMES:
        candidate = config_dir / name
        if candidate.is_file():
            return candidate
    raise ConfigError(
        f"config file not found. Tried '{config_dir / CONFIG_FILENAMES[0]}'; "
        "do you need to set `CONFIG_PATH`?"
    )


def load_config(path: Path) -> ConnectorConfig:
    """Load and validate a connector config file.

    ``.json`` files are parsed as JSON, anything else as YAML.
    """
    try:
        text = path.read_text()
        raw: Any
        if path.suffix == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"could not read config file '{path}': {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"invalid config file '{path}': expected a mapping")

    try:
        return ConnectorConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"invalid config file '{path}': {e}") from e


def database_url_for(config_dir: Path) -> str:
    """DATABASE_URL wins; otherwise a SQLite file next to the config."""
    url = os.environ.get("DATABASE_URL", "").strip()
    if url:
        return url
    return f"sqlite:///{config_dir / DATABASE_FILENAME}"
