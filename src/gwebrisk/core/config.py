# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Application configuration via environment variables, .env and JSON files."""

import json
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from gwebrisk.core.constants import (
    DEFAULT_BACKOFF_BASE,
    DEFAULT_BACKOFF_CAP,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_MAX_CACHE_TTL,
    DEFAULT_MAX_HOST_SUFFIXES,
    DEFAULT_MAX_PATH_PREFIXES,
    DEFAULT_NEGATIVE_CACHE_TTL,
    DEFAULT_SERVER_URL,
    DEFAULT_STALENESS_GRACE,
    DEFAULT_SYNC_JITTER,
    DEFAULT_THREAT_TYPES,
    DEFAULT_UPDATE_PERIOD,
    CompressionType,
    ThreatType,
)
from gwebrisk.core.exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = Path("/etc/gwebrisk/config.json")


def _split_csv(v: object) -> object:
    if isinstance(v, str):
        return [x.strip() for x in v.split(",") if x.strip()]
    return v


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GWEBRISK_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )

    # Credentials and endpoints
    api_key: str = ""
    server_url: str = DEFAULT_SERVER_URL
    request_timeout: float = 10.0

    # Local database
    db_path: Path = Path("gwebrisk.db")

    # Subscribed threat lists
    threat_types: Annotated[list[ThreatType], NoDecode] = list(DEFAULT_THREAT_TYPES)

    @field_validator("threat_types", mode="before")
    @classmethod
    def _parse_threat_types(cls, v: object) -> object:
        return _split_csv(v)

    # Diff request constraints (0 means "let the server decide")
    max_diff_entries: int = 0
    max_database_entries: int = 0
    supported_compressions: Annotated[list[CompressionType], NoDecode] = [
        CompressionType.RAW,
        CompressionType.RICE,
    ]

    @field_validator("supported_compressions", mode="before")
    @classmethod
    def _parse_supported_compressions(cls, v: object) -> object:
        return _split_csv(v)

    # Synchronization timing (seconds)
    update_period: float = DEFAULT_UPDATE_PERIOD
    sync_jitter: float = DEFAULT_SYNC_JITTER
    backoff_base: float = DEFAULT_BACKOFF_BASE
    backoff_cap: float = DEFAULT_BACKOFF_CAP
    staleness_grace: float = DEFAULT_STALENESS_GRACE

    # Expression expansion
    max_host_suffixes: int = Field(default=DEFAULT_MAX_HOST_SUFFIXES, ge=1)
    max_path_prefixes: int = Field(default=DEFAULT_MAX_PATH_PREFIXES, ge=3)

    # Full-hash cache
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    default_negative_cache_ttl: float = DEFAULT_NEGATIVE_CACHE_TTL
    max_cache_ttl: float = DEFAULT_MAX_CACHE_TTL

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"


def get_settings() -> Settings:
    return Settings()


class FileConfig(BaseModel):
    """The JSON configuration file consumed by the command line.

    Example::

        {
            "apikey": "secretapikeygoeshere",
            "database": "/path/to/webrisk/client/database",
            "urls": ["www.site.gr", "badbadsite.com"]
        }
    """

    api_key: str = Field(alias="apikey", min_length=1)
    database: str = Field(min_length=1)
    urls: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @property
    def db_path(self) -> Path:
        return Path(self.database).expanduser()


def load_config(path: Path | str) -> FileConfig:
    """Load and validate a JSON configuration file.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid JSON,
            or lacks a required field.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read config file {path}: {exc}"
        raise ConfigurationError(msg) from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        msg = f"Config file {path} is not valid JSON: {exc}"
        raise ConfigurationError(msg) from exc

    try:
        return FileConfig.model_validate(data)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in e["loc"]) for e in exc.errors())
        msg = f"Invalid config file {path}: check {fields}"
        raise ConfigurationError(msg) from exc
