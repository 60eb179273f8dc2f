"""Roomchat application configuration.

Loads settings from a single YAML file:
  * roomchat.settings.yaml : non-secret configuration

The path can be overridden with the ROOMCHAT_SETTINGS environment variable.
A missing file is not an error; every section has working defaults.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("roomchat.settings.yaml")
SETTINGS_ENV_VAR = "ROOMCHAT_SETTINGS"

ALLOWED_PAGE_SIZES = (50, 100, 200, 500)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 3000
    allowed_origins: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])


class DatabaseSettings(BaseModel):
    """Embedded DuckDB store. ``:memory:`` keeps everything in process."""
    path:               str       = "data/chat.duckdb"
    seed_default_rooms: bool      = True
    default_rooms:      List[str] = Field(default_factory=lambda: ["general", "random", "help"])
    system_handle:      str       = "system"


class ChatSettings(BaseModel):
    default_page_size: int             = 50
    page_sizes:        List[int]       = Field(default_factory=lambda: list(ALLOWED_PAGE_SIZES))
    max_retries:       int             = Field(default=3, ge=0, le=3)

    @field_validator("page_sizes")
    @classmethod
    def _page_sizes_allowed(cls, value: List[int]) -> List[int]:
        if not value or any(size not in ALLOWED_PAGE_SIZES for size in value):
            raise ValueError(f"page_sizes must be drawn from {list(ALLOWED_PAGE_SIZES)}")
        return sorted(set(value))

    @model_validator(mode="after")
    def _default_page_size_allowed(self) -> "ChatSettings":
        if self.default_page_size not in self.page_sizes:
            raise ValueError(
                f"default_page_size {self.default_page_size} is not one of {self.page_sizes}"
            )
        return self


class LoggingSettings(BaseModel):
    level: str = "info"


class AppSettings(BaseModel):
    server:   ServerSettings   = Field(default_factory=ServerSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    chat:     ChatSettings     = Field(default_factory=ChatSettings)
    logging:  LoggingSettings  = Field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

_config: Optional[AppSettings] = None


def load_settings(path: Optional[Path] = None) -> AppSettings:
    """Load settings from YAML into a single *AppSettings* object."""
    if path is None:
        path = Path(os.environ.get(SETTINGS_ENV_VAR, SETTINGS_FILE))
    settings_data = _load_yaml(path)

    app_settings = AppSettings(**settings_data)
    logger.info(
        "Settings loaded (server=%s:%s, database=%s, page_size=%s)",
        app_settings.server.host,
        app_settings.server.port,
        app_settings.database.path,
        app_settings.chat.default_page_size,
    )
    return app_settings


def get_config() -> AppSettings:
    """Return the process-wide settings, loading them on first use."""
    global _config
    if _config is None:
        _config = load_settings()
    return _config


def set_config(settings: AppSettings) -> None:
    """Replace the process-wide settings (tests and embedding apps)."""
    global _config
    _config = settings


def reset_config() -> None:
    """Drop cached settings so the next get_config() reloads from disk."""
    global _config
    _config = None
