"""settings for canvas autorename.

loaded once at startup, validated, then handed to the service.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)


# --- configuration ---

DEFAULT_PREFIX = "01_02Houdini_"
DEFAULT_POLL_INTERVAL = 5.0  # seconds
DEFAULT_PASTE_DELAY = 1.5  # seconds
DEFAULT_RETRY_DELAY = 1.0  # seconds
DEFAULT_MAX_EMPTY_RETRIES = 1
SETTINGS_FILE = ".canvas-autorename.json"

# keys older settings files used
LEGACY_KEYS = {"targetCanvas": "targetDocumentPath"}


class Settings(BaseModel):
    """validated settings."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    target_document_path: str = Field(default="", alias="targetDocumentPath")
    prefix: str = DEFAULT_PREFIX
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, alias="pollInterval", gt=0)
    paste_delay: float = Field(default=DEFAULT_PASTE_DELAY, alias="pasteDelay", ge=0)
    retry_delay: float = Field(default=DEFAULT_RETRY_DELAY, alias="retryDelay", ge=0)
    max_empty_retries: int = Field(default=DEFAULT_MAX_EMPTY_RETRIES, alias="maxEmptyRetries", ge=0)

    @field_validator("prefix", mode="before")
    @classmethod
    def _default_prefix(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_PREFIX
        return v

    @field_validator("target_document_path", mode="before")
    @classmethod
    def _check_target(cls, v):
        if v is None:
            return ""
        if not isinstance(v, str):
            raise ValueError("target document path must be a string")
        v = v.strip().strip("/")
        if v and not v.lower().endswith(".canvas"):
            raise ValueError(f"target document must be a .canvas file: {v!r}")
        return v

    @property
    def enabled(self) -> bool:
        """renaming only runs once a target canvas is picked."""
        return bool(self.target_document_path)

    def to_dict(self) -> dict:
        """serialize to the on-disk (camelCase) form."""
        return self.model_dump(by_alias=True)


def get_settings_path(vault: Path) -> Path:
    """settings file lives at the vault root."""
    return Path(vault) / SETTINGS_FILE


def parse_settings(data: Optional[dict]) -> Settings:
    """build settings from a persisted blob, defaults for anything missing.

    raises ConfigError on invalid values.
    """
    data = dict(data or {})
    for old, new in LEGACY_KEYS.items():
        if old in data:
            value = data.pop(old)
            data.setdefault(new, value)
    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid settings: {e}") from e


def load_settings(path: Path) -> Settings:
    """load settings from json file. missing file means defaults."""
    if not path.exists():
        logger.debug(f"no settings at {path}, using defaults")
        return Settings()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid settings file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"cannot read settings file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"settings file {path} must hold a json object")
    return parse_settings(data)


def save_settings(settings: Settings, path: Path) -> None:
    """save settings to json file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.to_dict(), f, indent=2)
