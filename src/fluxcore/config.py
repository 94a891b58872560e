"""Configuration loading and validation for dispatchers, actions and logging."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from platformdirs import user_config_path
from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError,
    field_validator,
    model_validator,
)

import tomllib  # stdlib since Python 3.11 (project requires >=3.11)

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = user_config_path("fluxcore")
CONFIG_PATH = CONFIG_DIR / "config.toml"

VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _require_non_empty_string(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("Expected a string value.")
    normalized = value.strip()
    if not normalized:
        raise ValueError("String value must not be empty.")
    return normalized


class BusConfig(BaseModel):
    """Event name segmentation and wildcard tokens."""

    delimiter: str = ":"
    wildcard: str = "*"
    globstar: str = "**"

    @field_validator("delimiter", "wildcard", "globstar", mode="before")
    @classmethod
    def _validate_token(cls, value: Any) -> str:
        return _require_non_empty_string(value)

    @model_validator(mode="after")
    def _validate_tokens_are_distinct(self) -> BusConfig:
        if self.wildcard == self.globstar:
            raise ValueError("wildcard and globstar must differ.")
        for token in (self.wildcard, self.globstar):
            if self.delimiter in token:
                raise ValueError(f"{token!r} must not contain the delimiter.")
        return self


class DispatcherConfig(BaseModel):
    """Dispatch validation and failure policy."""

    strict_handler_signatures: bool = True
    isolate_handler_errors: bool = False
    log_dispatches: bool = True


class ActionConfig(BaseModel):
    """Lifecycle event suffixes appended to an action name.

    An empty ``succeeded_suffix`` announces completion under the bare action
    name instead of ``<name>:succeeded``.
    """

    pending_suffix: str = "pending"
    succeeded_suffix: str = "succeeded"
    failed_suffix: str = "failed"

    @field_validator("pending_suffix", "failed_suffix", mode="before")
    @classmethod
    def _validate_required_suffix(cls, value: Any) -> str:
        return _require_non_empty_string(value)

    @field_validator("succeeded_suffix", mode="before")
    @classmethod
    def _normalize_succeeded_suffix(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("succeeded_suffix must be a string.")
        return value.strip()

    @model_validator(mode="after")
    def _validate_distinct_suffixes(self) -> ActionConfig:
        suffixes = [self.pending_suffix, self.succeeded_suffix, self.failed_suffix]
        if len(set(suffixes)) != len(suffixes):
            raise ValueError("Action lifecycle suffixes must be distinct.")
        return self


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/fluxcore/fluxcore.log"

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Logging level must be a string.")
        normalized = value.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {normalized!r}.")
        return normalized

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("log_file_path must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("log_file_path must not be empty.")
        return normalized


class Config(BaseModel):
    """Root configuration model for all sections."""

    model_config = ConfigDict(populate_by_name=True)
    bus: BusConfig = BusConfig()
    dispatcher: DispatcherConfig = DispatcherConfig()
    action: ActionConfig = ActionConfig()
    logging: LoggingConfig = LoggingConfig()


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump()


def _overlay_sections(raw: dict[str, Any]) -> dict[str, Any]:
    """Lay each TOML table over the matching default section."""
    layered: dict[str, Any] = Config().model_dump()
    for section, values in raw.items():
        defaults = layered.get(section)
        if isinstance(defaults, dict) and isinstance(values, dict):
            layered[section] = {**defaults, **values}
        else:
            layered[section] = values
    return layered


def _validate_config(layered: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Validate layered config data, or warn and return the defaults."""
    try:
        return Config.model_validate(layered).model_dump()
    except ValidationError as exc:
        LOGGER.warning("Configuration validation failed, using defaults: %s", exc)
        return Config().model_dump()


def load_config(config_path: Path | None = None) -> dict[str, dict[str, Any]]:
    """
    Load configuration from TOML, layer it over the defaults, and validate.

    A missing file is not an error; the defaults are returned as-is.
    """
    target_path = config_path or CONFIG_PATH

    raw_data: dict[str, Any] = {}
    if target_path.exists():
        try:
            raw_data = tomllib.loads(target_path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            LOGGER.warning("Failed to parse config at %s: %s", target_path, exc)

    return _validate_config(_overlay_sections(raw_data))
