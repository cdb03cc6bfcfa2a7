"""
Loader -- YAML and environment parsing into InventorySettings.

Layers, later wins:
    1. packaged sets/default.yaml
    2. optional user YAML file
    3. environment variables

Failure modes:
    * Missing user file  -> ``FileNotFoundError`` propagates.
    * Malformed YAML     -> ``yaml.YAMLError`` propagates.
    * Invalid values     -> ``ValueError`` listing every problem.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Mapping

import yaml

from inventory_config.schema import (
    DatabaseSettings,
    EventSettings,
    IntegrationSettings,
    InventorySettings,
    LedgerSettings,
    LoggingSettings,
)

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})
_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), dict):
            result[key] = merge(result[key], value)
        else:
            result[key] = value
    return result


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def environment_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Translate recognised environment variables into a partial config."""
    overrides: dict[str, Any] = {}
    url = env.get("INVENTORY_DATABASE_URL") or env.get("DATABASE_URL")
    if url:
        overrides.setdefault("database", {})["url"] = url
    if "INVENTORY_DATABASE_ECHO" in env:
        overrides.setdefault("database", {})["echo"] = env["INVENTORY_DATABASE_ECHO"]
    if "INVENTORY_LOG_LEVEL" in env:
        overrides.setdefault("logging", {})["level"] = env["INVENTORY_LOG_LEVEL"]
    return overrides


def _int_field(section: str, data: dict[str, Any], key: str, default: int,
               errors: list[str], minimum: int = 0) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(str(value))
        except ValueError:
            errors.append(f"{section}.{key} must be an integer, got {value!r}")
            return default
    if value < minimum:
        errors.append(f"{section}.{key} must be >= {minimum}, got {value}")
        return default
    return value


def _bool_field(section: str, data: dict[str, Any], key: str, default: bool,
                errors: list[str]) -> bool:
    try:
        return parse_bool(data.get(key, default))
    except ValueError as exc:
        errors.append(f"{section}.{key}: {exc}")
        return default


def parse_settings(data: dict[str, Any], sources: tuple[str, ...] = ()) -> InventorySettings:
    """
    Validate merged configuration data.

    Raises:
        ValueError: listing every invalid value, one per line.
    """
    errors: list[str] = []
    known = {"database", "ledger", "events", "integrations", "logging"}
    for key in sorted(set(data) - known):
        errors.append(f"unknown section {key!r}")

    db = data.get("database") or {}
    url = db.get("url", DatabaseSettings.url)
    if not isinstance(url, str) or "://" not in url:
        errors.append(f"database.url must be a database URL, got {url!r}")
    database = DatabaseSettings(
        url=str(url),
        echo=_bool_field("database", db, "echo", False, errors),
        pool_size=_int_field("database", db, "pool_size", 20, errors, minimum=1),
        max_overflow=_int_field("database", db, "max_overflow", 10, errors),
        pool_timeout=_int_field("database", db, "pool_timeout", 30, errors, minimum=1),
        pool_recycle=_int_field("database", db, "pool_recycle", 1800, errors),
    )

    ledger_data = data.get("ledger") or {}
    ledger = LedgerSettings(
        allow_negative_adjustments=_bool_field(
            "ledger", ledger_data, "allow_negative_adjustments", True, errors
        ),
        max_concurrency_retries=_int_field(
            "ledger", ledger_data, "max_concurrency_retries", 3, errors
        ),
    )

    events_data = data.get("events") or {}
    events = EventSettings(
        history_limit=_int_field("events", events_data, "history_limit", 100, errors, minimum=1),
    )

    integ = data.get("integrations") or {}
    integrations = IntegrationSettings(
        max_reconnect_attempts=_int_field(
            "integrations", integ, "max_reconnect_attempts", 5, errors
        ),
        reconnect_interval_seconds=_int_field(
            "integrations", integ, "reconnect_interval_seconds", 3, errors
        ),
    )

    log_data = data.get("logging") or {}
    level = str(log_data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        errors.append(f"logging.level must be a logging level name, got {level!r}")
        level = "INFO"

    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    return InventorySettings(
        database=database,
        ledger=ledger,
        events=events,
        integrations=integrations,
        logging=LoggingSettings(level=level),
        sources=sources,
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
