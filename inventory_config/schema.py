"""
InventorySettings schema.

The runtime configuration artifact.  The loader parses merged YAML and
environment values into these frozen types; nothing else in the system
reads configuration files or environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///inventory.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class LedgerSettings:
    # Adjustments may drive stock negative unless this is false.
    allow_negative_adjustments: bool = True
    max_concurrency_retries: int = 3


@dataclass(frozen=True)
class EventSettings:
    history_limit: int = 100


@dataclass(frozen=True)
class IntegrationSettings:
    max_reconnect_attempts: int = 5
    reconnect_interval_seconds: int = 3


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class InventorySettings:
    """Complete resolved configuration."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    events: EventSettings = field(default_factory=EventSettings)
    integrations: IntegrationSettings = field(default_factory=IntegrationSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    sources: tuple[str, ...] = ()
    checksum: str = ""
