"""Configuration models and loaders."""

from __future__ import annotations

from .config import (
    DEFAULT_FACTOR_SCORES,
    DEFAULT_WEIGHTS,
    ChatConfig,
    Config,
    JobsConfig,
    MonitoringConfig,
    ScoringConfig,
    SQLiteConfig,
    WebConfig,
    WikiConfig,
    find_config_file,
    settings,
)

__all__ = [
    "Config",
    "ChatConfig",
    "JobsConfig",
    "MonitoringConfig",
    "ScoringConfig",
    "SQLiteConfig",
    "WebConfig",
    "WikiConfig",
    "DEFAULT_WEIGHTS",
    "DEFAULT_FACTOR_SCORES",
    "find_config_file",
    "settings",
]
