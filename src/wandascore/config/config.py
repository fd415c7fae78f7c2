"""
Configuration management for wandascore using Pydantic.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Any, ClassVar, Dict, Mapping, Optional, cast

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wandascore.models import FACTORS

# --- Setup Logging ---
log = logging.getLogger(__name__)

DEFAULT_WEIGHTS: Dict[str, float] = {
    "bias": 1.5,
    "llm_generated": 1.0,
    "language": 1.2,
    "grammar": 1.2,
    "conciseness": 1.0,
}

# Used when a factor query fails, skewed towards "fine" so an API hiccup does not sink a page.
DEFAULT_FACTOR_SCORES: Dict[str, int] = {
    "bias": 80,
    "llm_generated": 70,
    "language": 75,
    "grammar": 80,
    "conciseness": 75,
}

# --- Nested Configuration Models ---


class WikiConfig(BaseModel):
    """Where page content is read from."""

    api_url: str = Field(default="http://localhost/w/api.php", description="MediaWiki action API endpoint.")
    timeout: float = Field(default=15.0, gt=0, description="HTTP request timeout in seconds.")
    user_agent: str = Field(default="WandaScore/0.1.0", description="User-Agent string for HTTP requests.")


class ChatConfig(BaseModel):
    """Chat completion service used for every factor evaluation."""

    api_url: Optional[str] = Field(
        default=None, description="Endpoint of the wandachat action. Defaults to the wiki API endpoint."
    )
    timeout: float = Field(default=60.0, gt=0, description="Timeout for a single factor call in seconds.")
    retries: int = Field(default=2, ge=1, description="Attempts per factor call on transport errors.")
    use_public_knowledge: bool = True
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_tokens: int = Field(default=10000, gt=0)
    skip_es_query: bool = True


class ScoringConfig(BaseModel):
    """Weights and thresholds for the aggregator. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    # Validated into read-only mappings, defaults included.
    weights: Mapping[str, float] = Field(default_factory=lambda: dict(DEFAULT_WEIGHTS), validate_default=True)
    default_scores: Mapping[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_FACTOR_SCORES), validate_default=True
    )
    min_content_length: int = Field(default=50, ge=0, description="Shorter content gets the canned report.")
    max_content_chars: int = Field(default=3000, gt=0, description="Characters of content sent to the chat service.")
    short_content_score: int = Field(default=50, ge=0, le=100)
    concurrent_factors: bool = Field(default=True, description="Issue the factor queries concurrently.")

    @field_validator("weights")
    @classmethod
    def validate_weights(cls, v: Mapping[str, float]) -> Mapping[str, float]:
        if set(v) != set(FACTORS):
            raise ValueError(f"weights must define exactly {FACTORS}")
        if any(weight <= 0 for weight in v.values()):
            raise ValueError("weights must be positive")
        return MappingProxyType(dict(v))

    @field_validator("default_scores")
    @classmethod
    def validate_default_scores(cls, v: Mapping[str, int]) -> Mapping[str, int]:
        if set(v) != set(FACTORS):
            raise ValueError(f"default_scores must define exactly {FACTORS}")
        if any(not 0 <= score <= 100 for score in v.values()):
            raise ValueError("default_scores must be between 0 and 100")
        return MappingProxyType(dict(v))


class SQLiteConfig(BaseModel):
    """Configuration for the SQLite score cache."""

    db_path: Path = Field(
        default_factory=lambda: Path.home() / ".wandascore" / "scores.db",
        description="SQLite database file path",
    )
    pool_size: int = Field(default=5, ge=1, description="Size of the connection pool.")
    wal_mode: bool = Field(default=True, description="Enable Write-Ahead Logging for higher concurrency.")

    @field_validator("db_path", mode="before")
    @classmethod
    def ensure_db_directory(cls, v: Any) -> Path:
        """Ensure database directory exists."""
        path = Path(v) if not isinstance(v, Path) else v
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


class JobsConfig(BaseModel):
    """Background recompute workers."""

    workers: int = Field(default=2, ge=1)
    queue_size: int = Field(default=1000, ge=0, description="0 means unbounded.")


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    prometheus_port: int | None = Field(default=None, description="Port for Prometheus metrics exporter.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


class WebConfig(BaseModel):
    host: str = Field(default="127.0.0.1", description="Host for the API server.")
    port: int = Field(default=8000, description="Port for the API server.")


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "wandascore"
    version: str = "0.1.0"
    wiki: WikiConfig = Field(default_factory=WikiConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    storage: SQLiteConfig = Field(default_factory=SQLiteConfig)
    jobs: JobsConfig = Field(default_factory=JobsConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    model_config = SettingsConfigDict(env_prefix="WANDASCORE_", env_nested_delimiter="__", case_sensitive=False)

    @model_validator(mode="after")
    def default_chat_endpoint(self) -> Config:
        if self.chat.api_url is None:
            self.chat.api_url = self.wiki.api_url
        return self

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for path in (current_dir / "config.yaml", current_dir / "config.yml"):
        if path.exists():
            return path
    return None


# --- Lazy Configuration Loader ---


class LazyConfig:
    """
    A proxy for the Config object that delays its loading and validation
    until an attribute is first accessed.
    """

    _config: ClassVar[Config | None] = None
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __getattr__(self, name: str) -> Any:
        if self.__class__._config is None:
            with self.__class__._lock:
                if self.__class__._config is None:
                    self.__class__._config = self._load_config_with_fallback()
        return getattr(self.__class__._config, name)

    def _load_config_with_fallback(self) -> Config:
        """Load configuration from file or fall back to defaults."""
        config_path = find_config_file()
        if config_path:
            try:
                log.info("Lazy loading configuration from: %s", config_path)
                return Config.from_yaml(config_path)
            except (ValidationError, FileNotFoundError, yaml.YAMLError) as e:
                log.error(
                    "Failed to load or validate configuration from '%s': %s. Falling back to default settings.",
                    config_path,
                    e,
                    exc_info=log.getEffectiveLevel() <= logging.DEBUG,
                )
        else:
            log.info("No config file found. Using default settings for lazy load.")

        try:
            return Config()
        except ValidationError as e:
            log.critical("FATAL: Default configuration is invalid: %s", e, exc_info=True)
            raise RuntimeError(f"Default configuration is invalid, cannot start: {e}") from e


# --- Global Settings Instance ---
settings: "Config" = cast("Config", LazyConfig())
