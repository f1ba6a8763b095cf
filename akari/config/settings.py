"""Configuration management using Pydantic Settings with YAML overlay.

Loading priority: .env → config/settings.yaml → config/settings.{MODE}.yaml

Nothing here raises at import time. Callers that need credentials go through
``validate_config`` (startup / readiness check) or the ``require_*`` helpers,
which raise ``ConfigurationError`` naming every missing variable.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_CONFIG_DIR = _PROJECT_ROOT / "config"


class ConfigurationError(Exception):
    """A required credential or setting is missing.

    Fatal to the request that needed it, never to the process.
    """

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = sorted(set(missing))
        super().__init__(f"Missing required configuration: {', '.join(self.missing)}")


# --- Nested config models ---


class RapidApiConfig(BaseModel):
    """RapidAPI provider hosts and transport settings."""

    twitter_api65_host: str = "twitter-api65.p.rapidapi.com"
    data_scraper_host: str = "twitter-data-scraper3.p.rapidapi.com"
    scraper_host: str = "twitter-scraper2.p.rapidapi.com"
    mentions_host: str = "get-twitter-mentions.p.rapidapi.com"
    sentiment_host: str = "sentiment-analysis38.p.rapidapi.com"
    timeout_seconds: int = 30
    scraper_timeout_seconds: int = 60
    max_attempts: int = 1  # 1 = single attempt, no retry
    retry_base_delay_s: float = 0.5


class SentimentConfig(BaseModel):
    """Sentiment scoring parameters."""

    backend: str = "rapidapi"  # rapidapi | local
    delay_ms: int = 100  # pause between sequential provider calls
    min_text_length: int = 3
    positive_threshold: int = 60
    negative_threshold: int = 40


class CoinGeckoConfig(BaseModel):
    """CoinGecko price index configuration."""

    base_url: str = "https://api.coingecko.com/api/v3"
    timeout_seconds: int = 30


class PortalConfig(BaseModel):
    """Aggregation windows and default limits."""

    latest_batch_window_minutes: int = 5
    whale_recent_hours: int = 24
    whale_fallback_days: int = 7
    liquidity_recent_hours: int = 24
    liquidity_fallback_days: int = 3
    chain_flow_lookback_hours: int = 6
    default_limit: int = 50


class StoreConfig(BaseModel):
    """Async engine pool settings."""

    pool_size: int = 5
    max_overflow: int = 10
    echo: bool = False


# --- Main config class ---


class AkariConfig(BaseSettings):
    """Main configuration for the Akari portal data core."""

    # Runtime
    mode: str = Field(default="prod", alias="MODE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # External API keys
    rapidapi_key: str = Field(default="", alias="RAPIDAPI_KEY")
    twitter_api65_auth_token: str = Field(default="", alias="TWITTER_API65_AUTH_TOKEN")
    coingecko_api_key: str = Field(default="", alias="COINGECKO_API_KEY")

    # Database (two credential tiers)
    database_url: str = Field(default="", alias="DATABASE_URL")
    database_service_url: str = Field(default="", alias="DATABASE_SERVICE_URL")

    # Nested config (loaded from YAML)
    rapidapi: RapidApiConfig = RapidApiConfig()
    sentiment: SentimentConfig = SentimentConfig()
    coingecko: CoinGeckoConfig = CoinGeckoConfig()
    portal: PortalConfig = PortalConfig()
    store: StoreConfig = StoreConfig()

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def require_rapidapi_key(self) -> str:
        if not self.rapidapi_key:
            raise ConfigurationError(["RAPIDAPI_KEY"])
        return self.rapidapi_key

    def require_database_url(self, service: bool = False) -> str:
        """Return the DSN for the requested credential tier."""
        if service:
            if not self.database_service_url:
                raise ConfigurationError(["DATABASE_SERVICE_URL"])
            return self.database_service_url
        if not self.database_url:
            raise ConfigurationError(["DATABASE_URL"])
        return self.database_url


# Requirement name → env variable it needs
REQUIREMENTS: dict[str, tuple[str, ...]] = {
    "rapidapi": ("RAPIDAPI_KEY",),
    "twitter_api65": ("RAPIDAPI_KEY", "TWITTER_API65_AUTH_TOKEN"),
    "store": ("DATABASE_URL",),
    "service_store": ("DATABASE_SERVICE_URL",),
}

_ENV_TO_FIELD = {
    "RAPIDAPI_KEY": "rapidapi_key",
    "TWITTER_API65_AUTH_TOKEN": "twitter_api65_auth_token",
    "DATABASE_URL": "database_url",
    "DATABASE_SERVICE_URL": "database_service_url",
}


def validate_config(
    config: AkariConfig,
    require: Iterable[str] = ("rapidapi", "store"),
) -> AkariConfig:
    """Startup readiness check.

    Args:
        config: Loaded configuration.
        require: Names from ``REQUIREMENTS`` that must be satisfied.

    Returns:
        The same config, for chaining.

    Raises:
        ConfigurationError: Listing every missing variable at once.
        KeyError: On an unknown requirement name.
    """
    missing: list[str] = []
    for name in require:
        for env_name in REQUIREMENTS[name]:
            if not getattr(config, _ENV_TO_FIELD[env_name]):
                missing.append(env_name)
    if missing:
        raise ConfigurationError(missing)
    return config


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep merge overlay into base dict. Overlay values win."""
    merged = base.copy()
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found."""
    if not path.exists():
        return {}
    with open(path) as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def load_config(config_dir: Path = _CONFIG_DIR) -> AkariConfig:
    """Build a fresh AkariConfig from YAML + environment."""
    mode = os.getenv("MODE", "prod")

    base_yaml = _load_yaml(config_dir / "settings.yaml")
    mode_yaml = _load_yaml(config_dir / f"settings.{mode}.yaml")

    merged = _deep_merge(base_yaml, mode_yaml)

    # YAML holds only nested sections; secrets and MODE come from the environment
    return AkariConfig(**merged)


@lru_cache(maxsize=1)
def get_config() -> AkariConfig:
    """Load and return the cached AkariConfig (read-only settings)."""
    return load_config()
