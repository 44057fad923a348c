"""Application configuration management."""
import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

CONFIG_FILE_ENV = "PIZZA_CONFIG_FILE"
DEFAULT_SOURCE = "jwt-pizza-service"
DEFAULT_SCOPE_NAME = "jwt-pizza-service-metrics"


class MetricsConfig(BaseModel):
    """Collector endpoint and aggregation limits for the metrics reporter."""

    model_config = {"extra": "ignore"}

    source: str = Field(DEFAULT_SOURCE, description="Label identifying this deployment")
    url: Optional[str] = Field(
        default=None,
        description="OTLP/HTTP JSON metrics endpoint; reporting is disabled when unset",
    )
    api_key: Optional[str] = Field(default=None, description="Bearer token sent to the collector")
    interval_seconds: float = Field(30.0, gt=0, description="Seconds between reporting cycles")
    timeout_seconds: float = Field(10.0, gt=0, description="HTTP timeout for one delivery")
    service_version: str = Field("1.0.0", description="Reported service.version attribute")
    scope_name: str = Field(DEFAULT_SCOPE_NAME, description="Instrumentation scope name")
    currency: str = Field("USD", description="Unit attached to revenue metrics")
    activity_expiry_seconds: float = Field(
        300.0,
        gt=0,
        description="Idle time after which a user stops counting as active",
    )
    latency_hard_cap: int = Field(100, gt=0, description="Max latency samples kept while recording")
    latency_retention_cap: int = Field(
        50,
        gt=0,
        description="Latency samples carried over into the next period",
    )


def _get_config_file_path() -> Path:
    """Get the absolute path to the JSON configuration file."""
    override = os.environ.get(CONFIG_FILE_ENV)
    if override:
        return Path(override)
    project_root = Path(__file__).parent.parent.parent
    return project_root / "config.json"


def _load_config_from_json() -> dict[str, Any]:
    """Load raw settings from the JSON config file, if one exists."""
    config_path = _get_config_file_path()
    if not config_path.exists():
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {config_path}: {e}")
    except Exception as e:
        raise RuntimeError(f"Error loading configuration from {config_path}: {e}")
    if not isinstance(data, dict):
        raise ValueError(f"Invalid configuration in {config_path}: expected a JSON object")
    return data


class JsonFileSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by the JSON config file."""

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        return _load_config_from_json()


class Settings(BaseSettings):
    """Resolved application settings. Environment variables win over the JSON file."""

    model_config = SettingsConfigDict(
        env_prefix="PIZZA_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    host: str = Field("0.0.0.0", description="Application bind address")
    port: int = Field(3000, description="Application bind port")
    log_level: str = Field("INFO", description="Root logging level")
    api_token: Optional[str] = Field(
        default=None,
        description="Optional token guarding the operational metrics endpoint",
    )
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonFileSettingsSource(settings_cls),
        )


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return a cached Settings instance (blocking, use at startup only)."""
    return Settings()
