"""Configuration for MetricResolver.

settings come from, highest priority first: constructor arguments, METRICRESOLVER_*
env vars, then the YAML file METRICRESOLVER_CONFIG points at (same format as the
query files, so one yaml reader covers both).
"""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

CONFIG_ENV_VAR = "METRICRESOLVER_CONFIG"


class Settings(BaseSettings):
    """Defaults applied while building requests and console links."""

    model_config = SettingsConfigDict(env_prefix="METRICRESOLVER_", extra="ignore")

    default_region: str = Field(default="us-east-1", description="Region used when neither link context nor query sets one")
    default_statistic: str = Field(default="Average", description="Statistic for search queries that leave it unset")
    default_period: int = Field(default=300, ge=1, description="Period in seconds for search queries that leave it unset")
    console_domain: str = Field(default="console.aws.amazon.com", description="Console host suffix for deep links")
    link_view: str = Field(default="timeSeries", description="Chart view used when the CLI builds link contexts")
    log_level: str = Field(default="WARNING", description="Log level for the CLI")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [init_settings, env_settings]
        config_path = os.environ.get(CONFIG_ENV_VAR)
        if config_path:
            # the yaml source quietly skips missing files, we'd rather hear about it
            if not Path(config_path).is_file():
                raise FileNotFoundError(f"Config file not found: {config_path}")
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=config_path))
        return tuple(sources)


@lru_cache
def get_settings() -> Settings:
    """Settings for the CLI and for components built without explicit settings."""
    return Settings()
