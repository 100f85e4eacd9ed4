"""
Service settings, read from ``OUTAGE_MONITOR_*`` environment variables.

A ``.env`` file in the working directory is read as well; variables already
set in the environment win over it.
"""

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="OUTAGE_MONITOR_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    log_level: str = "INFO"
    dynamo_access_key: str | None = None
    dynamo_secret_access_key: str | None = None
    dynamo_region: str = "eu-central-1"
    # Set for DynamoDB Local.
    dynamo_endpoint_url: str | None = None
    table_name: str = "water.gov.ge"
    refresh_interval: int = Field(default=3600, ge=1)
    http_port: int = Field(default=8080, ge=1, le=65535)
    metrics_port: int = Field(default=9100, ge=1, le=65535)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


def load_settings(dotenv: bool = True) -> Settings:
    if dotenv:
        return Settings()
    return Settings(_env_file=None)


def setup_logging(level: str = "INFO"):
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
