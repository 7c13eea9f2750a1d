"""Cron endpoint settings configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import SecretStr


class CronSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    CRON_SECRET: SecretStr = SecretStr("")
    BILLING_PERIOD_DAYS: int = 30
