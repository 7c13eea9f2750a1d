"""Webhook queue settings configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class QueueSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    WEBHOOK_QUEUE_NAME: str = "webhook-processing"
    WEBHOOK_MAX_ATTEMPTS: int = 5
    WEBHOOK_BACKOFF_SECONDS: int = 60
    WEBHOOK_JOB_TIMEOUT: int = 300
    WEBHOOK_RESULT_TTL: int = 7 * 24 * 3600
    WEBHOOK_FAILURE_TTL: int = 30 * 24 * 3600

    @property
    def retry_intervals(self) -> list[int]:
        """Exponential backoff between attempts: 60s, 120s, 240s, ..."""
        return [
            self.WEBHOOK_BACKOFF_SECONDS * (2**n)
            for n in range(self.WEBHOOK_MAX_ATTEMPTS - 1)
        ]


__all__ = ["QueueSettings"]
