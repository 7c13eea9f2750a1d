"""Payment provider settings configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import SecretStr


class PaymentSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Standard Webhooks secret, usually "whsec_<base64>"
    POLAR_WEBHOOK_SECRET: SecretStr = SecretStr("")

    RAZORPAY_WEBHOOK_SECRET: SecretStr = SecretStr("")
    RAZORPAY_KEY_SECRET: SecretStr = SecretStr("")

    WEBHOOK_TOLERANCE_SECONDS: int = 300
    WEBHOOK_MAX_PAYLOAD_BYTES: int = 1024 * 1024
