"""
config.py — Environment-driven Settings for the Storefront Service

All runtime configuration is read once at process start from environment
variables (or an optional `.env` file). Provider credentials live here only;
they are never echoed to clients and are redacted in startup logs.
"""

import os
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PAYPAL_HOSTS = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}


class Settings(BaseSettings):
    """Typed view of the service configuration."""

    paypal_client_id: str = ""
    paypal_secret: str = ""
    paypal_env: str = "sandbox"
    paypal_base_url: Optional[str] = None

    catalog_url: str = "http://localhost:8002/catalog.tsv"
    currency: str = "EUR"

    http_timeout: float = 10.0
    auth_retries: int = 1
    max_quantity: int = 999

    log_level: str = "INFO"
    log_file: str = "storefront.log"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("paypal_env")
    @classmethod
    def _known_env(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in PAYPAL_HOSTS:
            raise ValueError(f"PAYPAL_ENV must be one of {sorted(PAYPAL_HOSTS)}, got {value!r}")
        return value

    @property
    def paypal_api_base(self) -> str:
        """Base URL of the PayPal REST API for the configured environment."""
        if self.paypal_base_url:
            return self.paypal_base_url.rstrip("/")
        return PAYPAL_HOSTS[self.paypal_env]


def _safe_env(name: str) -> str:
    value = os.getenv(name)
    if value is None:
        return "<unset>"
    if any(secret in name for secret in ("KEY", "SECRET", "PASSWORD", "TOKEN", "CLIENT_ID")):
        return "<redacted>"
    return value


def redacted_env(keys: list[str]) -> dict[str, str]:
    """Return the selected environment variables with secret-like values masked."""
    return {key: _safe_env(key) for key in keys}


settings = Settings()
