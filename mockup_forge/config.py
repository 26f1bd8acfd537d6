"""Environment-driven configuration for the webhook service and workers."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings read from the environment (and ``.env`` when present).

    ``shopify_webhook_secret`` has no default: building a Settings without
    it raises a validation error, so neither the server nor the workers can
    start unconfigured.
    """

    shopify_webhook_secret: str = Field(min_length=1)

    # HTTP
    host: str = "0.0.0.0"
    port: int = 3000

    # Queue backend
    redis_host: str = "127.0.0.1"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0
    queue_name: str = "shopify-webhook"

    # Catalog
    shopify_admin_domain: str = ""
    shopify_admin_api_access_token: str = ""
    shopify_store_domain_url: str = ""
    shopify_api_version: str = "2025-01"
    http_timeout_seconds: float = 30.0
    catalog_max_retries: int = Field(default=0, ge=0, le=10)

    # Derivatives
    artwork_product_type: str = "Oeuvre"
    derivative_vendor: str = "Anne Mondy"
    templates_dir: Path = Path("public/templates")

    # Jobs
    job_timeout_seconds: float = Field(default=900.0, gt=0)
    job_max_attempts: int = Field(default=5, ge=1)
    job_backoff_seconds: float = Field(default=5.0, ge=0)
    job_backoff_max_seconds: float = Field(default=600.0, ge=0)
    claim_enabled: bool = True

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def redis_url(self) -> str:
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the singleton Settings."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root.addHandler(handler)
    root.setLevel(level.upper())
