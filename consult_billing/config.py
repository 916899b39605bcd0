"""Runtime configuration.

Values come from ``BILLING_*`` environment variables or a ``.env`` file.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BillingSettings(BaseSettings):
    database_url: str = "sqlite:///./billing.db"

    # Invoice numbering
    invoice_prefix: str = "INV"
    invoice_number_width: int = Field(default=5, ge=1)
    number_allocation_attempts: int = Field(default=3, ge=1)

    # Billing policy
    default_net_terms: int = Field(default=30, gt=0)
    block_empty_hourly_invoices: bool = True

    # Day boundaries are taken in this timezone
    timezone: str = "UTC"

    log_level: str = "INFO"
    allowed_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    model_config = SettingsConfigDict(
        env_prefix="BILLING_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("invoice_prefix")
    @classmethod
    def _prefix_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("invoice_prefix must not be blank")
        return value


@lru_cache
def get_settings() -> BillingSettings:
    return BillingSettings()
