"""
Configuration for Invoice Desk.

Every setting can be overridden with an INVOICE_DESK_* environment variable
or a .env file, e.g. INVOICE_DESK_DEFAULT_TAX_RATE=5.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="INVOICE_DESK_", env_file=".env", extra="ignore"
    )

    # Invoice defaults
    default_tax_rate: float = Field(default=18.0, ge=0, le=100)  # GST
    payment_terms_days: int = Field(default=30, ge=0)
    currency_symbol: str = Field(default="₹")

    # Hosted records API; the in-memory store is used when the URL is unset
    records_api_url: Optional[str] = Field(default=None)
    records_api_key: Optional[str] = Field(default=None)
    records_project_id: Optional[str] = Field(default=None)
    request_timeout: float = Field(default=10.0)

    # Local JSON data file used by the CLI
    data_file: str = Field(default="invoice_desk_data.json")

    log_level: str = Field(default="INFO")


@lru_cache
def get_settings() -> Settings:
    return Settings()
