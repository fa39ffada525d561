"""Configuration management for the invoice tool."""

import logging
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

import pycountry

from hisaab.pricing import NegativeInputPolicy

logger = logging.getLogger(__name__)


class HisaabConfig(BaseSettings):
    """Configuration for invoice editing and storage."""

    model_config = SettingsConfigDict(
        env_prefix="HISAAB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    username: str = Field(
        default="default",
        description="User whose invoices are read and written (mock login)",
    )

    data_dir: Path = Field(
        default=Path.cwd() / "data",
        description="Directory holding one JSON document per user",
    )

    storage_backend: Literal["json", "memory"] = Field(
        default="json",
        description="Invoice store: json files under data_dir, or process memory",
    )

    negative_inputs: NegativeInputPolicy = Field(
        default=NegativeInputPolicy.PROPAGATE,
        description="propagate: negative quantities price as credit lines; clamp: treat as 0",
    )

    currency: str = Field(default="PKR", description="ISO 4217 code for display")

    currency_symbol: str = Field(default="Rs.", description="Prefix for displayed amounts")

    api_host: str = Field(
        default="0.0.0.0",
        description="API host address",
    )

    api_port: int = Field(
        default=8000,
        description="API port",
    )

    allowed_origins: str = Field(
        default="http://localhost:5173",
        description="Comma-separated CORS origins for the API",
    )

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Validate the currency is a known ISO 4217 code."""
        code = v.strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise ValueError(
                f"Invalid currency code format: '{v}'. "
                f"Must be a 3-letter ISO 4217 code (e.g., PKR, USD)."
            )
        valid_iso_codes = {c.alpha_3 for c in pycountry.currencies}
        if code not in valid_iso_codes:
            raise ValueError(
                f"Invalid ISO 4217 code: {code}. "
                f"See https://en.wikipedia.org/wiki/ISO_4217"
            )
        return code

    def get_currency_label(self) -> str:
        """Display label such as ``USD (US Dollar)``."""
        currency = pycountry.currencies.get(alpha_3=self.currency)
        return f"{self.currency} ({currency.name})" if currency else self.currency

    def get_allowed_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    def validate_config(self) -> None:
        """Validate configuration at startup. Raises ValueError if invalid."""
        errors = []

        if not self.username.strip():
            errors.append("USERNAME cannot be empty")

        if any(ch in self.username for ch in "/\\"):
            errors.append("USERNAME cannot contain path separators")

        if self.storage_backend == "json" and self.data_dir.exists() and not self.data_dir.is_dir():
            errors.append(f"DATA_DIR is not a directory: {self.data_dir}")

        if self.api_port < 1 or self.api_port > 65535:
            errors.append("API_PORT must be between 1 and 65535")

        if errors:
            raise ValueError(
                "Configuration validation failed:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )


_config_instance = None


def get_config() -> HisaabConfig:
    """Get or create global configuration instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = HisaabConfig()
        _config_instance.validate_config()
        logger.info("Configuration validated successfully")
    return _config_instance


def reload_config() -> HisaabConfig:
    """Reload configuration (useful for testing)."""
    global _config_instance
    _config_instance = HisaabConfig()
    return _config_instance
