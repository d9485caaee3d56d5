"""Runtime configuration loaded from environment variables.

All settings have defaults suitable for local development. In Lambda the
values are injected as function environment variables.
"""

import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field


class Settings(BaseModel):
    """Service configuration."""

    model_config = ConfigDict(frozen=True)

    environment: str = Field(default="dev", description="Deployment environment")
    processor_base_url: str = Field(
        default="https://api.mercadopago.com",
        description="Mercado Pago API base URL",
    )
    processor_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for each Mercado Pago API call",
    )
    credential_probe_budget_seconds: float = Field(
        default=25.0,
        gt=0,
        description="Upper bound on the time spent probing tenant credentials",
    )
    messaging_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for each WhatsApp send attempt",
    )
    phone_country_code: str = Field(
        default="55",
        description="Country calling code used to build phone variants",
    )
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        values: dict[str, object] = {}

        env_map = {
            "ENVIRONMENT": "environment",
            "MERCADOPAGO_API_BASE_URL": "processor_base_url",
            "MERCADOPAGO_TIMEOUT_SECONDS": "processor_timeout_seconds",
            "CREDENTIAL_PROBE_BUDGET_SECONDS": "credential_probe_budget_seconds",
            "WHATSAPP_TIMEOUT_SECONDS": "messaging_timeout_seconds",
            "PHONE_COUNTRY_CODE": "phone_country_code",
        }
        for env_name, field_name in env_map.items():
            raw = os.getenv(env_name)
            if raw:
                values[field_name] = raw

        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            values["cors_allow_origins"] = [
                origin.strip() for origin in origins.split(",") if origin.strip()
            ]

        return cls.model_validate(values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the shared Settings instance.

    Call ``get_settings.cache_clear()`` in tests after changing the
    environment.
    """
    return Settings.from_env()
