"""
mediconnect_access.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., JWT secret).
- Refuse the documented default JWT secret outside of dev/test.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Documented fallback; only acceptable when env is "dev" or "test".
DEFAULT_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseSettings):
    """
    Enterprise pattern:
    - Strict env-driven configuration
    - Defaults safe for local dev
    - Single settings object injected across layers
    """

    model_config = SettingsConfigDict(env_prefix="MEDICONNECT_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "mediconnect-access"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080
    # Comma-separated proxy addresses allowed to set X-Forwarded-For.
    trusted_proxies: str = "127.0.0.1"

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "mediconnect"
    jwt_audience: str = "mediconnect-api"
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, repr=False)
    jwt_ttl_minutes: int = Field(default=24 * 60, ge=1)
    revocation_enabled: bool = True

    # Audit trail persistence: "memory" keeps records for the process lifetime only.
    audit_backend: Literal["memory", "sql"] = "sql"
    database_url: str = "sqlite+aiosqlite:///./mediconnect_audit.db"

    # Demo accounts (patient@example.com, doctor@example.com, ...) for local use.
    seed_demo_users: bool = True

    @model_validator(mode="after")
    def _reject_default_secret_in_prod(self) -> Settings:
        if self.env == "prod" and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise ValueError("MEDICONNECT_JWT_SECRET must be set when env=prod")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every layer receives the same Settings object; tests construct their own
# instance and pass it to `api.app.create_app`.
