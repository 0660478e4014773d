from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Verifier settings read from the environment.

    Notes:
    - Every field can be overridden with an ``OIDC_``-prefixed variable,
      e.g. ``OIDC_ISSUER`` or ``OIDC_LEEWAY_SECONDS``.
    - ``client_id`` accepts a comma-separated list when several clients are allowed.
    - No secrets are needed: verification only uses the issuer's public keys.
    """

    model_config = SettingsConfigDict(env_prefix="OIDC_", extra="ignore")

    issuer: str | None = None
    audience: str | None = None
    client_id: str | None = None
    nonce: str | None = None
    leeway_seconds: int = 120
    cache_ttl_seconds: int = 300
    cleanup_interval_seconds: int = 300
    discovery_path: str = ".well-known/openid-configuration"
    http_timeout_seconds: float = 10.0
    log_level: str = "INFO"
    log_to_stderr: bool = False

    def client_ids(self) -> list[str]:
        if not self.client_id:
            return []
        return [c.strip() for c in self.client_id.split(",") if c.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
