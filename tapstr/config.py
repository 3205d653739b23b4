"""Runtime settings, overridable through ``TAPSTR_*`` environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TapstrSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TAPSTR_", env_file=".env", extra="ignore")

    # seconds a swap may stay open before any further step aborts it
    swap_timeout: float = Field(default=3600.0, gt=0)
    max_nonce_attempts: int = Field(default=64, ge=1)
    # sats; P2TR outputs below this are non-standard
    dust_limit: int = Field(default=546, ge=0)
    nostr_kind: int = Field(default=1, ge=0)


settings = TapstrSettings()
