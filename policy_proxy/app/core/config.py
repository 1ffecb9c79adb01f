from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from repo root if present
ENV_PATH = Path(__file__).resolve().parents[3] / ".env"
if ENV_PATH.exists():
    load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseSettings):
    """Mock policy proxy settings (loaded from env).

    Serving:
      - PORT / HOST pick the listen address.
      - CACHE_TTL_SEC controls how long a generated menu is replayed per store.

    Hardening (off by default):
      - MENU_CACHE_MAX_ENTRIES / IDEMPOTENCY_MAX_ENTRIES cap the in-memory maps
        with LRU eviction. 0 keeps them unbounded.
    """

    # --- service ---
    service_name: str = Field(default="mock-policy-proxy", description="Service name")
    version: str = Field(default="0.1.0", description="Service version")
    environment: str = Field(default="dev", description="Environment name (dev/ci/staging)")
    host: str = Field(default="0.0.0.0", description="API bind host")
    port: int = Field(default=8080, ge=0, le=65535, description="API bind port")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: str = Field(default="text", description="text|json")

    # --- menu cache ---
    cache_ttl_sec: int = Field(default=600, ge=0, description="Menu cache TTL (seconds)")
    menu_cache_max_entries: int = Field(
        default=0, ge=0,
        description="Max cached store menus; 0 = unbounded"
    )

    # --- idempotency ledger ---
    idempotency_max_entries: int = Field(
        default=0, ge=0,
        description="Max remembered idempotency keys; 0 = unbounded"
    )

    # --- CORS (agent dev consoles hit the proxy from the browser) ---
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_methods: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_headers: List[str] = Field(default_factory=lambda: ["*"])

    # pydantic-settings v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ---- Convenience helpers ----
    @property
    def cache_ttl_ms(self) -> int:
        return self.cache_ttl_sec * 1000


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
