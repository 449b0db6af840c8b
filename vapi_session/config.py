"""Configuration helpers for the Vapi session client."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_API_BASE_URL = "https://api.vapi.ai"


def load_env_files(root: Path) -> None:
    """Fill unset variables from ``root/.env.local`` then ``root/.env``.

    ``.env.local`` wins over ``.env``, but neither overrides a variable the
    host process already set.
    """

    load_dotenv(root / ".env.local", override=False)
    load_dotenv(root / ".env", override=False)


load_env_files(Path.cwd())


@dataclass
class Settings:
    """Centralized environment-driven configuration.

    Values are read once when the module is imported. Callers that need
    different values per client pass them to ``VapiClient`` directly.
    """

    vapi_public_key: Optional[str] = os.getenv("VAPI_PUBLIC_KEY")
    vapi_api_base_url: str = os.getenv("VAPI_API_BASE_URL", DEFAULT_API_BASE_URL)
    client_creation_timeout_s: float = float(os.getenv("VAPI_CLIENT_CREATION_TIMEOUT_S", "10"))
    # Applies to the control-plane registration request only.
    http_timeout_s: float = float(os.getenv("VAPI_HTTP_TIMEOUT_S", "30"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance to avoid repeated environment reads."""

    return Settings()


settings = get_settings()


@dataclass(frozen=True)
class ClientConfig:
    """Immutable per-client configuration shared by every ``start()`` call."""

    public_key: str
    api_base_url: str = DEFAULT_API_BASE_URL
    http_timeout_s: float = 30.0

    def __post_init__(self) -> None:
        if not self.public_key:
            raise ValueError("public_key is required")
        if not self.api_base_url.startswith(("http://", "https://")):
            raise ValueError("api_base_url must include http/https scheme")

    def registration_url(self, api_base_url: Optional[str] = None) -> str:
        base = (api_base_url or self.api_base_url).rstrip("/")
        return f"{base}/call/web"


def configure_logging(level: Optional[str] = None) -> None:
    """Apply a basic logging configuration at ``level`` (defaults to ``LOG_LEVEL``)."""

    logging.basicConfig(level=(level or settings.log_level).upper())
