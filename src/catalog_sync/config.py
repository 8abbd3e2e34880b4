# catalog_sync/config.py

"""Shared configuration and environment setup."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from os import getenv
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(override=True)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://musicbrainz.org/ws/2"
DEFAULT_TIMEOUT = 30.0
DEFAULT_STALENESS_DAYS = 30


@dataclass(slots=True, frozen=True)
class Settings:
    """Runtime settings for a sync run, resolved from the environment."""

    user_agent_app: str = "catalog-sync"
    user_agent_version: str = "0.1.0"
    user_agent_contact: str = "mailto:you@example.com"
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    verify_tls: bool = True
    staleness_days: int = DEFAULT_STALENESS_DAYS
    catalog_dir: Path = Path("data/catalog")

    @property
    def user_agent(self) -> str:
        # The service deprioritizes clients without app name, version and contact.
        return (
            f"{self.user_agent_app}/{self.user_agent_version} "
            f"( {self.user_agent_contact} )"
        )


def load_settings() -> Settings:
    """Build Settings from environment variables (and .env, if present)."""
    verify_tls = getenv("MB_VERIFY_TLS", "true").lower() == "true"
    if not verify_tls:
        logger.warning(
            "Reference service TLS verification is DISABLED (MB_VERIFY_TLS=false). "
            "Do not use this setting in production."
        )

    return Settings(
        user_agent_app=getenv("USER_AGENT_APP", "catalog-sync"),
        user_agent_version=getenv("USER_AGENT_VERSION", "0.1.0"),
        user_agent_contact=getenv("USER_AGENT_CONTACT", "mailto:you@example.com"),
        base_url=getenv("MB_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        timeout=float(getenv("MB_TIMEOUT", str(DEFAULT_TIMEOUT))),
        verify_tls=verify_tls,
        staleness_days=int(getenv("SYNC_STALENESS_DAYS", str(DEFAULT_STALENESS_DAYS))),
        catalog_dir=Path(getenv("CATALOG_SYNC_CATALOG_DIR", "data/catalog")),
    )


def get_project_root() -> Path:
    """Return the project root directory.

    Prefers CATALOG_SYNC_PROJECT_ROOT env var. Falls back to current working directory.
    """
    if root := getenv("CATALOG_SYNC_PROJECT_ROOT"):
        return Path(root).resolve()
    return Path.cwd()
