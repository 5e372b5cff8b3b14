"""Constants and environment-derived settings for lmv."""

import os
from dataclasses import dataclass
from pathlib import Path

UI_DIR = Path(__file__).resolve().parent / "ui"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
MAX_BODY_SIZE = 10 * 1024 * 1024

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
GIST_DESCRIPTION = "Shared via lmv: {filename}"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class Settings:
    github_token: str | None = None
    github_api_url: str = GITHUB_API_URL
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def share_configured(self) -> bool:
        return bool(self.github_token)


def load_settings(environ=None) -> Settings:
    """Read settings from the environment once, at startup."""
    if environ is None:
        environ = os.environ

    token = (environ.get("GITHUB_TOKEN") or "").strip() or None
    api_url = (environ.get("LMV_GITHUB_API_URL") or "").strip().rstrip("/")
    log_level = (environ.get("LMV_LOG_LEVEL") or "").strip().upper()
    if log_level not in LOG_LEVELS:
        log_level = DEFAULT_LOG_LEVEL

    return Settings(
        github_token=token,
        github_api_url=api_url or GITHUB_API_URL,
        log_level=log_level,
    )
