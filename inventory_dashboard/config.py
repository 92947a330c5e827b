# inventory_dashboard/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .constants import DEFAULT_IDLE_TIMEOUT_MS, DEFAULT_WEBHOOK_PATH
from .errors import ConfigurationError

BASE_DIR = Path(__file__).resolve().parent
DEFAULT_ENV_FILE = BASE_DIR.parent / ".env"

ENV_SUPABASE_URL = "INVENTORY_SUPABASE_URL"
ENV_SUPABASE_KEY = "INVENTORY_SUPABASE_ANON_KEY"
ENV_WEBHOOK_URL = "INVENTORY_WEBHOOK_URL"
ENV_WEBHOOK_PATH = "INVENTORY_WEBHOOK_PATH"
ENV_LOG_LEVEL = "INVENTORY_LOG_LEVEL"
ENV_IDLE_TIMEOUT = "INVENTORY_IDLE_TIMEOUT_MS"


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_anon_key: str
    webhook_base_url: str
    webhook_path: str = DEFAULT_WEBHOOK_PATH
    log_level: str = "INFO"
    idle_timeout_ms: int = DEFAULT_IDLE_TIMEOUT_MS

    @property
    def webhook_url(self) -> str:
        return f"{self.webhook_base_url.rstrip('/')}/{self.webhook_path.lstrip('/')}"


def load_settings(
    env_file: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Build Settings from the process environment.

    A `.env` file (explicit path, else the one next to the package) is loaded
    first without overriding variables that are already set. Pass `environ`
    to read from a plain mapping instead (tests).
    """
    if environ is None:
        load_dotenv(env_file or DEFAULT_ENV_FILE, override=False)
        environ = os.environ

    def _get(key: str, default: str = "") -> str:
        return (environ.get(key) or default).strip()

    required = {
        ENV_SUPABASE_URL: _get(ENV_SUPABASE_URL),
        ENV_SUPABASE_KEY: _get(ENV_SUPABASE_KEY),
        ENV_WEBHOOK_URL: _get(ENV_WEBHOOK_URL),
    }
    missing = [k for k, v in required.items() if not v]
    if missing:
        raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")

    raw_idle = _get(ENV_IDLE_TIMEOUT, str(DEFAULT_IDLE_TIMEOUT_MS))
    try:
        idle_timeout_ms = int(raw_idle)
    except ValueError as e:
        raise ConfigurationError(f"{ENV_IDLE_TIMEOUT} must be an integer, got {raw_idle!r}") from e

    return Settings(
        supabase_url=required[ENV_SUPABASE_URL],
        supabase_anon_key=required[ENV_SUPABASE_KEY],
        webhook_base_url=required[ENV_WEBHOOK_URL],
        webhook_path=_get(ENV_WEBHOOK_PATH, DEFAULT_WEBHOOK_PATH),
        log_level=_get(ENV_LOG_LEVEL, "INFO").upper(),
        idle_timeout_ms=max(0, idle_timeout_ms),
    )
