"""Runtime configuration.

Settings come from three layers, later ones winning:

1. dataclass defaults
2. an optional YAML file named by ``MODCERT_CONFIG``
3. ``MODCERT_*`` environment variables
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_DOMAINS = ["wbscodingschool.com", "wbs.de"]


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer, using %d", name, raw, default)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name, "")
    if not raw:
        return list(default)
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    data_dir: Path = field(default_factory=lambda: Path.home() / ".modcert" / "data")
    store_backend: str = "json"  # json | memory
    allowed_email_domains: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_DOMAINS))
    rate_limit_max: int = 10
    rate_limit_window: int = 60
    duplicate_window: int = 30
    window_store: str = "memory"  # memory | redis
    redis_url: str = "redis://localhost:6379/0"
    audit_async: bool = True
    log_level: str = "INFO"
    token_ttl_hours: int = 24

    @classmethod
    def from_file(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML mapping; unknown keys are ignored."""
        with open(path) as f:
            data: Any = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

        known = {f.name for f in dataclasses.fields(cls)}
        for key in sorted(set(data) - known):
            logger.warning("Ignoring unknown config key %r in %s", key, path)

        values = {k: v for k, v in data.items() if k in known}
        if "data_dir" in values:
            values["data_dir"] = Path(values["data_dir"]).expanduser()
        return cls(**values)

    @classmethod
    def from_env(cls) -> "Settings":
        config_path = os.environ.get("MODCERT_CONFIG", "")
        base = cls.from_file(config_path) if config_path else cls()

        data_dir = os.environ.get("MODCERT_DATA_DIR", "")
        return cls(
            data_dir=Path(data_dir).expanduser() if data_dir else base.data_dir,
            store_backend=os.environ.get("MODCERT_STORE", base.store_backend).lower(),
            allowed_email_domains=_env_list("MODCERT_ALLOWED_EMAIL_DOMAINS", base.allowed_email_domains),
            rate_limit_max=_env_int("MODCERT_RATE_LIMIT_MAX", base.rate_limit_max),
            rate_limit_window=_env_int("MODCERT_RATE_LIMIT_WINDOW", base.rate_limit_window),
            duplicate_window=_env_int("MODCERT_DUPLICATE_WINDOW", base.duplicate_window),
            window_store=os.environ.get("MODCERT_WINDOW_STORE", base.window_store).lower(),
            redis_url=os.environ.get("MODCERT_REDIS_URL", base.redis_url),
            audit_async=_env_bool("MODCERT_AUDIT_ASYNC", base.audit_async),
            log_level=os.environ.get("MODCERT_LOG_LEVEL", base.log_level),
            token_ttl_hours=_env_int("MODCERT_TOKEN_TTL_HOURS", base.token_ttl_hours),
        )
