"""
Runtime settings read from the environment.

Entrypoints call `load_dotenv()` before `load_settings()`; this module
itself is import-safe (no side effects).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Optional

from shared.logging.logger import get_logger
from shared.storage.paths import get_data_dir

log = get_logger("shared.config.settings")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    # Discord
    discord_token: Optional[str] = None
    discord_client_id: Optional[str] = None
    discord_client_secret: Optional[str] = None
    redirect_uri: Optional[str] = None

    # Platforms
    twitch_client_id: Optional[str] = None
    twitch_client_secret: Optional[str] = None
    youtube_api_key: Optional[str] = None
    youtube_account_limit: int = 0

    # YouTube WebSub
    youtube_webhook_secret: Optional[str] = None
    youtube_websub_callback_url: Optional[str] = None
    webhook_forward_url: Optional[str] = None
    webhook_forward_verify_tls: bool = True
    internal_push_token: Optional[str] = None

    # Storage
    data_dir: Path = Path("data")

    # HTTP listeners
    callback_host: str = "0.0.0.0"
    callback_port: int = 3000
    webhook_host: str = "0.0.0.0"
    webhook_port: int = 3001

    # Cadence (seconds)
    twitch_poll_seconds: float = 60.0
    youtube_poll_seconds: float = 600.0
    websub_renew_seconds: float = 86400.0


# Setting attribute -> environment key, used by require()
ENV_KEYS = {
    "discord_token": "DISCORD_TOKEN",
    "discord_client_id": "DISCORD_CLIENT_ID",
    "discord_client_secret": "DISCORD_CLIENT_SECRET",
    "redirect_uri": "REDIRECT_URI",
    "twitch_client_id": "TWITCH_CLIENT_ID",
    "twitch_client_secret": "TWITCH_CLIENT_SECRET",
    "youtube_api_key": "YOUTUBE_API_KEY",
    "youtube_webhook_secret": "YOUTUBE_WEBHOOK_SECRET",
    "youtube_websub_callback_url": "YOUTUBE_WEBSUB_CALLBACK_URL",
    "webhook_forward_url": "WEBHOOK_FORWARD_URL",
    "internal_push_token": "INTERNAL_PUSH_TOKEN",
}


def _str(env: Mapping[str, str], key: str) -> Optional[str]:
    value = env.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    value = _str(env, key)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    log.warning(f"{key}={value!r} is not a boolean; using {default}")
    return default


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    value = _str(env, key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        log.warning(f"{key}={value!r} is not an integer; using {default}")
        return default


def _seconds(env: Mapping[str, str], key: str, default: float) -> float:
    value = _str(env, key)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        log.warning(f"{key}={value!r} is not a number; using {default}")
        return default
    if parsed <= 0:
        log.warning(f"{key} must be positive; using {default}")
        return default
    return parsed


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env

    return Settings(
        discord_token=_str(env, "DISCORD_TOKEN"),
        discord_client_id=_str(env, "DISCORD_CLIENT_ID"),
        discord_client_secret=_str(env, "DISCORD_CLIENT_SECRET"),
        redirect_uri=_str(env, "REDIRECT_URI"),
        twitch_client_id=_str(env, "TWITCH_CLIENT_ID"),
        twitch_client_secret=_str(env, "TWITCH_CLIENT_SECRET"),
        youtube_api_key=_str(env, "YOUTUBE_API_KEY"),
        youtube_account_limit=max(_int(env, "YOUTUBE_ACCOUNT_LIMIT", 0), 0),
        youtube_webhook_secret=_str(env, "YOUTUBE_WEBHOOK_SECRET"),
        youtube_websub_callback_url=_str(env, "YOUTUBE_WEBSUB_CALLBACK_URL"),
        webhook_forward_url=_str(env, "WEBHOOK_FORWARD_URL"),
        webhook_forward_verify_tls=_bool(env, "WEBHOOK_FORWARD_VERIFY_TLS", True),
        internal_push_token=_str(env, "INTERNAL_PUSH_TOKEN"),
        data_dir=get_data_dir(_str(env, "LIVEWATCH_DATA_DIR")),
        callback_host=_str(env, "CALLBACK_HOST") or "0.0.0.0",
        callback_port=_int(env, "CALLBACK_PORT", 3000),
        webhook_host=_str(env, "WEBHOOK_HOST") or "0.0.0.0",
        webhook_port=_int(env, "WEBHOOK_PORT", 3001),
        twitch_poll_seconds=_seconds(env, "TWITCH_POLL_SECONDS", 60.0),
        youtube_poll_seconds=_seconds(env, "YOUTUBE_POLL_SECONDS", 600.0),
        websub_renew_seconds=_seconds(env, "WEBSUB_RENEW_SECONDS", 86400.0),
    )


def require(settings: Settings, names: Iterable[str]) -> None:
    """Fail fast when a runtime starts without its mandatory settings."""
    missing = [
        ENV_KEYS.get(name, name.upper())
        for name in names
        if not getattr(settings, name, None)
    ]
    if missing:
        raise RuntimeError(f"Missing required settings: {', '.join(missing)}")
