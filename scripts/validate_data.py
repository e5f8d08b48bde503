"""
Data file validation script.

Checks the persisted link and server documents in the data directory
(LIVEWATCH_DATA_DIR, default ./data) before a deploy.

Design rules:
- No runtime startup
- Validation only (no mutation)
- Unknown fields are ignored
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shared.platforms.models import CreatorLink, Platform, ServerConfig  # noqa: E402
from shared.storage.paths import (  # noqa: E402
    SERVER_SETTINGS_FILE,
    TWITCH_LINKS_FILE,
    YOUTUBE_LINKS_FILE,
    get_data_path,
)


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------

def _load_json(path: Path) -> Any:
    if not path.exists():
        return None

    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except ValueError as e:
        raise ValueError(f"{path.name}: invalid JSON ({e})") from e


def _error(msg: str):
    print(f"[DATA ERROR] {msg}", file=sys.stderr)


# ------------------------------------------------------------
# Validators
# ------------------------------------------------------------

def validate_links(platform: Platform, filename: str) -> bool:
    """
    Expected shape: a list of link records, e.g.
    [{"twitchUsername": "...", "twitchId": "...", "discordId": "..."}]

    Malformed records and duplicate identities are reported.
    """
    path = get_data_path(filename)
    data = _load_json(path)
    if data is None:
        return True

    if not isinstance(data, list):
        _error(f"{filename}: root value must be a list")
        return False

    ok = True
    seen = {}
    for index, record in enumerate(data):
        link = CreatorLink.from_record(platform, record)
        if link is None:
            _error(f"{filename}[{index}]: missing identity or discordId")
            ok = False
            continue
        if link.key in seen:
            _error(f"{filename}[{index}]: duplicate of entry {seen[link.key]} ({link.identity})")
            ok = False
            continue
        seen[link.key] = index
    return ok


def validate_server_settings() -> bool:
    """
    Expected shape:
    {"servers": {"<guildId>": {"channelId": "...", "liveRoleId": "...", "keywords": []}}}
    """
    data = _load_json(get_data_path(SERVER_SETTINGS_FILE))
    if data is None:
        return True

    if not isinstance(data, dict) or not isinstance(data.get("servers", {}), dict):
        _error(f"{SERVER_SETTINGS_FILE}: 'servers' must be an object")
        return False

    ok = True
    for server_id, record in data.get("servers", {}).items():
        if ServerConfig.from_record(server_id, record) is None:
            _error(f"{SERVER_SETTINGS_FILE}: server {server_id} lacks channelId or liveRoleId")
            ok = False
            continue
        keywords = record.get("keywords", [])
        if not isinstance(keywords, list):
            _error(f"{SERVER_SETTINGS_FILE}: server {server_id} 'keywords' must be a list")
            ok = False
    return ok


# ------------------------------------------------------------
# Entry point
# ------------------------------------------------------------

def main() -> int:
    results: List[bool] = []
    try:
        results.append(validate_links(Platform.TWITCH, TWITCH_LINKS_FILE))
        results.append(validate_links(Platform.YOUTUBE, YOUTUBE_LINKS_FILE))
        results.append(validate_server_settings())
    except ValueError as e:
        _error(str(e))
        results.append(False)

    if not all(results):
        print("Data validation failed.", file=sys.stderr)
        return 1

    print("Data validation passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
