"""
Per-guild announcement settings (serverSettings.json).

Layout:
    {"servers": {"<guildId>": {"channelId", "liveRoleId", "keywords"}}}
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

from shared.logging.logger import get_logger
from shared.platforms.models import ServerConfig
from shared.storage.json_document import JsonDocument
from shared.storage.paths import SERVER_SETTINGS_FILE, get_data_path

log = get_logger("shared.server_settings")


def _default() -> Dict[str, Any]:
    return {"servers": {}}


class ServerSettingsStore:
    def __init__(self, data_dir: Optional[Path | str] = None):
        self._document = JsonDocument(
            get_data_path(SERVER_SETTINGS_FILE, data_dir), default=_default
        )
        self._write_lock = asyncio.Lock()

    async def _load_raw(self) -> Dict[str, Any]:
        raw = await self._document.load()
        if not isinstance(raw, dict):
            log.warning(f"{self._document.path} is not an object; using defaults")
            return _default()
        servers = raw.get("servers")
        if not isinstance(servers, dict):
            raw["servers"] = {}
        return raw

    async def load_servers(self) -> List[ServerConfig]:
        """Return every complete server config. Raises PersistenceError."""
        raw = await self._load_raw()
        configs: List[ServerConfig] = []
        for server_id, record in raw["servers"].items():
            config = ServerConfig.from_record(server_id, record)
            if config is None:
                log.debug(f"Skipping incomplete settings for server {server_id}")
                continue
            configs.append(config)
        return configs

    async def get(self, server_id: str) -> Optional[ServerConfig]:
        raw = await self._load_raw()
        record = raw["servers"].get(str(server_id))
        return ServerConfig.from_record(str(server_id), record) if record else None

    async def save_server(
        self,
        server_id: str,
        announce_channel_id: str,
        live_role_id: str,
    ) -> ServerConfig:
        """Create or overwrite channel + role, keeping any existing keywords."""
        async with self._write_lock:
            raw = await self._load_raw()
            current = raw["servers"].get(str(server_id)) or {}
            record = dict(current) if isinstance(current, dict) else {}
            record["channelId"] = str(announce_channel_id)
            record["liveRoleId"] = str(live_role_id)
            record.setdefault("keywords", [])
            raw["servers"][str(server_id)] = record
            await self._document.save(raw)

        log.info(
            f"Server {server_id} configured: channel={announce_channel_id} "
            f"role={live_role_id}"
        )
        return ServerConfig.from_record(str(server_id), record)

    async def set_keywords(self, server_id: str, keywords: List[str]) -> Optional[ServerConfig]:
        """
        Replace the keyword filter for a configured server.
        Returns None when the server has not run /setup yet.
        """
        cleaned = [k.strip() for k in keywords if k and k.strip()]
        async with self._write_lock:
            raw = await self._load_raw()
            record = raw["servers"].get(str(server_id))
            if not isinstance(record, dict):
                return None
            record["keywords"] = cleaned
            await self._document.save(raw)

        log.info(f"Server {server_id} keywords set to {cleaned}")
        return ServerConfig.from_record(str(server_id), record)
