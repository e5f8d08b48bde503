"""
Discord Admin Commands (Control-Plane Runtime)

Handlers for administrator-only commands: announce channel / live role
setup and the per-server title keyword filter.

IMPORTANT CONSTRAINTS:
- This module MUST NOT register commands on import
- This module MUST NOT own a Discord client
- This module MUST NOT perform permission checks directly
- All Discord objects (Interaction, Bot, Context) must be passed in externally
"""

from __future__ import annotations

from typing import Any, Dict, List

from shared.errors import PersistenceError
from shared.logging.logger import get_logger
from shared.storage.server_settings import ServerSettingsStore
from services.discord.logging import DiscordLogAdapter

log = get_logger("discord.commands.admin", runtime="discord")

MSG_STORE_FAILED = "Could not save the settings right now. Please try again later."
MSG_NOT_CONFIGURED = "Run /setup first to choose an announce channel and live role."


def parse_keywords(raw: str) -> List[str]:
    """Split a comma separated list, dropping blanks and duplicates (case-insensitive)."""
    seen = set()
    keywords: List[str] = []
    for part in (raw or "").split(","):
        keyword = part.strip()
        if not keyword or keyword.lower() in seen:
            continue
        seen.add(keyword.lower())
        keywords.append(keyword)
    return keywords


class AdminCommandHandler:
    """
    Declarative handler for admin-level Discord commands.

    This class does NOT register commands.
    """

    def __init__(
        self,
        *,
        servers: ServerSettingsStore,
        logger: DiscordLogAdapter,
    ):
        self._servers = servers
        self._logger = logger

    # --------------------------------------------------
    # SETUP
    # --------------------------------------------------

    async def cmd_setup(
        self,
        *,
        user_id: int,
        guild_id: int,
        channel_id: int,
        channel_mention: str,
        role_id: int,
        role_name: str,
    ) -> Dict[str, Any]:
        """
        Create or overwrite the server's announce channel and live role.

        Existing keywords are kept.
        """
        try:
            await self._servers.save_server(str(guild_id), str(channel_id), str(role_id))
        except PersistenceError as e:
            log.error(f"Setup failed for guild {guild_id}: {e}")
            self._logger.log_command(
                command="setup", guild_id=guild_id, user_id=user_id, success=False
            )
            return {"ok": False, "message": MSG_STORE_FAILED}

        self._logger.log_command(
            command="setup",
            guild_id=guild_id,
            user_id=user_id,
            success=True,
            extra={"channel_id": channel_id, "role_id": role_id},
        )
        return {
            "ok": True,
            "message": (
                f"Live announcements will be posted in {channel_mention} "
                f"and live creators will get the **{role_name}** role."
            ),
        }

    # --------------------------------------------------
    # KEYWORDS
    # --------------------------------------------------

    async def cmd_set_keywords(
        self,
        *,
        user_id: int,
        guild_id: int,
        keywords: str,
    ) -> Dict[str, Any]:
        parsed = parse_keywords(keywords)
        if not parsed:
            return {"ok": False, "message": "Give at least one keyword (comma separated)."}
        return await self._store_keywords(user_id, guild_id, parsed, command="set_keywords")

    async def cmd_clear_keywords(
        self,
        *,
        user_id: int,
        guild_id: int,
    ) -> Dict[str, Any]:
        return await self._store_keywords(user_id, guild_id, [], command="clear_keywords")

    async def _store_keywords(
        self,
        user_id: int,
        guild_id: int,
        keywords: List[str],
        *,
        command: str,
    ) -> Dict[str, Any]:
        try:
            config = await self._servers.set_keywords(str(guild_id), keywords)
        except PersistenceError as e:
            log.error(f"{command} failed for guild {guild_id}: {e}")
            self._logger.log_command(
                command=command, guild_id=guild_id, user_id=user_id, success=False
            )
            return {"ok": False, "message": MSG_STORE_FAILED}

        if config is None:
            self._logger.log_command(
                command=command, guild_id=guild_id, user_id=user_id, success=False
            )
            return {"ok": False, "message": MSG_NOT_CONFIGURED}

        self._logger.log_command(
            command=command,
            guild_id=guild_id,
            user_id=user_id,
            success=True,
            extra={"keywords": keywords},
        )

        if not keywords:
            return {"ok": True, "message": "Keyword filter cleared; every stream will be announced."}
        return {
            "ok": True,
            "message": "Only streams whose title contains one of these will be announced: "
            + ", ".join(f"`{k}`" for k in keywords),
        }
