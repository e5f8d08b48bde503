"""
Discord Public Commands (Control-Plane Runtime)

Handlers for commands any guild member may run.

IMPORTANT CONSTRAINTS:
- This module MUST NOT register commands on import
- This module MUST NOT own a Discord client
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from shared.logging.logger import get_logger
from services.discord.logging import DiscordLogAdapter
from services.oauth.discord_oauth import DiscordOAuthClient

log = get_logger("discord.commands.public", runtime="discord")


class PublicCommandHandler:
    def __init__(
        self,
        *,
        oauth: DiscordOAuthClient,
        logger: DiscordLogAdapter,
    ):
        self._oauth = oauth
        self._logger = logger

    async def cmd_link(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
    ) -> Dict[str, Any]:
        """
        Return the Discord authorization URL that starts the linking flow.
        """
        url = self._oauth.authorize_url()

        self._logger.log_command(
            command="link",
            guild_id=guild_id,
            user_id=user_id,
            success=True,
        )

        return {
            "ok": True,
            "url": url,
            "message": (
                "Authorize with Discord to link your connected Twitch / YouTube "
                f"accounts:\n{url}"
            ),
        }
