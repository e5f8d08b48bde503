"""
Discord Announcements Module (Control-Plane Runtime)

Delivers live announcements and live-role changes into configured guilds.

IMPORTANT CONSTRAINTS:
- This module MUST NOT register commands
- This module MUST NOT own a Discord client (one is passed in)
- Role operations MUST NOT raise; every failure becomes a RoleOutcome
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

import discord

from shared.logging.logger import get_logger
from shared.platforms.models import Announcement, ServerConfig

log = get_logger("discord.announcements", runtime="discord")


class RoleStatus(Enum):
    APPLIED = "applied"
    NO_SUCH_GUILD = "no_such_guild"
    NO_SUCH_ROLE = "no_such_role"
    NO_SUCH_MEMBER = "no_such_member"
    FORBIDDEN = "forbidden"
    TRANSPORT_ERROR = "transport_error"


class RoleOutcome:
    """
    Structured result of a role grant/revoke.

    Truthy only when the role change reached Discord.
    """

    def __init__(
        self,
        status: RoleStatus,
        *,
        reason: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.status = status
        self.reason = reason
        self.metadata = metadata or {}

    def __bool__(self) -> bool:
        return self.status is RoleStatus.APPLIED

    def __repr__(self) -> str:
        return f"RoleOutcome({self.status.value}, reason={self.reason!r})"


def _snowflake(value: str) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class DiscordNotifier:
    """
    Announcement + live-role delivery for one Discord client.
    """

    def __init__(self, client: discord.Client):
        self._client = client
        self._enabled: bool = True

    # --------------------------------------------------
    # Control
    # --------------------------------------------------

    def disable(self):
        """Stop all delivery (messages and roles) without unwiring callers."""
        self._enabled = False
        log.debug("DiscordNotifier disabled")

    # --------------------------------------------------
    # Messages
    # --------------------------------------------------

    async def _resolve_channel(self, channel_id: int):
        channel = self._client.get_channel(channel_id)
        if channel is not None:
            return channel
        return await self._client.fetch_channel(channel_id)

    async def announce_live(self, server: ServerConfig, message: Announcement) -> bool:
        return await self.announce(server, message)

    async def announce(self, server: ServerConfig, message: Announcement) -> bool:
        """Send `message` to the server's announce channel. Returns delivery success."""
        if not self._enabled:
            log.debug("Announcement skipped (disabled)")
            return False

        channel_id = _snowflake(server.announce_channel_id)
        if channel_id is None:
            log.warning(f"[{server.server_id}] Invalid announce channel id: {server.announce_channel_id}")
            return False

        kwargs: Dict[str, Any] = {}
        if message.content:
            kwargs["content"] = message.content
        if message.has_embed:
            embed = discord.Embed(
                title=message.title,
                description=message.description,
                url=message.url,
                color=message.color,
            )
            if message.image_url:
                embed.set_image(url=message.image_url)
            kwargs["embed"] = embed

        try:
            channel = await self._resolve_channel(channel_id)
            await channel.send(**kwargs)
        except discord.NotFound:
            log.warning(f"[{server.server_id}] Announce channel {channel_id} not found")
            return False
        except discord.Forbidden:
            log.warning(f"[{server.server_id}] Missing permission to post in {channel_id}")
            return False
        except discord.HTTPException as e:
            log.error(f"[{server.server_id}] Announcement failed: {e}")
            return False

        log.info(f"[{server.server_id}] Announcement sent to channel {channel_id}")
        return True

    # --------------------------------------------------
    # Roles
    # --------------------------------------------------

    async def grant_role(self, server: ServerConfig, discord_user_id: str) -> RoleOutcome:
        return await self._mutate_role(server, discord_user_id, grant=True)

    async def revoke_role(self, server: ServerConfig, discord_user_id: str) -> RoleOutcome:
        return await self._mutate_role(server, discord_user_id, grant=False)

    async def _mutate_role(
        self,
        server: ServerConfig,
        discord_user_id: str,
        *,
        grant: bool,
    ) -> RoleOutcome:
        action = "grant" if grant else "revoke"
        meta = {
            "guild_id": server.server_id,
            "user_id": discord_user_id,
            "action": action,
        }

        if not self._enabled:
            return RoleOutcome(RoleStatus.FORBIDDEN, reason="notifier disabled", metadata=meta)

        guild_id = _snowflake(server.server_id)
        role_id = _snowflake(server.live_role_id)
        user_id = _snowflake(discord_user_id)

        guild = self._client.get_guild(guild_id) if guild_id is not None else None
        if guild is None:
            log.warning(f"[{server.server_id}] Role {action} skipped: guild not available")
            return RoleOutcome(RoleStatus.NO_SUCH_GUILD, metadata=meta)

        role = guild.get_role(role_id) if role_id is not None else None
        if role is None:
            log.warning(f"[{server.server_id}] Role {action} skipped: role {server.live_role_id} missing")
            return RoleOutcome(RoleStatus.NO_SUCH_ROLE, metadata=meta)

        if user_id is None:
            return RoleOutcome(RoleStatus.NO_SUCH_MEMBER, reason="invalid user id", metadata=meta)

        try:
            member = guild.get_member(user_id) or await guild.fetch_member(user_id)
        except discord.NotFound:
            log.info(f"[{server.server_id}] Role {action} skipped: {discord_user_id} is not a member")
            return RoleOutcome(RoleStatus.NO_SUCH_MEMBER, metadata=meta)
        except discord.Forbidden as e:
            log.warning(f"[{server.server_id}] Member lookup forbidden: {e}")
            return RoleOutcome(RoleStatus.FORBIDDEN, reason=str(e), metadata=meta)
        except discord.HTTPException as e:
            log.error(f"[{server.server_id}] Member lookup failed: {e}")
            return RoleOutcome(RoleStatus.TRANSPORT_ERROR, reason=str(e), metadata=meta)

        try:
            if grant:
                await member.add_roles(role, reason="Creator went live")
            else:
                await member.remove_roles(role, reason="Creator went offline")
        except discord.Forbidden as e:
            log.warning(f"[{server.server_id}] Role {action} forbidden for {discord_user_id}: {e}")
            return RoleOutcome(RoleStatus.FORBIDDEN, reason=str(e), metadata=meta)
        except discord.HTTPException as e:
            log.error(f"[{server.server_id}] Role {action} failed for {discord_user_id}: {e}")
            return RoleOutcome(RoleStatus.TRANSPORT_ERROR, reason=str(e), metadata=meta)

        log.info(f"[{server.server_id}] Live role {'granted' if grant else 'revoked'} for {discord_user_id}")
        return RoleOutcome(RoleStatus.APPLIED, metadata=meta)
