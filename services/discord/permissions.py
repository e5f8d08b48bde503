"""
Discord Permissions Module (Control-Plane Runtime)

Permission rules for slash commands. Admin-only commands are gated on
the member's guild-level Administrator permission.

IMPORTANT CONSTRAINTS:
- This module MUST NOT register Discord commands
- This module MUST NOT own a Discord client
- All Discord objects (Interaction, Member) must be passed in externally
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import discord
from discord import app_commands

from shared.logging.logger import get_logger

log = get_logger("discord.permissions", runtime="discord")


class PermissionResult:
    """
    Structured permission check result.

    This allows commands to handle permissions consistently without
    duplicating messaging or logic.
    """

    def __init__(
        self,
        allowed: bool,
        *,
        reason: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.allowed = allowed
        self.reason = reason
        self.metadata = metadata or {}

    def __bool__(self) -> bool:
        return self.allowed


class DiscordPermissionResolver:
    def require_admin(self, member: Any) -> PermissionResult:
        """Allow only guild members holding the Administrator permission."""
        perms = getattr(member, "guild_permissions", None)
        if perms is None:
            return PermissionResult(False, reason="This command can only be used in a server.")

        if not perms.administrator:
            return PermissionResult(
                False,
                reason="You need the Administrator permission to use this command.",
                metadata={"user_id": getattr(member, "id", None)},
            )

        return PermissionResult(True)


class AdminRequired(app_commands.CheckFailure):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def require_admin(resolver: DiscordPermissionResolver):
    """app_commands check wrapping DiscordPermissionResolver.require_admin."""

    async def predicate(interaction: discord.Interaction) -> bool:
        result = resolver.require_admin(interaction.user)
        if not result:
            log.info(
                f"Admin check denied user={interaction.user.id} "
                f"guild={getattr(interaction.guild, 'id', None)}"
            )
            raise AdminRequired(result.reason or "Not allowed")
        return True

    return app_commands.check(predicate)
