"""
Discord Admin Slash Command Registration (Control-Plane Runtime)

Thin registration layer that exposes administrator-only slash commands
and delegates ALL logic to AdminCommandHandler.

IMPORTANT DESIGN RULES:
- NO business logic
- NO persistence
- Discord I/O (responses) ONLY at the boundary
"""

from __future__ import annotations

import discord
from discord import app_commands
from discord.ext import commands

from shared.logging.logger import get_logger
from shared.storage.server_settings import ServerSettingsStore

from services.discord.commands.admin import AdminCommandHandler
from services.discord.logging import DiscordLogAdapter
from services.discord.permissions import DiscordPermissionResolver, require_admin

# NOTE: routed to Discord runtime log file
log = get_logger("discord.commands.admin.register", runtime="discord")


def _reply(result) -> str:
    prefix = "✅" if result.get("ok") else "⚠️"
    return f"{prefix} {result['message']}"


# ==================================================
# Registration Entry Point
# ==================================================

def setup(
    bot: commands.Bot,
    *,
    permissions: DiscordPermissionResolver,
    logger: DiscordLogAdapter,
    servers: ServerSettingsStore,
):
    """
    Register all admin-level Discord slash commands.
    """

    handler = AdminCommandHandler(servers=servers, logger=logger)

    # --------------------------------------------------
    # /setup
    # --------------------------------------------------

    @app_commands.command(
        name="setup",
        description="Choose the live announcement channel and live role",
    )
    @app_commands.describe(
        channel="Channel where live announcements are posted",
        live_role="Role given to linked creators while they are live",
    )
    @app_commands.guild_only()
    @app_commands.default_permissions(administrator=True)
    @require_admin(permissions)
    async def setup_command(
        interaction: discord.Interaction,
        channel: discord.TextChannel,
        live_role: discord.Role,
    ):
        await interaction.response.defer(ephemeral=True)

        result = await handler.cmd_setup(
            user_id=interaction.user.id,
            guild_id=interaction.guild.id,
            channel_id=channel.id,
            channel_mention=channel.mention,
            role_id=live_role.id,
            role_name=live_role.name,
        )

        await interaction.followup.send(content=_reply(result), ephemeral=True)

    # --------------------------------------------------
    # /set_keywords
    # --------------------------------------------------

    @app_commands.command(
        name="set_keywords",
        description="Only announce streams whose title contains one of these keywords",
    )
    @app_commands.describe(keywords="Comma separated keywords")
    @app_commands.guild_only()
    @app_commands.default_permissions(administrator=True)
    @require_admin(permissions)
    async def set_keywords(
        interaction: discord.Interaction,
        keywords: str,
    ):
        await interaction.response.defer(ephemeral=True)

        result = await handler.cmd_set_keywords(
            user_id=interaction.user.id,
            guild_id=interaction.guild.id,
            keywords=keywords,
        )

        await interaction.followup.send(content=_reply(result), ephemeral=True)

    # --------------------------------------------------
    # /clear_keywords
    # --------------------------------------------------

    @app_commands.command(
        name="clear_keywords",
        description="Announce every stream regardless of title",
    )
    @app_commands.guild_only()
    @app_commands.default_permissions(administrator=True)
    @require_admin(permissions)
    async def clear_keywords(
        interaction: discord.Interaction,
    ):
        await interaction.response.defer(ephemeral=True)

        result = await handler.cmd_clear_keywords(
            user_id=interaction.user.id,
            guild_id=interaction.guild.id,
        )

        await interaction.followup.send(content=_reply(result), ephemeral=True)

    # --------------------------------------------------
    # Register Commands
    # --------------------------------------------------

    bot.tree.add_command(setup_command)
    bot.tree.add_command(set_keywords)
    bot.tree.add_command(clear_keywords)

    log.info("Discord admin slash commands registered")
