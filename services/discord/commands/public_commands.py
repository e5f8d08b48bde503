"""
Discord Public Slash Command Registration

Registers member-facing commands and delegates logic to
PublicCommandHandler.
"""

from __future__ import annotations

import discord
from discord import app_commands
from discord.ext import commands

from shared.logging.logger import get_logger
from services.discord.commands.public import PublicCommandHandler
from services.discord.logging import DiscordLogAdapter
from services.oauth.discord_oauth import DiscordOAuthClient

log = get_logger("discord.commands.public.register", runtime="discord")


def setup(
    bot: commands.Bot,
    *,
    oauth: DiscordOAuthClient,
    logger: DiscordLogAdapter,
):
    """
    Register public slash commands.
    Called by the Discord client during command loading.
    """

    handler = PublicCommandHandler(oauth=oauth, logger=logger)

    # --------------------------------------------------
    # /link
    # --------------------------------------------------

    @app_commands.command(
        name="link",
        description="Link your Twitch / YouTube account for live announcements",
    )
    async def link(interaction: discord.Interaction):
        result = await handler.cmd_link(
            user_id=interaction.user.id,
            guild_id=interaction.guild.id if interaction.guild else None,
        )

        await interaction.response.send_message(
            content=result["message"],
            ephemeral=True,
        )

    bot.tree.add_command(link)
    log.info("Discord public slash commands registered")
