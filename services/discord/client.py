"""
Discord Client (Control-Plane Runtime)

This module owns the Discord connection itself.
It is intentionally minimal and lifecycle-focused.

Responsibilities:
- connect to Discord
- handle ready / resume / disconnect events
- register command surfaces
- expose a clean async run() / shutdown() contract

IMPORTANT:
- This client MUST NOT create its own event loop
- This client MUST NOT start polling work (the scheduler does)
"""

from __future__ import annotations

import asyncio
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from shared.logging.logger import get_logger
from shared.storage.server_settings import ServerSettingsStore

from services.discord.announcements import DiscordNotifier
from services.discord.logging import DiscordLogAdapter
from services.discord.permissions import AdminRequired, DiscordPermissionResolver
from services.discord import commands as command_surfaces
from services.oauth.discord_oauth import DiscordOAuthClient

# NOTE: routed to Discord runtime log file
log = get_logger("discord.client", runtime="discord")


class DiscordClient:
    """
    Thin wrapper around discord.py Bot.

    This class provides:
    - async run() entrypoint
    - async shutdown()
    - lifecycle event logging
    - command surface wiring
    - the DiscordNotifier bound to this connection
    """

    def __init__(
        self,
        *,
        token: str,
        servers: ServerSettingsStore,
        oauth: DiscordOAuthClient,
    ):
        if not token:
            raise RuntimeError("DISCORD_TOKEN not found in environment")

        self._token: str = token
        self._servers = servers
        self._oauth = oauth
        self._ready_event = asyncio.Event()

        # --------------------------------------------------
        # Shared Discord services
        # --------------------------------------------------
        self.logger = DiscordLogAdapter()
        self.permissions = DiscordPermissionResolver()

        self._bot: Optional[commands.Bot] = self._build_bot()
        self.notifier = DiscordNotifier(self._bot)

    # --------------------------------------------------

    def _build_bot(self) -> commands.Bot:
        """
        Construct the discord.py Bot instance.

        NOTE:
        - Commands are registered here
        - No runtime ownership beyond Discord itself
        """

        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = False  # members are fetched on demand for role changes
        intents.message_content = False  # slash-command focused

        bot = commands.Bot(
            command_prefix="!",
            intents=intents,
        )

        # --------------------------------------------------
        # Command Registration
        # --------------------------------------------------

        command_surfaces.setup(
            bot,
            permissions=self.permissions,
            logger=self.logger,
            servers=self._servers,
            oauth=self._oauth,
        )

        @bot.tree.error
        async def on_app_command_error(
            interaction: discord.Interaction,
            error: app_commands.AppCommandError,
        ):
            if isinstance(error, AdminRequired):
                message = f"⛔ {error.reason}"
            elif isinstance(error, app_commands.CheckFailure):
                message = "⛔ You can't use this command here."
            else:
                log.error(f"Slash command error: {error}")
                message = "⚠️ Something went wrong. Please try again later."

            try:
                if interaction.response.is_done():
                    await interaction.followup.send(content=message, ephemeral=True)
                else:
                    await interaction.response.send_message(content=message, ephemeral=True)
            except discord.HTTPException as e:
                log.warning(f"Failed to report command error: {e}")

        # --------------------------------------------------
        # Lifecycle Events
        # --------------------------------------------------

        @bot.event
        async def on_ready():
            log.info(
                f"Discord connected as {bot.user} "
                f"(id={bot.user.id}) "
                f"guilds={len(bot.guilds)}"
            )

            # Sync slash commands
            try:
                await bot.tree.sync()
                log.info("Discord command tree synced")
            except discord.HTTPException as e:
                log.error(f"Failed to sync Discord commands: {e}")

            self._ready_event.set()

        @bot.event
        async def on_resumed():
            log.info("Discord connection resumed")

        @bot.event
        async def on_disconnect():
            log.warning("Discord connection lost")

        @bot.event
        async def on_guild_join(guild: discord.Guild):
            log.info(
                f"Joined guild: {guild.name} "
                f"(id={guild.id}, members={guild.member_count})"
            )

        @bot.event
        async def on_guild_remove(guild: discord.Guild):
            log.info(
                f"Removed from guild: {guild.name} "
                f"(id={guild.id})"
            )

        return bot

    # --------------------------------------------------

    async def run(self):
        """
        Start the Discord client and block until shutdown.
        """
        if self._bot is None:
            raise RuntimeError("Discord client already shut down")

        log.info("Initializing Discord client")

        try:
            await self._bot.start(self._token)
        except asyncio.CancelledError:
            log.info("Discord client task cancelled")
            raise
        except Exception as e:
            log.error(f"Discord client crashed: {e}")
            raise
        finally:
            log.info("Discord client stopped")

    async def wait_until_ready(self):
        await self._ready_event.wait()

    # --------------------------------------------------

    async def shutdown(self):
        """
        Gracefully close the Discord connection.
        """
        if not self._bot:
            return

        log.info("Closing Discord connection")
        self.notifier.disable()

        try:
            await self._bot.close()
        except Exception as e:
            log.warning(f"Discord close error ignored: {e}")

        self._bot = None
        self._ready_event.clear()
