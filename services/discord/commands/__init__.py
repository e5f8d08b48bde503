"""
Discord Command Package (Control-Plane Runtime)

Centralizes registration for all Discord command surfaces.

Command categories:
- public  → /link
- admin   → /setup, /set_keywords, /clear_keywords

IMPORTANT DESIGN RULES:
- No command registration on import
- No Discord client ownership
- Explicit setup() calls only
"""

from __future__ import annotations

from discord.ext import commands

from shared.logging.logger import get_logger

# Sub-command modules (registration-only)
from services.discord.commands import admin_commands
from services.discord.commands import public_commands

log = get_logger("discord.commands", runtime="discord")


def setup(
    bot: commands.Bot,
    *,
    permissions,
    logger,
    servers,
    oauth,
):
    """
    Register all Discord command surfaces.

    This function is called exactly once by the Discord client
    during startup.
    """

    public_commands.setup(bot, oauth=oauth, logger=logger)

    admin_commands.setup(
        bot,
        permissions=permissions,
        logger=logger,
        servers=servers,
    )

    log.info("Discord command surfaces initialized")
