"""
Discord command audit log.

One structured line per slash command invocation, written to the
Discord runtime log file. Kept free of discord.py objects so command
handlers can be exercised without a connection.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from shared.logging.logger import get_logger

log = get_logger("discord.commands.audit", runtime="discord")


class DiscordLogAdapter:
    def log_command(
        self,
        *,
        command: str,
        guild_id: Optional[int],
        user_id: Optional[int],
        success: bool,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Record a command outcome; failures are logged at warning. Returns the logged record."""
        record = {
            "command": command,
            "guild_id": guild_id,
            "user_id": user_id,
            "success": success,
            "extra": extra or {},
        }
        if success:
            log.info(f"/{command} {record}")
        else:
            log.warning(f"/{command} {record}")
        return record
