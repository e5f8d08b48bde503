"""
OAuth callback: turns a Discord authorization code into CreatorLinks.

Every response is HTTP 200 with a short plain-text body; the browser tab
is the only audience.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from aiohttp import web

from services.oauth.discord_oauth import DiscordOAuthClient
from shared.errors import LinkIngestError, LinkLimitError, PersistenceError
from shared.logging.logger import get_logger
from shared.platforms.models import Announcement, Platform
from shared.storage.links import LinkStore
from shared.storage.server_settings import ServerSettingsStore

log = get_logger("oauth.callback")

MSG_MISSING_CODE = "Missing authorization code."
MSG_DENIED = "Authorization was cancelled or denied."
MSG_NO_CONNECTIONS = "No Twitch or YouTube account is connected to your Discord profile."
MSG_ALREADY_LINKED = "Your accounts are already linked."
MSG_STORE_FAILED = "Could not save your link right now. Please try again later."
MSG_YOUTUBE_LIMIT = "The YouTube account limit for this bot has been reached; your YouTube channel was not linked."


def _connection_identity(platform: Platform, connection: Dict[str, Any]) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """(identity, display_name, account_id) for a Discord connection entry."""
    conn_id = connection.get("id")
    name = connection.get("name")
    if platform is Platform.TWITCH:
        # Helix is queried by login
        return name, name, conn_id
    return conn_id, name, None


class LinkIngest:
    def __init__(
        self,
        *,
        oauth: DiscordOAuthClient,
        links: LinkStore,
        servers: ServerSettingsStore,
        notifier,
        youtube_account_limit: int = 0,
    ):
        self._oauth = oauth
        self._links = links
        self._servers = servers
        self._notifier = notifier

        # 0 means unlimited
        self._limits: Dict[Platform, int] = {Platform.YOUTUBE: max(youtube_account_limit, 0)}

    async def record_link(
        self,
        platform: Platform,
        identity: str,
        discord_user_id: str,
        display_name: Optional[str] = None,
        account_id: Optional[str] = None,
    ) -> bool:
        """
        Persist a link and announce it once. A duplicate (platform, identity)
        returns False and announces nothing. Raises LinkLimitError when the
        platform is capped and full, and PersistenceError.
        """
        created = await self._links.record_link(
            platform,
            identity,
            discord_user_id,
            display_name=display_name,
            account_id=account_id,
            limit=self._limits.get(platform, 0),
        )
        if created:
            await self._announce_link(platform, display_name or identity, discord_user_id)
        return created

    async def _announce_link(self, platform: Platform, name: str, discord_user_id: str) -> None:
        try:
            servers = await self._servers.load_servers()
        except PersistenceError as e:
            log.error(f"Link saved but server settings unreadable; not announcing: {e}")
            return

        message = Announcement(
            content=f"🔗 <@{discord_user_id}> linked their {platform.label} account **{name}**."
        )
        for server in servers:
            try:
                await self._notifier.announce(server, message)
            except Exception as e:
                log.error(f"[{server.server_id}] Link announcement error: {e}")

    async def handle_code(self, code: str) -> str:
        """Run the full exchange for `code`. Returns the text shown to the member."""
        profile, connections = await self._oauth.resolve_member(code)
        discord_user_id = str(profile["id"])

        candidates: List[Tuple[Platform, Dict[str, Any]]] = []
        for connection in connections:
            try:
                platform = Platform.from_value(connection.get("type"))
            except ValueError:
                continue
            candidates.append((platform, connection))

        if not candidates:
            return MSG_NO_CONNECTIONS

        linked: List[str] = []
        limited: List[Platform] = []
        for platform, connection in candidates:
            identity, display_name, account_id = _connection_identity(platform, connection)
            if not identity:
                continue
            try:
                created = await self.record_link(
                    platform,
                    identity,
                    discord_user_id,
                    display_name=display_name,
                    account_id=account_id,
                )
            except LinkLimitError:
                limited.append(platform)
                continue
            except PersistenceError as e:
                log.error(f"Failed to persist {platform.value} link for {discord_user_id}: {e}")
                raise LinkIngestError(str(e), user_message=MSG_STORE_FAILED) from e
            if created:
                linked.append(f"{platform.label} ({display_name or identity})")

        note = f" {MSG_YOUTUBE_LIMIT}" if Platform.YOUTUBE in limited else ""
        if not linked:
            return MSG_YOUTUBE_LIMIT if limited else MSG_ALREADY_LINKED
        return "Linked: " + ", ".join(linked) + "." + note + " You can close this tab."


class CallbackRoutes:
    def __init__(self, ingest: LinkIngest):
        self._ingest = ingest

    def attach(self, app: web.Application) -> None:
        app.router.add_get("/callback", self.handle_callback)

    async def handle_callback(self, request: web.Request) -> web.Response:
        error = request.query.get("error")
        if error:
            log.info(f"OAuth callback returned error={error}")
            return web.Response(text=MSG_DENIED)

        code = request.query.get("code")
        if not code:
            return web.Response(text=MSG_MISSING_CODE)

        try:
            text = await self._ingest.handle_code(code)
        except LinkIngestError as e:
            log.warning(f"OAuth link failed: {e}")
            return web.Response(text=e.user_message)

        return web.Response(text=text)
