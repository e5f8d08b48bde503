"""
Internal push endpoint on the main runtime.

Receives notifications relayed by the public receiver, confirms the
video's live state with the Data API and feeds the result through the
reconciler so pushes and polls share one ledger.
"""

from __future__ import annotations

import hmac
from typing import Optional

from aiohttp import web

from core.reconciler import Reconciler
from services.webhooks.atom import YouTubeNotification
from services.youtube.api.livestream import YouTubeLivestreamAPI
from shared.errors import PersistenceError
from shared.logging.logger import get_logger
from shared.platforms.models import CreatorLink, LiveItem, Platform
from shared.storage.links import LinkStore

log = get_logger("webhooks.internal")

INTERNAL_PATH = "/internal/youtube"


class InternalPushRoutes:
    def __init__(
        self,
        *,
        reconciler: Reconciler,
        links: LinkStore,
        youtube: YouTubeLivestreamAPI,
        token: Optional[str] = None,
    ):
        self._reconciler = reconciler
        self._links = links
        self._youtube = youtube
        self._token = token

    def attach(self, app: web.Application) -> None:
        app.router.add_post(INTERNAL_PATH, self.handle_push)

    def _authorized(self, request: web.Request) -> bool:
        if not self._token:
            return True
        header = request.headers.get("Authorization", "")
        expected = f"Bearer {self._token}"
        return hmac.compare_digest(header.encode("utf-8"), expected.encode("utf-8"))

    async def handle_push(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            log.warning("Rejected internal push with bad token")
            return web.Response(status=401, text="Unauthorized")

        try:
            payload = await request.json()
        except ValueError:
            return web.Response(status=400, text="Invalid JSON")

        notification = YouTubeNotification.from_payload(payload)
        if notification is None:
            return web.Response(status=400, text="Missing channelId/videoId/title")

        try:
            link = await self._links.find(Platform.YOUTUBE, notification.channel_id)
        except PersistenceError as e:
            log.error(f"Link store unavailable; dropping push: {e}")
            return web.Response(status=200)
        if link is None:
            log.info(f"Push for unlinked channel {notification.channel_id}; ignoring")
            return web.Response(status=200)

        state = await self._youtube.get_video_live_state(notification.video_id)
        if state is None:
            log.info(f"Video {notification.video_id} not resolvable; ignoring push")
            return web.Response(status=200)

        if state.is_live():
            item = LiveItem(
                identity=notification.channel_id,
                title=state.title or notification.title,
                video_id=notification.video_id,
            )
        elif state.actual_end:
            key = CreatorLink.identity_key(Platform.YOUTUBE, notification.channel_id)
            current = self._reconciler.ledger.get(Platform.YOUTUBE, key)
            if current is not None and current.video_id not in (None, notification.video_id):
                log.info(f"Ended video {notification.video_id} is not the tracked broadcast; ignoring")
                return web.Response(status=200)
            item = None
        else:
            # Upload or upcoming premiere; nothing to reconcile
            log.debug(f"Video {notification.video_id} is not a live broadcast")
            return web.Response(status=200)

        await self._reconciler.apply_observation(
            Platform.YOUTUBE,
            notification.channel_id,
            item,
        )
        return web.Response(status=200)
