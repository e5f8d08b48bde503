"""
Public WebSub receiver for YouTube.

- HEAD /webhook/youtube : health check, 200
- GET  /webhook/youtube : subscription verification (echo hub.challenge)
- POST /webhook/youtube : signed Atom notification, verified and forwarded

POST always answers 200 so the hub never retries a notification we
chose to drop.
"""

from __future__ import annotations

from typing import Optional

from aiohttp import web

from services.webhooks.atom import parse_notification
from services.webhooks.forwarder import WebhookForwarder
from services.webhooks.signature import verify_signature
from shared.logging.logger import get_logger

log = get_logger("webhooks.youtube", runtime="webhooks")

WEBHOOK_PATH = "/webhook/youtube"


class YouTubeWebhookRoutes:
    def __init__(self, *, secret: str, forwarder: Optional[WebhookForwarder]):
        if not secret:
            raise RuntimeError("YouTube webhook secret is required")
        self._secret = secret
        self._forwarder = forwarder

    def attach(self, app: web.Application) -> None:
        app.router.add_route("HEAD", WEBHOOK_PATH, self.handle_head)
        app.router.add_get(WEBHOOK_PATH, self.handle_verify, allow_head=False)
        app.router.add_post(WEBHOOK_PATH, self.handle_notification)

    # --------------------------------------------------

    async def handle_head(self, request: web.Request) -> web.Response:
        return web.Response(status=200)

    async def handle_verify(self, request: web.Request) -> web.Response:
        challenge = request.query.get("hub.challenge")
        if not challenge:
            log.warning(f"Invalid verification request: {dict(request.query)}")
            return web.Response(status=400, text="Invalid request")

        log.info(
            f"WebSub verification: mode={request.query.get('hub.mode')} "
            f"topic={request.query.get('hub.topic')}"
        )
        return web.Response(status=200, text=challenge)

    async def handle_notification(self, request: web.Request) -> web.Response:
        content_type = request.headers.get("Content-Type", "")
        if "xml" not in content_type.lower():
            log.warning(f"Ignoring non-XML notification: {content_type!r}")
            return web.Response(status=200)

        body = await request.read()
        if not body:
            log.warning("Empty notification body")
            return web.Response(status=200)

        signature = request.headers.get("X-Hub-Signature")
        if signature:
            if not verify_signature(self._secret, body, signature):
                log.warning(f"Signature check failed: {signature}")
                return web.Response(status=200)
        else:
            log.debug("No signature header; skipping verification")

        notification = parse_notification(body)
        if notification is None:
            log.info("Notification without a complete entry; dropped")
            return web.Response(status=200)

        log.info(
            f"Notification: channel={notification.channel_id} "
            f"video={notification.video_id} title={notification.title!r}"
        )

        if self._forwarder is not None:
            await self._forwarder.forward(notification)
        else:
            log.warning("No forward target configured; notification dropped")

        return web.Response(status=200)
