"""
Public webhook runtime.

Runs only the YouTube WebSub receiver; verified notifications are
relayed to the main runtime's internal endpoint.
"""

import asyncio
import sys

from aiohttp import web
from dotenv import load_dotenv

from core.app import run_until_stopped
from services.webhooks.forwarder import WebhookForwarder
from services.webhooks.youtube import YouTubeWebhookRoutes
from shared.config.settings import Settings, load_settings, require
from shared.logging.logger import get_logger

log = get_logger("core.webhook_app", runtime="webhooks")


def build_app(settings: Settings) -> web.Application:
    forwarder = None
    if settings.webhook_forward_url:
        forwarder = WebhookForwarder(
            url=settings.webhook_forward_url,
            verify_tls=settings.webhook_forward_verify_tls,
            token=settings.internal_push_token,
        )
    else:
        log.warning("WEBHOOK_FORWARD_URL not set — notifications will be dropped")

    app = web.Application()
    YouTubeWebhookRoutes(
        secret=settings.youtube_webhook_secret,
        forwarder=forwarder,
    ).attach(app)
    return app


async def main(stop_event: asyncio.Event):
    load_dotenv()
    settings = load_settings()
    require(settings, ("youtube_webhook_secret",))

    runner = web.AppRunner(build_app(settings))
    await runner.setup()
    site = web.TCPSite(runner, settings.webhook_host, settings.webhook_port)
    await site.start()
    log.info(f"Webhook receiver listening on {settings.webhook_host}:{settings.webhook_port}")

    await stop_event.wait()

    log.info("Shutdown initiated")
    await runner.cleanup()
    log.info("Webhook receiver stopped")


def run():
    run_until_stopped(main)


if __name__ == "__main__":
    run()
    sys.exit(0)
