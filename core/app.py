import asyncio
import signal
import sys

from aiohttp import web
from dotenv import load_dotenv

from core.reconciler import Reconciler
from core.scheduler import Scheduler
from services.discord.client import DiscordClient
from services.oauth.callback import CallbackRoutes, LinkIngest
from services.oauth.discord_oauth import DiscordOAuthClient
from services.twitch.api.streams import TwitchStreamsAPI
from services.webhooks.internal import InternalPushRoutes
from services.youtube.api.livestream import YouTubeLivestreamAPI
from services.youtube.websub import WebSubSubscriber
from shared.config.settings import Settings, load_settings, require
from shared.logging.logger import get_logger
from shared.platforms.models import Platform
from shared.storage.links import LinkStore
from shared.storage.server_settings import ServerSettingsStore

log = get_logger("core.app")

REQUIRED_SETTINGS = (
    "discord_token",
    "discord_client_id",
    "discord_client_secret",
    "redirect_uri",
)


def build_adapters(settings: Settings):
    adapters = {}

    if settings.twitch_client_id and settings.twitch_client_secret:
        adapters[Platform.TWITCH] = TwitchStreamsAPI(
            client_id=settings.twitch_client_id,
            client_secret=settings.twitch_client_secret,
        )
    else:
        log.warning("[BOOT] Twitch credentials missing — Twitch polling disabled")

    if settings.youtube_api_key:
        adapters[Platform.YOUTUBE] = YouTubeLivestreamAPI(api_key=settings.youtube_api_key)
    else:
        log.warning("[BOOT] YOUTUBE_API_KEY missing — YouTube polling disabled")

    return adapters


async def _wait_ready_or_stop(discord_client: DiscordClient, stop_event: asyncio.Event) -> bool:
    ready = asyncio.create_task(discord_client.wait_until_ready())
    stopped = asyncio.create_task(stop_event.wait())
    done, pending = await asyncio.wait({ready, stopped}, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)
    return ready in done


async def main(stop_event: asyncio.Event):
    # --------------------------------------------------
    # ENV
    # --------------------------------------------------
    load_dotenv()
    settings = load_settings()
    require(settings, REQUIRED_SETTINGS)
    log.info("Environment variables loaded")
    log.info("Livewatch booting")

    # --------------------------------------------------
    # CORE SYSTEMS
    # --------------------------------------------------
    links = LinkStore(settings.data_dir)
    servers = ServerSettingsStore(settings.data_dir)
    log.info(f"Data directory: {settings.data_dir}")

    oauth = DiscordOAuthClient(
        client_id=settings.discord_client_id,
        client_secret=settings.discord_client_secret,
        redirect_uri=settings.redirect_uri,
    )

    discord_client = DiscordClient(
        token=settings.discord_token,
        servers=servers,
        oauth=oauth,
    )

    adapters = build_adapters(settings)
    reconciler = Reconciler(
        links=links,
        servers=servers,
        notifier=discord_client.notifier,
        adapters=adapters,
    )

    websub = None
    if settings.youtube_websub_callback_url:
        websub = WebSubSubscriber(
            callback_url=settings.youtube_websub_callback_url,
            secret=settings.youtube_webhook_secret,
        )

    intervals = {
        Platform.TWITCH: settings.twitch_poll_seconds,
        Platform.YOUTUBE: settings.youtube_poll_seconds,
    }
    scheduler = Scheduler(
        reconciler=reconciler,
        intervals={p: i for p, i in intervals.items() if p in adapters},
        links=links,
        websub=websub,
        websub_interval=settings.websub_renew_seconds,
    )

    # --------------------------------------------------
    # HTTP: OAuth callback + internal push
    # --------------------------------------------------
    app = web.Application()
    ingest = LinkIngest(
        oauth=oauth,
        links=links,
        servers=servers,
        notifier=discord_client.notifier,
        youtube_account_limit=settings.youtube_account_limit,
    )
    CallbackRoutes(ingest).attach(app)

    youtube_api = adapters.get(Platform.YOUTUBE)
    if youtube_api is not None:
        InternalPushRoutes(
            reconciler=reconciler,
            links=links,
            youtube=youtube_api,
            token=settings.internal_push_token,
        ).attach(app)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, settings.callback_host, settings.callback_port)
    await site.start()
    log.info(f"Callback server listening on {settings.callback_host}:{settings.callback_port}")

    # --------------------------------------------------
    # DISCORD
    # --------------------------------------------------
    discord_task = asyncio.create_task(discord_client.run(), name="discord")
    discord_task.add_done_callback(lambda _t: stop_event.set())

    if await _wait_ready_or_stop(discord_client, stop_event):
        scheduler.start()
        log.info("Scheduler started")

    # --------------------------------------------------
    # BLOCK UNTIL SHUTDOWN SIGNAL
    # --------------------------------------------------
    await stop_event.wait()

    log.info("Shutdown initiated")

    # --------------------------------------------------
    # ORDERLY SHUTDOWN (TASKS FIRST)
    # --------------------------------------------------
    try:
        await scheduler.shutdown()
    except Exception as e:
        log.warning(f"Scheduler shutdown error ignored: {e}")

    try:
        await runner.cleanup()
    except Exception as e:
        log.warning(f"HTTP server shutdown error ignored: {e}")

    await discord_client.shutdown()
    if not discord_task.done():
        discord_task.cancel()
    await asyncio.gather(discord_task, return_exceptions=True)

    log.info("Livewatch stopped")


# ----------------------------------------------------------------------
# SIGNAL HANDLING (WINDOWS-SAFE)
# ----------------------------------------------------------------------

def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    stop_event: asyncio.Event,
):
    """
    Windows-safe Ctrl+C handler.
    Uses signal.signal + asyncio.Event to unwind cleanly.
    """

    def _handler(signum, frame):
        try:
            loop.call_soon_threadsafe(stop_event.set)
        except RuntimeError:
            stop_event.set()

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except (ValueError, OSError) as e:
        log.warning(f"Signal handlers not installed: {e}")


# ----------------------------------------------------------------------
# ENTRYPOINT
# ----------------------------------------------------------------------

def run_until_stopped(main_coro_factory):
    """Run `main_coro_factory(stop_event)` on a fresh loop with signal-driven shutdown."""
    stop_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    _install_signal_handlers(loop, stop_event)

    try:
        loop.run_until_complete(main_coro_factory(stop_event))

    except KeyboardInterrupt:
        log.info("KeyboardInterrupt received — shutdown initiated")
        stop_event.set()

    finally:
        # --------------------------------------------------
        # CANCEL REMAINING TASKS (CLEANLY)
        # --------------------------------------------------
        pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
        for task in pending:
            task.cancel()

        if pending:
            loop.run_until_complete(
                asyncio.gather(*pending, return_exceptions=True)
            )

        # --------------------------------------------------
        # FINAL LOOP CLEANUP
        # --------------------------------------------------
        loop.run_until_complete(loop.shutdown_asyncgens())

        asyncio.set_event_loop(None)
        loop.close()


def run():
    run_until_stopped(main)


if __name__ == "__main__":
    run()
    sys.exit(0)
