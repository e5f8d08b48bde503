import asyncio
from typing import Dict, List, Optional, Set

from core.reconciler import Reconciler
from services.youtube.websub import WebSubSubscriber
from shared.errors import PersistenceError
from shared.logging.logger import get_logger
from shared.platforms.models import Platform
from shared.storage.links import LinkStore

log = get_logger("core.scheduler")


class Scheduler:
    """
    Fixed-rate timers for the reconciliation cycles and WebSub renewal.

    Every tick launches its cycle as a separate task, so a slow cycle
    does not delay the timer; the reconciler skips the tick instead.
    """

    def __init__(
        self,
        *,
        reconciler: Reconciler,
        intervals: Dict[Platform, float],
        links: Optional[LinkStore] = None,
        websub: Optional[WebSubSubscriber] = None,
        websub_interval: float = 86400.0,
    ):
        self._reconciler = reconciler
        self._intervals = dict(intervals)
        self._links = links
        self._websub = websub
        self._websub_interval = websub_interval

        # Long-running timer tasks
        self._tasks: List[asyncio.Task] = []

        # In-flight cycle tasks spawned by the timers
        self._cycles: Set[asyncio.Task] = set()

    # ------------------------------------------------------------

    def start(self):
        if self._tasks:
            log.warning("Scheduler already started — skipping")
            return

        for platform, interval in self._intervals.items():
            log.info(f"[BOOT] {platform.label} cycle every {interval:g}s")
            self._tasks.append(
                asyncio.create_task(self._timer(platform, interval), name=f"poll:{platform.value}")
            )

        if self._websub and self._links:
            log.info(f"[BOOT] WebSub renewal every {self._websub_interval:g}s")
            self._tasks.append(asyncio.create_task(self._websub_loop(), name="websub"))
        else:
            log.info("[BOOT] WebSub renewal disabled (no callback URL)")

    # ------------------------------------------------------------

    async def _timer(self, platform: Platform, interval: float):
        try:
            while True:
                task = asyncio.create_task(self._run_cycle(platform))
                self._cycles.add(task)
                task.add_done_callback(self._cycles.discard)
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            log.debug(f"[{platform.value}] timer cancelled")
            raise

    async def _run_cycle(self, platform: Platform):
        try:
            await self._reconciler.reconcile(platform)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.error(f"[{platform.value}] Reconcile cycle failed: {e}")

    async def _websub_loop(self):
        try:
            while True:
                await self.renew_subscriptions()
                await asyncio.sleep(self._websub_interval)
        except asyncio.CancelledError:
            log.debug("WebSub renewal cancelled")
            raise

    async def renew_subscriptions(self) -> int:
        if not self._websub or not self._links:
            return 0
        try:
            links = await self._links.load_links(Platform.YOUTUBE)
        except PersistenceError as e:
            log.error(f"WebSub renewal skipped, link store unavailable: {e}")
            return 0

        accepted = await self._websub.subscribe_all(link.identity for link in links)
        log.info(f"WebSub renewal: {accepted}/{len(links)} accepted")
        return accepted

    # ------------------------------------------------------------

    async def shutdown(self):
        log.info("Scheduler shutdown initiated")

        all_tasks = self._tasks + list(self._cycles)
        for task in all_tasks:
            if not task.done():
                task.cancel()

        if all_tasks:
            await asyncio.gather(*all_tasks, return_exceptions=True)

        self._tasks.clear()
        self._cycles.clear()
        log.info("Scheduler shutdown complete")
