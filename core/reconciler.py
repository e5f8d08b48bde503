"""
Live-status reconciliation.

Each cycle reads the watched links and server settings, asks the
platform adapter for the live set, diffs it against the StatusLedger and
fans each transition out to every configured server:

- offline -> live : announce (subject to the server keyword filter) + grant role
- live -> offline : revoke role only; no "went offline" message is posted

Cycles for the same platform never overlap. A poll that fires while the
previous one is still running is skipped; pushed observations wait.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol

from core.ledger import StatusLedger
from shared.errors import PersistenceError
from shared.logging.logger import get_logger
from shared.platforms.models import (
    Announcement,
    CreatorLink,
    LiveItem,
    LiveSnapshot,
    Platform,
    ServerConfig,
)
from shared.storage.links import LinkStore
from shared.storage.server_settings import ServerSettingsStore

log = get_logger("core.reconciler")

TWITCH_EMBED_COLOR = 6570404


class LiveSetAdapter(Protocol):
    async def fetch_live_set(self, identities: Iterable[str]) -> Optional[LiveSnapshot]:
        ...


class Notifier(Protocol):
    async def announce_live(self, server: ServerConfig, message: Announcement):
        ...

    async def grant_role(self, server: ServerConfig, discord_user_id: str):
        ...

    async def revoke_role(self, server: ServerConfig, discord_user_id: str):
        ...


@dataclass
class CycleReport:
    platform: Platform
    went_live: List[str] = field(default_factory=list)
    went_offline: List[str] = field(default_factory=list)
    skipped_reason: Optional[str] = None


# ----------------------------------------------------------------------
# Message formatting
# ----------------------------------------------------------------------

def build_live_announcement(link: CreatorLink, item: LiveItem) -> Announcement:
    name = item.display_name or link.name
    title = item.title or "(untitled)"

    if link.platform is Platform.TWITCH:
        return Announcement(
            title=f"{name} is live on Twitch!",
            description=f"📺 {title}",
            url=f"https://www.twitch.tv/{link.identity}",
            image_url=item.thumbnail_url,
            color=TWITCH_EMBED_COLOR,
        )

    url = (
        f"https://www.youtube.com/watch?v={item.video_id}"
        if item.video_id
        else f"https://www.youtube.com/channel/{link.identity}/live"
    )
    return Announcement(content=f"🎥 {name} is live on YouTube!\nTitle: {title}\n{url}")


class Reconciler:
    def __init__(
        self,
        *,
        links: LinkStore,
        servers: ServerSettingsStore,
        notifier: Notifier,
        adapters: Dict[Platform, LiveSetAdapter],
        ledger: Optional[StatusLedger] = None,
    ):
        self._links = links
        self._servers = servers
        self._notifier = notifier
        self._adapters = dict(adapters)
        self.ledger = ledger or StatusLedger()
        self._locks: Dict[Platform, asyncio.Lock] = {p: asyncio.Lock() for p in Platform}

    # ------------------------------------------------------------------
    # Poll path
    # ------------------------------------------------------------------

    async def reconcile(self, platform: Platform) -> CycleReport:
        lock = self._locks[platform]
        if lock.locked():
            log.warning(f"[{platform.value}] Previous cycle still running; skipping")
            return CycleReport(platform, skipped_reason="in_flight")

        async with lock:
            return await self._reconcile_locked(platform)

    async def _reconcile_locked(self, platform: Platform) -> CycleReport:
        report = CycleReport(platform)

        try:
            links = await self._links.load_links(platform)
            if not links:
                report.skipped_reason = "no_links"
                return report
            servers = await self._servers.load_servers()
        except PersistenceError as e:
            log.error(f"[{platform.value}] Store unavailable, skipping cycle: {e}")
            report.skipped_reason = "persistence"
            return report

        adapter = self._adapters.get(platform)
        if adapter is None:
            log.warning(f"[{platform.value}] No adapter configured; skipping cycle")
            report.skipped_reason = "no_adapter"
            return report

        snapshot = await adapter.fetch_live_set([link.identity for link in links])
        if snapshot is None:
            log.warning(f"[{platform.value}] Live set unknown this cycle; skipping")
            report.skipped_reason = "unknown"
            return report

        by_key = {link.key[1]: link for link in links}
        live_keys = {}
        for identity, item in snapshot.items.items():
            key = CreatorLink.identity_key(platform, identity)
            if key in by_key:
                live_keys[key] = item
        failed_keys = {CreatorLink.identity_key(platform, i) for i in snapshot.failed}

        for key, item in live_keys.items():
            if self.ledger.mark_live(platform, key, item):
                report.went_live.append(key)
                await self._on_live(by_key[key], item, servers)

        for key in self.ledger.live_keys(platform):
            if key in live_keys or key in failed_keys:
                continue
            self.ledger.mark_offline(platform, key)
            report.went_offline.append(key)
            link = by_key.get(key)
            if link is not None:
                await self._on_offline(link, servers)

        if report.went_live or report.went_offline:
            log.info(
                f"[{platform.value}] Cycle done: live={report.went_live} "
                f"offline={report.went_offline} failed={sorted(failed_keys)}"
            )
        else:
            log.debug(f"[{platform.value}] Cycle done: no transitions")
        return report

    # ------------------------------------------------------------------
    # Push path
    # ------------------------------------------------------------------

    async def apply_observation(
        self,
        platform: Platform,
        identity: str,
        item: Optional[LiveItem],
    ) -> bool:
        """
        Apply one pushed observation (item=None means offline).

        Returns True when it caused a transition. Unknown identities and
        store failures are logged and ignored.
        """
        key = CreatorLink.identity_key(platform, identity)

        async with self._locks[platform]:
            try:
                link = await self._links.find(platform, identity)
                if link is None:
                    log.info(f"[{platform.value}] Push for unlinked identity {identity}; ignoring")
                    return False
                servers = await self._servers.load_servers()
            except PersistenceError as e:
                log.error(f"[{platform.value}] Store unavailable, dropping push: {e}")
                return False

            if item is not None:
                if not self.ledger.mark_live(platform, key, item):
                    return False
                await self._on_live(link, item, servers)
                return True

            if self.ledger.mark_offline(platform, key) is None:
                return False
            await self._on_offline(link, servers)
            return True

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def _on_live(
        self,
        link: CreatorLink,
        item: LiveItem,
        servers: List[ServerConfig],
    ) -> None:
        log.info(f"[{link.platform.value}] {link.name} went live: {item.title!r}")
        message = build_live_announcement(link, item)

        for server in servers:
            if server.matches_title(item.title):
                try:
                    await self._notifier.announce_live(server, message)
                except Exception as e:
                    log.error(f"[{server.server_id}] Announcement error for {link.name}: {e}")
            else:
                log.info(f"[{server.server_id}] Title did not match keywords; no message for {link.name}")

            try:
                outcome = await self._notifier.grant_role(server, link.discord_user_id)
            except Exception as e:
                log.error(f"[{server.server_id}] Role grant error for {link.name}: {e}")
                continue
            if not outcome:
                log.debug(f"[{server.server_id}] Role grant for {link.name}: {outcome!r}")

    async def _on_offline(self, link: CreatorLink, servers: List[ServerConfig]) -> None:
        log.info(f"[{link.platform.value}] {link.name} went offline")

        for server in servers:
            try:
                outcome = await self._notifier.revoke_role(server, link.discord_user_id)
            except Exception as e:
                log.error(f"[{server.server_id}] Role revoke error for {link.name}: {e}")
                continue
            if not outcome:
                log.debug(f"[{server.server_id}] Role revoke for {link.name}: {outcome!r}")
