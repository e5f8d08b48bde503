"""
Creator link store.

One JSON list per platform (tbs.json for Twitch, youtubers.json for
YouTube). Records are append-only; unknown keys on existing records
(e.g. legacy guildIds) are preserved on rewrite.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

from shared.errors import LinkLimitError
from shared.logging.logger import get_logger
from shared.platforms.models import CreatorLink, Platform
from shared.storage.json_document import JsonDocument
from shared.storage.paths import (
    TWITCH_LINKS_FILE,
    YOUTUBE_LINKS_FILE,
    get_data_path,
)

log = get_logger("shared.links")

_FILES = {
    Platform.TWITCH: TWITCH_LINKS_FILE,
    Platform.YOUTUBE: YOUTUBE_LINKS_FILE,
}


class LinkStore:
    def __init__(self, data_dir: Optional[Path | str] = None):
        self._documents: Dict[Platform, JsonDocument] = {
            platform: JsonDocument(get_data_path(name, data_dir), default=list)
            for platform, name in _FILES.items()
        }
        self._write_lock = asyncio.Lock()

    async def _load_records(self, platform: Platform) -> List[Dict[str, Any]]:
        doc = self._documents[platform]
        raw = await doc.load()
        if not isinstance(raw, list):
            log.warning(f"{doc.path} is not a list; treating as empty")
            return []
        return [r for r in raw if isinstance(r, dict)]

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def load_links(self, platform: Platform) -> List[CreatorLink]:
        """
        Return every valid link for `platform`, first record winning when
        the same identity appears twice. Raises PersistenceError.
        """
        links: List[CreatorLink] = []
        seen = set()
        for record in await self._load_records(platform):
            link = CreatorLink.from_record(platform, record)
            if link is None:
                log.debug(f"Skipping malformed {platform.value} link record: {record}")
                continue
            if link.key in seen:
                continue
            seen.add(link.key)
            links.append(link)
        return links

    async def find(self, platform: Platform, identity: str) -> Optional[CreatorLink]:
        key = (platform, CreatorLink.identity_key(platform, identity))
        for link in await self.load_links(platform):
            if link.key == key:
                return link
        return None

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def record_link(
        self,
        platform: Platform,
        identity: str,
        discord_user_id: str,
        display_name: Optional[str] = None,
        account_id: Optional[str] = None,
        limit: int = 0,
    ) -> bool:
        """
        Append a link unless (platform, identity) is already recorded.

        Returns True when a new record was written, False for a
        duplicate. A positive `limit` caps the number of valid links on
        the platform (LinkLimitError). Raises PersistenceError.
        """
        link = CreatorLink(
            platform=platform,
            identity=identity,
            discord_user_id=str(discord_user_id),
            display_name=display_name,
            account_id=account_id,
        )

        async with self._write_lock:
            records = await self._load_records(platform)
            for record in records:
                existing = CreatorLink.from_record(platform, record)
                if existing is not None and existing.key == link.key:
                    log.info(
                        f"{platform.value} identity {identity} already linked "
                        f"to {existing.discord_user_id}; ignoring"
                    )
                    return False

            if limit > 0:
                valid = sum(1 for r in records if CreatorLink.from_record(platform, r) is not None)
                if valid >= limit:
                    log.info(f"{platform.value} link limit ({limit}) reached; rejecting {identity}")
                    raise LinkLimitError(platform.value, limit)

            records.append(link.to_record())
            await self._documents[platform].save(records)

        log.info(f"Linked {platform.value} {identity} -> discord {discord_user_id}")
        return True
