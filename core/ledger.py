"""
In-memory live status per platform.

Process-lifetime only: after a restart every still-live creator is seen
as a fresh offline -> live transition and announced once more.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from shared.platforms.models import LiveItem, Platform


class StatusLedger:
    def __init__(self):
        self._live: Dict[Platform, Dict[str, LiveItem]] = {
            platform: {} for platform in Platform
        }

    def is_live(self, platform: Platform, key: str) -> bool:
        return key in self._live[platform]

    def get(self, platform: Platform, key: str) -> Optional[LiveItem]:
        return self._live[platform].get(key)

    def mark_live(self, platform: Platform, key: str, item: LiveItem) -> bool:
        """Record `key` as live. Returns True only on an offline -> live transition."""
        entries = self._live[platform]
        was_live = key in entries
        entries[key] = item
        return not was_live

    def mark_offline(self, platform: Platform, key: str) -> Optional[LiveItem]:
        """Drop `key`. Returns the previous item, or None if it was not live."""
        return self._live[platform].pop(key, None)

    def live_keys(self, platform: Platform) -> List[str]:
        return list(self._live[platform])
