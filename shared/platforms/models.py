"""Domain records shared by the reconciler, stores and adapters.

- Platform     : watched streaming platform tag
- CreatorLink  : a Discord member linked to one streaming identity
- ServerConfig : per-guild announce channel + live role
- LiveItem     : one observed live broadcast
- LiveSnapshot : result of polling a platform once
- Announcement : chat message sent on a transition
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional


class Platform(Enum):
    TWITCH = "twitch"
    YOUTUBE = "youtube"

    @classmethod
    def from_value(cls, value: Any) -> "Platform":
        if isinstance(value, cls):
            return value

        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if normalized in {member.name.lower(), member.value}:
                    return member

        raise ValueError(f"Unknown platform: {value!r}")

    @property
    def label(self) -> str:
        return "Twitch" if self is Platform.TWITCH else "YouTube"


# Persisted key names per platform (legacy document layout)
_RECORD_KEYS: Dict[Platform, Dict[str, str]] = {
    Platform.TWITCH: {
        "identity": "twitchUsername",
        "account_id": "twitchId",
    },
    Platform.YOUTUBE: {
        "identity": "youtubeId",
        "display_name": "youtubeUsername",
    },
}


@dataclass(frozen=True)
class CreatorLink:
    platform: Platform
    identity: str
    discord_user_id: str
    display_name: Optional[str] = None
    account_id: Optional[str] = None

    @property
    def key(self) -> tuple[Platform, str]:
        return self.platform, self.identity_key(self.platform, self.identity)

    @property
    def name(self) -> str:
        return self.display_name or self.identity

    @staticmethod
    def identity_key(platform: Platform, identity: str) -> str:
        # Twitch logins are case-insensitive; YouTube channel IDs are not
        if platform is Platform.TWITCH:
            return identity.strip().lower()
        return identity.strip()

    def to_record(self) -> Dict[str, Any]:
        keys = _RECORD_KEYS[self.platform]
        record: Dict[str, Any] = {
            keys["identity"]: self.identity,
            "discordId": self.discord_user_id,
        }
        if self.platform is Platform.TWITCH:
            if self.account_id is not None:
                record[keys["account_id"]] = self.account_id
            if self.display_name is not None:
                record["displayName"] = self.display_name
        else:
            if self.display_name is not None:
                record[keys["display_name"]] = self.display_name
        return record

    @classmethod
    def from_record(cls, platform: Platform, record: Dict[str, Any]) -> Optional["CreatorLink"]:
        if not isinstance(record, dict):
            return None

        keys = _RECORD_KEYS[platform]
        identity = record.get(keys["identity"])
        discord_id = record.get("discordId")
        if not identity or not discord_id:
            return None

        if platform is Platform.TWITCH:
            display_name = record.get("displayName")
            account_id = record.get(keys["account_id"])
        else:
            display_name = record.get(keys["display_name"])
            account_id = None

        return cls(
            platform=platform,
            identity=str(identity),
            discord_user_id=str(discord_id),
            display_name=str(display_name) if display_name is not None else None,
            account_id=str(account_id) if account_id is not None else None,
        )


@dataclass
class ServerConfig:
    server_id: str
    announce_channel_id: str
    live_role_id: str
    keywords: List[str] = field(default_factory=list)

    def matches_title(self, title: Optional[str]) -> bool:
        """Keyword filter for announcements; no keywords means everything matches."""
        if not self.keywords:
            return True
        lowered = (title or "").lower()
        return any(k.lower() in lowered for k in self.keywords if k)

    def to_record(self) -> Dict[str, Any]:
        return {
            "channelId": self.announce_channel_id,
            "liveRoleId": self.live_role_id,
            "keywords": list(self.keywords),
        }

    @classmethod
    def from_record(cls, server_id: str, record: Dict[str, Any]) -> Optional["ServerConfig"]:
        if not isinstance(record, dict):
            return None
        channel_id = record.get("channelId")
        role_id = record.get("liveRoleId")
        if not channel_id or not role_id:
            return None
        keywords = record.get("keywords")
        if not isinstance(keywords, list):
            keywords = []
        return cls(
            server_id=str(server_id),
            announce_channel_id=str(channel_id),
            live_role_id=str(role_id),
            keywords=[str(k) for k in keywords if isinstance(k, str) and k.strip()],
        )


@dataclass(frozen=True)
class LiveItem:
    identity: str
    title: Optional[str] = None
    video_id: Optional[str] = None
    stream_id: Optional[str] = None
    display_name: Optional[str] = None
    thumbnail_url: Optional[str] = None


@dataclass(frozen=True)
class LiveSnapshot:
    """
    Live items observed during one poll.

    `failed` lists identities whose state could not be determined this
    cycle; they must be left untouched by the reconciler.
    """

    items: Dict[str, LiveItem] = field(default_factory=dict)
    failed: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Announcement:
    """Chat message for a transition; rendered to an embed when `title` is set."""

    content: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    color: Optional[int] = None

    @property
    def has_embed(self) -> bool:
        return self.title is not None
