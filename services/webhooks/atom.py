"""
YouTube push notification parsing.

The hub delivers an Atom feed with a single entry per published or
updated video:

    <feed xmlns="http://www.w3.org/2005/Atom"
          xmlns:yt="http://www.youtube.com/xml/schemas/2015">
      <entry>
        <yt:videoId>...</yt:videoId>
        <yt:channelId>...</yt:channelId>
        <title>...</title>
      </entry>
    </feed>
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

NAMESPACES = {
    "atom": "http://www.w3.org/2005/Atom",
    "yt": "http://www.youtube.com/xml/schemas/2015",
}


@dataclass(frozen=True)
class YouTubeNotification:
    channel_id: str
    video_id: str
    title: str

    def to_payload(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "channelId": data["channel_id"],
            "videoId": data["video_id"],
            "title": data["title"],
        }

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["YouTubeNotification"]:
        if not isinstance(payload, dict):
            return None
        channel_id = payload.get("channelId")
        video_id = payload.get("videoId")
        title = payload.get("title")
        if not all(isinstance(v, str) and v for v in (channel_id, video_id, title)):
            return None
        return cls(channel_id=channel_id, video_id=video_id, title=title)


def _text(entry: ET.Element, path: str) -> Optional[str]:
    node = entry.find(path, NAMESPACES)
    if node is None or node.text is None:
        return None
    value = node.text.strip()
    return value or None


def parse_notification(body: bytes) -> Optional[YouTubeNotification]:
    """
    Return the first entry's (channel, video, title), or None when the
    document is unparseable, has no entry, or the entry is incomplete.
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        return None

    entry = root.find("atom:entry", NAMESPACES)
    if entry is None:
        return None

    channel_id = _text(entry, "yt:channelId")
    video_id = _text(entry, "yt:videoId")
    title = _text(entry, "atom:title")
    if not channel_id or not video_id or not title:
        return None

    return YouTubeNotification(channel_id=channel_id, video_id=video_id, title=title)
