from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class YouTubeLivestream:
    """
    Live-state carrier for a single YouTube video.

    Built from `videos?part=liveStreamingDetails,snippet`; a video counts
    as live once it has started and has not ended.
    """

    video_id: str
    channel_id: Optional[str] = None
    title: Optional[str] = None
    actual_start: Optional[str] = None
    actual_end: Optional[str] = None

    def is_live(self) -> bool:
        return bool(self.actual_start) and not self.actual_end

    @classmethod
    def from_video_item(cls, item: Dict[str, Any]) -> "YouTubeLivestream":
        snippet = item.get("snippet")
        details = item.get("liveStreamingDetails")
        if not isinstance(snippet, dict):
            snippet = {}
        if not isinstance(details, dict):
            details = {}
        return cls(
            video_id=item.get("id", ""),
            channel_id=snippet.get("channelId"),
            title=snippet.get("title"),
            actual_start=details.get("actualStartTime"),
            actual_end=details.get("actualEndTime"),
        )
