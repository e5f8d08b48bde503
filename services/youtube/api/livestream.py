import httpx
from typing import Iterable, Optional

from services.youtube.models.stream import YouTubeLivestream
from shared.logging.logger import get_logger
from shared.platforms.models import LiveItem, LiveSnapshot

log = get_logger("youtube.livestream")


class YouTubeLivestreamAPI:
    """
    YouTube livestream discovery API (Data API v3).

    Responsibilities:
    - Detect the active live broadcast for each watched channel
    - Report channels whose lookup failed so their state is left alone
    - Confirm a single video's live state for pushed notifications

    This module is read-only and safe to call repeatedly.
    """

    SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
    VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"

    def __init__(
        self,
        *,
        api_key: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise RuntimeError("YouTube API key is required")
        self.api_key = api_key
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    # ------------------------------------------------------------
    # Poll path
    # ------------------------------------------------------------

    async def fetch_live_set(self, channel_ids: Iterable[str]) -> LiveSnapshot:
        """
        One search call per channel. A channel whose lookup fails is
        reported in `failed` instead of being treated as offline.
        """
        items = {}
        failed = set()

        async with self._client() as client:
            for channel_id in channel_ids:
                try:
                    item = await self._find_live_item(client, channel_id)
                except (httpx.HTTPError, ValueError) as e:
                    log.warning(f"YouTube live search error for {channel_id}: {e}")
                    failed.add(channel_id)
                    continue

                if item is not None:
                    items[channel_id] = item

        return LiveSnapshot(items=items, failed=frozenset(failed))

    async def _find_live_item(
        self,
        client: httpx.AsyncClient,
        channel_id: str,
    ) -> Optional[LiveItem]:
        params = {
            "part": "snippet",
            "channelId": channel_id,
            "eventType": "live",
            "type": "video",
            "maxResults": 1,
            "key": self.api_key,
        }

        r = await client.get(self.SEARCH_URL, params=params)
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, dict):
            raise ValueError("search response is not an object")

        items = data.get("items") or []
        if not isinstance(items, list):
            raise ValueError("search items is not a list")
        if not items:
            return None

        first = items[0]
        if not isinstance(first, dict):
            raise ValueError("search item is not an object")

        ref = first.get("id")
        video_id = ref.get("videoId") if isinstance(ref, dict) else None
        if not video_id:
            return None

        snippet = first.get("snippet")
        if not isinstance(snippet, dict):
            snippet = {}
        thumbnails = snippet.get("thumbnails")
        thumb = None
        if isinstance(thumbnails, dict):
            best = thumbnails.get("high") or thumbnails.get("default")
            if isinstance(best, dict):
                thumb = best.get("url")

        return LiveItem(
            identity=channel_id,
            title=snippet.get("title"),
            video_id=video_id,
            display_name=snippet.get("channelTitle"),
            thumbnail_url=thumb,
        )

    # ------------------------------------------------------------
    # Push path
    # ------------------------------------------------------------

    async def get_video_live_state(
        self,
        video_id: str,
    ) -> Optional[YouTubeLivestream]:
        """
        Resolve a video's live state. Returns None when the lookup fails
        or the video does not exist.
        """
        params = {
            "part": "liveStreamingDetails,snippet",
            "id": video_id,
            "key": self.api_key,
        }

        async with self._client() as client:
            try:
                r = await client.get(self.VIDEOS_URL, params=params)
                r.raise_for_status()
                data = r.json()
            except (httpx.HTTPError, ValueError) as e:
                log.warning(f"YouTube video lookup error for {video_id}: {e}")
                return None

        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            log.warning(f"YouTube video lookup for {video_id} returned no usable item")
            return None

        return YouTubeLivestream.from_video_item(items[0])
