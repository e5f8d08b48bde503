from __future__ import annotations

from typing import Iterable, Optional

import httpx

from shared.logging.logger import get_logger

log = get_logger("youtube.websub")


class WebSubSubscriber:
    """
    Keeps PubSubHubbub subscriptions alive for linked YouTube channels.

    The hub verifies asynchronously by calling the public receiver with a
    `hub.challenge`; leases expire, so this runs on a fixed cadence.
    """

    HUB_URL = "https://pubsubhubbub.appspot.com/subscribe"
    TOPIC_URL = "https://www.youtube.com/xml/feeds/videos.xml?channel_id={channel_id}"

    def __init__(
        self,
        *,
        callback_url: str,
        secret: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not callback_url:
            raise RuntimeError("WebSub callback URL is required")
        self.callback_url = callback_url
        self._secret = secret
        self._timeout = timeout
        self._transport = transport

    async def subscribe_all(self, channel_ids: Iterable[str]) -> int:
        """Subscribe every channel; returns how many requests the hub accepted."""
        accepted = 0
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            for channel_id in channel_ids:
                if await self._subscribe(client, channel_id):
                    accepted += 1
        return accepted

    async def _subscribe(self, client: httpx.AsyncClient, channel_id: str) -> bool:
        data = {
            "hub.mode": "subscribe",
            "hub.topic": self.TOPIC_URL.format(channel_id=channel_id),
            "hub.callback": self.callback_url,
            "hub.verify": "async",
        }
        if self._secret:
            data["hub.secret"] = self._secret

        try:
            r = await client.post(self.HUB_URL, data=data)
            r.raise_for_status()
        except httpx.HTTPError as e:
            log.warning(f"WebSub subscribe failed for {channel_id}: {e}")
            return False

        log.info(f"WebSub subscription renewed for {channel_id}")
        return True
