from __future__ import annotations

from typing import Optional

import httpx

from services.webhooks.atom import YouTubeNotification
from shared.logging.logger import get_logger

log = get_logger("webhooks.forwarder", runtime="webhooks")


class WebhookForwarder:
    """
    Relays verified notifications to the main runtime's internal endpoint.

    Failures (including the 5 s timeout) are logged and dropped; the hub
    has already been acknowledged.
    """

    def __init__(
        self,
        *,
        url: str,
        verify_tls: bool = True,
        token: Optional[str] = None,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not url:
            raise RuntimeError("Webhook forward URL is required")
        self.url = url
        self._verify_tls = verify_tls
        self._token = token
        self._timeout = timeout
        self._transport = transport

        if not verify_tls:
            log.warning("TLS verification disabled for webhook forwarding")

    async def forward(self, notification: YouTubeNotification) -> bool:
        headers = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        async with httpx.AsyncClient(
            timeout=self._timeout,
            verify=self._verify_tls,
            transport=self._transport,
        ) as client:
            try:
                r = await client.post(self.url, json=notification.to_payload(), headers=headers)
                r.raise_for_status()
            except httpx.TimeoutException:
                log.warning(f"Forward timed out for video {notification.video_id}")
                return False
            except httpx.HTTPError as e:
                log.error(f"Forward failed for video {notification.video_id}: {e}")
                return False

        log.info(
            f"Forwarded {notification.channel_id}/{notification.video_id} "
            f"({r.status_code})"
        )
        return True
