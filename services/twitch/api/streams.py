import httpx
from typing import Dict, Iterable, List, Optional

from shared.logging.logger import get_logger
from shared.platforms.models import LiveItem, LiveSnapshot

log = get_logger("twitch.streams")


class TwitchStreamsAPI:
    """
    Twitch Helix live-stream lookup.

    - App access token (client credentials) fetched once per poll
    - Logins queried in batches against helix/streams
    - Any token or query failure makes the whole poll unknown (None)
    """

    TOKEN_URL = "https://id.twitch.tv/oauth2/token"
    STREAMS_URL = "https://api.twitch.tv/helix/streams"

    # Helix accepts at most 100 user_login values per request
    BATCH_SIZE = 100

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not client_id or not client_secret:
            raise RuntimeError("Twitch client_id and client_secret are required")
        self.client_id = client_id
        self.client_secret = client_secret
        self._timeout = timeout
        self._transport = transport

    # ------------------------------------------------------------------ #

    async def fetch_live_set(self, logins: Iterable[str]) -> Optional[LiveSnapshot]:
        wanted: Dict[str, str] = {}
        for login in logins:
            wanted.setdefault(login.strip().lower(), login)
        if not wanted:
            return LiveSnapshot()

        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            token = await self._get_app_token(client)
            if not token:
                return None

            headers = {
                "Client-ID": self.client_id,
                "Authorization": f"Bearer {token}",
            }

            streams: List[dict] = []
            keys = list(wanted)
            for start in range(0, len(keys), self.BATCH_SIZE):
                batch = keys[start:start + self.BATCH_SIZE]
                params = [("user_login", login) for login in batch]
                params.append(("first", str(self.BATCH_SIZE)))
                try:
                    r = await client.get(self.STREAMS_URL, params=params, headers=headers)
                    r.raise_for_status()
                    data = r.json()
                except (httpx.HTTPError, ValueError) as e:
                    log.warning(f"Twitch streams query error: {e}")
                    return None
                page = data.get("data") if isinstance(data, dict) else None
                if not isinstance(page, list) or not all(isinstance(s, dict) for s in page):
                    log.warning("Twitch streams response has an unexpected shape")
                    return None
                streams.extend(page)

        items: Dict[str, LiveItem] = {}
        for stream in streams:
            if stream.get("type", "live") != "live":
                continue
            login = str(stream.get("user_login") or "").lower()
            identity = wanted.get(login)
            if identity is None:
                continue
            items[identity] = LiveItem(
                identity=identity,
                title=stream.get("title"),
                stream_id=stream.get("id"),
                display_name=stream.get("user_name"),
                thumbnail_url=self._thumbnail(stream.get("thumbnail_url")),
            )

        log.debug(f"Twitch poll: {len(items)}/{len(wanted)} live")
        return LiveSnapshot(items=items)

    # ------------------------------------------------------------------ #

    async def _get_app_token(self, client: httpx.AsyncClient) -> Optional[str]:
        params = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "client_credentials",
        }
        try:
            r = await client.post(self.TOKEN_URL, params=params)
            r.raise_for_status()
            body = r.json()
            token = body.get("access_token") if isinstance(body, dict) else None
        except (httpx.HTTPError, ValueError) as e:
            log.warning(f"Twitch token request failed: {e}")
            return None

        if not token:
            log.warning("Twitch token response missing access_token")
            return None
        return token

    @staticmethod
    def _thumbnail(template: Optional[str]) -> Optional[str]:
        if not template:
            return None
        return template.replace("{width}", "1280").replace("{height}", "720")
