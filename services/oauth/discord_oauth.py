"""
Discord OAuth2 (authorization code) client.

Used to read a member's connected Twitch / YouTube accounts so they can
be linked without typing identifiers by hand.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

import httpx

from shared.errors import LinkIngestError
from shared.logging.logger import get_logger

log = get_logger("oauth.discord")

AUTHORIZE_URL = "https://discord.com/api/oauth2/authorize"
TOKEN_URL = "https://discord.com/api/oauth2/token"
PROFILE_URL = "https://discord.com/api/users/@me"
CONNECTIONS_URL = "https://discord.com/api/users/@me/connections"

SCOPES = "identify connections"


class DiscordOAuthClient:
    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._timeout = timeout
        self._transport = transport

    def authorize_url(self) -> str:
        return AUTHORIZE_URL + "?" + urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": SCOPES,
        }, quote_via=quote)

    # --------------------------------------------------
    # Token exchange + reads
    # --------------------------------------------------

    async def exchange_code(self, client: httpx.AsyncClient, code: str) -> str:
        r = await client.post(
            TOKEN_URL,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            },
        )
        r.raise_for_status()
        token = r.json().get("access_token")
        if not token:
            raise ValueError("token response missing access_token")
        return token

    async def fetch_profile(self, client: httpx.AsyncClient, token: str) -> Dict[str, Any]:
        r = await client.get(PROFILE_URL, headers={"Authorization": f"Bearer {token}"})
        r.raise_for_status()
        return r.json()

    async def fetch_connections(self, client: httpx.AsyncClient, token: str) -> List[Dict[str, Any]]:
        r = await client.get(CONNECTIONS_URL, headers={"Authorization": f"Bearer {token}"})
        r.raise_for_status()
        data = r.json()
        return data if isinstance(data, list) else []

    async def resolve_member(self, code: str) -> tuple[Dict[str, Any], List[Dict[str, Any]]]:
        """
        Exchange `code` and return (profile, connections).

        Raises LinkIngestError on any HTTP or payload failure.
        """
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            try:
                token = await self.exchange_code(client, code)
                profile = await self.fetch_profile(client, token)
                connections = await self.fetch_connections(client, token)
            except (httpx.HTTPError, ValueError) as e:
                log.warning(f"Discord OAuth exchange failed: {e}")
                raise LinkIngestError(
                    f"Discord OAuth exchange failed: {e}",
                    user_message="Authentication failed. Please try /link again.",
                ) from e

        if not profile.get("id"):
            raise LinkIngestError(
                "Discord profile missing id",
                user_message="Authentication failed. Please try /link again.",
            )
        return profile, connections
