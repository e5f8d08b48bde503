from __future__ import annotations

import asyncio
import json

import httpx
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from services.oauth.callback import (
    MSG_ALREADY_LINKED,
    MSG_DENIED,
    MSG_MISSING_CODE,
    MSG_NO_CONNECTIONS,
    MSG_YOUTUBE_LIMIT,
    CallbackRoutes,
    LinkIngest,
)
from services.oauth.discord_oauth import DiscordOAuthClient
from shared.platforms.models import Platform
from shared.storage.links import LinkStore
from shared.storage.server_settings import ServerSettingsStore


class _Notifier:
    def __init__(self):
        self.sent = []

    async def announce(self, server, message):
        self.sent.append((server.server_id, message.content))
        return True


def _discord_api(connections, *, token_status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/oauth2/token"):
            if token_status != 200:
                return httpx.Response(token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "user-token"})
        assert request.headers["Authorization"] == "Bearer user-token"
        if request.url.path.endswith("/users/@me/connections"):
            return httpx.Response(200, json=connections)
        if request.url.path.endswith("/users/@me"):
            return httpx.Response(200, json={"id": "555", "username": "member"})
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def _oauth(transport=None):
    return DiscordOAuthClient(
        client_id="cid",
        client_secret="secret",
        redirect_uri="https://bot.example/callback",
        transport=transport,
    )


def _get(tmp_path, params, transport=None, notifier=None, youtube_account_limit=0):
    notifier = notifier or _Notifier()
    ingest = LinkIngest(
        oauth=_oauth(transport),
        links=LinkStore(tmp_path),
        servers=ServerSettingsStore(tmp_path),
        notifier=notifier,
        youtube_account_limit=youtube_account_limit,
    )

    async def run():
        app = web.Application()
        CallbackRoutes(ingest).attach(app)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/callback", params=params)
            return resp.status, await resp.text()

    return asyncio.run(run())


def test_authorize_url_requests_connections_scope():
    url = _oauth().authorize_url()

    assert url.startswith("https://discord.com/api/oauth2/authorize?")
    assert "client_id=cid" in url
    assert "response_type=code" in url
    assert "scope=identify%20connections" in url
    assert "redirect_uri=https%3A%2F%2Fbot.example%2Fcallback" in url


def test_missing_code_is_reported_without_side_effects(tmp_path):
    status, text = _get(tmp_path, {})

    assert (status, text) == (200, MSG_MISSING_CODE)
    assert list(tmp_path.iterdir()) == []


def test_denied_authorization(tmp_path):
    status, text = _get(tmp_path, {"error": "access_denied"})

    assert (status, text) == (200, MSG_DENIED)


def test_full_flow_records_links_and_announces(tmp_path):
    (tmp_path / "serverSettings.json").write_text(
        json.dumps({"servers": {"10": {"channelId": "100", "liveRoleId": "200"}}}),
        encoding="utf-8",
    )
    notifier = _Notifier()
    transport = _discord_api([
        {"type": "twitch", "id": "777", "name": "Alice"},
        {"type": "youtube", "id": "UCalice", "name": "Alice Plays"},
        {"type": "steam", "id": "1", "name": "ignored"},
    ])

    status, text = _get(tmp_path, {"code": "abc"}, transport=transport, notifier=notifier)

    assert status == 200
    assert text.startswith("Linked: ")
    assert "Twitch (Alice)" in text
    assert "YouTube (Alice Plays)" in text

    twitch = json.loads((tmp_path / "tbs.json").read_text(encoding="utf-8"))
    assert twitch == [{"twitchUsername": "Alice", "discordId": "555", "twitchId": "777", "displayName": "Alice"}]
    youtube = json.loads((tmp_path / "youtubers.json").read_text(encoding="utf-8"))
    assert youtube == [{"youtubeId": "UCalice", "discordId": "555", "youtubeUsername": "Alice Plays"}]

    assert len(notifier.sent) == 2
    assert all(sid == "10" for sid, _ in notifier.sent)
    assert "<@555>" in notifier.sent[0][1]


def test_second_link_is_idempotent(tmp_path):
    transport = _discord_api([{"type": "twitch", "id": "777", "name": "alice"}])
    notifier = _Notifier()

    _get(tmp_path, {"code": "abc"}, transport=transport, notifier=notifier)
    status, text = _get(tmp_path, {"code": "abc"}, transport=transport, notifier=notifier)

    assert (status, text) == (200, MSG_ALREADY_LINKED)
    links = asyncio.run(LinkStore(tmp_path).load_links(Platform.TWITCH))
    assert len(links) == 1


def test_no_streaming_connections(tmp_path):
    transport = _discord_api([{"type": "github", "id": "1", "name": "dev"}])

    status, text = _get(tmp_path, {"code": "abc"}, transport=transport)

    assert (status, text) == (200, MSG_NO_CONNECTIONS)


def test_failed_exchange_shows_retry_message(tmp_path):
    transport = _discord_api([], token_status=400)

    status, text = _get(tmp_path, {"code": "stale"}, transport=transport)

    assert status == 200
    assert text == "Authentication failed. Please try /link again."
    assert list(tmp_path.iterdir()) == []


def test_youtube_limit_blocks_new_channels(tmp_path):
    (tmp_path / "youtubers.json").write_text(
        json.dumps([{"youtubeId": "UCfirst", "discordId": "1"}]),
        encoding="utf-8",
    )
    transport = _discord_api([{"type": "youtube", "id": "UCsecond", "name": "Second"}])

    status, text = _get(tmp_path, {"code": "abc"}, transport=transport, youtube_account_limit=1)

    assert (status, text) == (200, MSG_YOUTUBE_LIMIT)
    links = asyncio.run(LinkStore(tmp_path).load_links(Platform.YOUTUBE))
    assert [l.identity for l in links] == ["UCfirst"]


def test_youtube_limit_does_not_block_twitch(tmp_path):
    (tmp_path / "youtubers.json").write_text(
        json.dumps([{"youtubeId": "UCfirst", "discordId": "1"}]),
        encoding="utf-8",
    )
    notifier = _Notifier()
    transport = _discord_api([
        {"type": "twitch", "id": "777", "name": "alice"},
        {"type": "youtube", "id": "UCsecond", "name": "Second"},
    ])

    status, text = _get(
        tmp_path, {"code": "abc"}, transport=transport, notifier=notifier, youtube_account_limit=1
    )

    assert status == 200
    assert text.startswith("Linked: Twitch (alice).")
    assert MSG_YOUTUBE_LIMIT in text
    assert asyncio.run(LinkStore(tmp_path).load_links(Platform.TWITCH))[0].identity == "alice"
