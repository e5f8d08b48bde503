from __future__ import annotations

import asyncio

from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from core.ledger import StatusLedger
from services.webhooks.internal import InternalPushRoutes
from services.youtube.models.stream import YouTubeLivestream
from shared.platforms.models import CreatorLink, LiveItem, Platform

PAYLOAD = {"channelId": "UCa", "videoId": "v1", "title": "Live!"}


class _Links:
    async def find(self, platform, identity):
        if identity == "UCa":
            return CreatorLink(platform=Platform.YOUTUBE, identity="UCa", discord_user_id="1")
        return None


class _YouTube:
    def __init__(self, state):
        self.state = state
        self.lookups = []

    async def get_video_live_state(self, video_id):
        self.lookups.append(video_id)
        return self.state


class _Reconciler:
    def __init__(self):
        self.ledger = StatusLedger()
        self.observations = []

    async def apply_observation(self, platform, identity, item):
        self.observations.append((platform, identity, item))
        return True


def _post(state, payload=PAYLOAD, *, token=None, headers=None, reconciler=None):
    reconciler = reconciler or _Reconciler()
    youtube = _YouTube(state)

    async def run():
        app = web.Application()
        InternalPushRoutes(
            reconciler=reconciler,
            links=_Links(),
            youtube=youtube,
            token=token,
        ).attach(app)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/internal/youtube", json=payload, headers=headers or {})
            return resp.status

    return asyncio.run(run()), reconciler, youtube


def test_live_video_is_applied():
    state = YouTubeLivestream(video_id="v1", title="API title", actual_start="t0")

    status, reconciler, _ = _post(state)

    assert status == 200
    platform, identity, item = reconciler.observations[0]
    assert (platform, identity) == (Platform.YOUTUBE, "UCa")
    assert item.video_id == "v1"
    assert item.title == "API title"


def test_ended_video_marks_offline():
    state = YouTubeLivestream(video_id="v1", actual_start="t0", actual_end="t1")

    status, reconciler, _ = _post(state)

    assert status == 200
    assert reconciler.observations == [(Platform.YOUTUBE, "UCa", None)]


def test_ended_video_ignored_when_another_broadcast_is_tracked():
    reconciler = _Reconciler()
    reconciler.ledger.mark_live(Platform.YOUTUBE, "UCa", LiveItem(identity="UCa", video_id="v2"))
    state = YouTubeLivestream(video_id="v1", actual_start="t0", actual_end="t1")

    status, _, _ = _post(state, reconciler=reconciler)

    assert status == 200
    assert reconciler.observations == []


def test_upload_is_not_a_transition():
    status, reconciler, _ = _post(YouTubeLivestream(video_id="v1"))

    assert status == 200
    assert reconciler.observations == []


def test_unlinked_channel_skips_api_lookup():
    status, reconciler, youtube = _post(
        YouTubeLivestream(video_id="v1", actual_start="t0"),
        payload={"channelId": "UCzzz", "videoId": "v1", "title": "t"},
    )

    assert status == 200
    assert youtube.lookups == []
    assert reconciler.observations == []


def test_bad_payload_is_rejected():
    status, reconciler, _ = _post(None, payload={"channelId": "UCa"})

    assert status == 400
    assert reconciler.observations == []


def test_token_is_enforced():
    state = YouTubeLivestream(video_id="v1", actual_start="t0")

    denied, _, _ = _post(state, token="tok")
    allowed, reconciler, _ = _post(state, token="tok", headers={"Authorization": "Bearer tok"})

    assert denied == 401
    assert allowed == 200
    assert len(reconciler.observations) == 1
