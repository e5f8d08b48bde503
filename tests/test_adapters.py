from __future__ import annotations

import asyncio
from urllib.parse import parse_qs

import httpx

from services.twitch.api.streams import TwitchStreamsAPI
from services.youtube.api.livestream import YouTubeLivestreamAPI
from services.youtube.websub import WebSubSubscriber


# ------------------------------------------------------------
# Twitch
# ------------------------------------------------------------

def _twitch(handler):
    return TwitchStreamsAPI(
        client_id="cid",
        client_secret="secret",
        transport=httpx.MockTransport(handler),
    )


def _helix(streams_for, *, token_status=200, streams_status=200, requests=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if request.url.host == "id.twitch.tv":
            if token_status != 200:
                return httpx.Response(token_status)
            return httpx.Response(200, json={"access_token": "app-token", "expires_in": 3600})
        if streams_status != 200:
            return httpx.Response(streams_status)
        logins = request.url.params.get_list("user_login")
        return httpx.Response(200, json={"data": streams_for(logins)})

    return handler


def test_twitch_reports_live_logins():
    def streams(logins):
        return [{
            "id": "s1",
            "user_login": "alice",
            "user_name": "Alice",
            "type": "live",
            "title": "Speedrun",
            "thumbnail_url": "https://img/live_user_alice-{width}x{height}.jpg",
        }]

    requests = []
    snapshot = asyncio.run(_twitch(_helix(streams, requests=requests)).fetch_live_set(["Alice", "bob"]))

    assert snapshot is not None
    assert set(snapshot.items) == {"Alice"}
    item = snapshot.items["Alice"]
    assert item.title == "Speedrun"
    assert item.stream_id == "s1"
    assert item.thumbnail_url == "https://img/live_user_alice-1280x720.jpg"

    helix = requests[1]
    assert helix.headers["Client-ID"] == "cid"
    assert helix.headers["Authorization"] == "Bearer app-token"
    assert helix.url.params.get_list("user_login") == ["alice", "bob"]


def test_twitch_batches_large_login_lists():
    requests = []
    logins = [f"user{i}" for i in range(150)]

    snapshot = asyncio.run(
        _twitch(_helix(lambda _: [], requests=requests)).fetch_live_set(logins)
    )

    helix_calls = [r for r in requests if r.url.host == "api.twitch.tv"]
    assert snapshot is not None and not snapshot.items
    assert [len(r.url.params.get_list("user_login")) for r in helix_calls] == [100, 50]


def test_twitch_empty_input_makes_no_requests():
    requests = []

    snapshot = asyncio.run(
        _twitch(_helix(lambda _: [], requests=requests)).fetch_live_set([])
    )

    assert snapshot is not None and not snapshot.items
    assert requests == []


def test_twitch_token_failure_is_unknown():
    snapshot = asyncio.run(_twitch(_helix(lambda _: [], token_status=401)).fetch_live_set(["a"]))
    assert snapshot is None


def test_twitch_query_failure_is_unknown():
    snapshot = asyncio.run(_twitch(_helix(lambda _: [], streams_status=500)).fetch_live_set(["a"]))
    assert snapshot is None


def test_twitch_malformed_streams_payload_is_unknown():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "id.twitch.tv":
            return httpx.Response(200, json={"access_token": "app-token"})
        return httpx.Response(200, json={"data": ["not-an-object"]})

    assert asyncio.run(_twitch(handler).fetch_live_set(["alice"])) is None


def test_twitch_non_object_token_response_is_unknown():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=["unexpected"])

    assert asyncio.run(_twitch(handler).fetch_live_set(["alice"])) is None


# ------------------------------------------------------------
# YouTube
# ------------------------------------------------------------

def _youtube(handler):
    return YouTubeLivestreamAPI(api_key="key", transport=httpx.MockTransport(handler))


def test_youtube_live_search_per_channel():
    def handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        assert params["eventType"] == "live"
        assert params["key"] == "key"
        channel = params["channelId"]
        if channel == "UCbroken":
            return httpx.Response(403, json={"error": "quotaExceeded"})
        if channel == "UClive":
            return httpx.Response(200, json={"items": [{
                "id": {"videoId": "vid1"},
                "snippet": {
                    "title": "Live now",
                    "channelTitle": "Live Channel",
                    "thumbnails": {"high": {"url": "https://i.ytimg.com/vid1.jpg"}},
                },
            }]})
        return httpx.Response(200, json={"items": []})

    snapshot = asyncio.run(_youtube(handler).fetch_live_set(["UClive", "UCidle", "UCbroken"]))

    assert set(snapshot.items) == {"UClive"}
    assert snapshot.items["UClive"].video_id == "vid1"
    assert snapshot.items["UClive"].display_name == "Live Channel"
    assert snapshot.failed == frozenset({"UCbroken"})


def test_youtube_video_live_state():
    def handler(request: httpx.Request) -> httpx.Response:
        video_id = request.url.params["id"]
        details = {"actualStartTime": "2024-01-01T00:00:00Z"}
        if video_id == "ended":
            details["actualEndTime"] = "2024-01-01T02:00:00Z"
        if video_id == "missing":
            return httpx.Response(200, json={"items": []})
        return httpx.Response(200, json={"items": [{
            "id": video_id,
            "snippet": {"channelId": "UCa", "title": "Stream"},
            "liveStreamingDetails": details,
        }]})

    api = _youtube(handler)

    live = asyncio.run(api.get_video_live_state("live"))
    ended = asyncio.run(api.get_video_live_state("ended"))
    missing = asyncio.run(api.get_video_live_state("missing"))

    assert live.is_live() and live.channel_id == "UCa"
    assert not ended.is_live() and ended.actual_end
    assert missing is None


def test_youtube_video_lookup_error_is_none():
    api = _youtube(lambda request: httpx.Response(500))
    assert asyncio.run(api.get_video_live_state("x")) is None


def test_youtube_malformed_channel_does_not_abort_others():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["channelId"] == "UCbad":
            return httpx.Response(200, json={"items": ["not-an-object"]})
        return httpx.Response(200, json={"items": [{
            "id": {"videoId": "vid2"},
            "snippet": {"title": "Still live"},
        }]})

    snapshot = asyncio.run(_youtube(handler).fetch_live_set(["UCbad", "UCgood"]))

    assert set(snapshot.items) == {"UCgood"}
    assert snapshot.failed == frozenset({"UCbad"})


def test_youtube_non_object_search_response_marks_channel_failed():
    snapshot = asyncio.run(
        _youtube(lambda request: httpx.Response(200, json=["unexpected"])).fetch_live_set(["UCa"])
    )

    assert not snapshot.items
    assert snapshot.failed == frozenset({"UCa"})


def test_youtube_video_lookup_bad_shape_is_none():
    api = _youtube(lambda request: httpx.Response(200, json={"items": ["x"]}))
    assert asyncio.run(api.get_video_live_state("x")) is None


# ------------------------------------------------------------
# WebSub
# ------------------------------------------------------------

def test_websub_subscribes_each_channel():
    forms = []

    def handler(request: httpx.Request) -> httpx.Response:
        form = parse_qs(request.read().decode("utf-8"))
        forms.append(form)
        if "UCbad" in form["hub.topic"][0]:
            return httpx.Response(500)
        return httpx.Response(202)

    subscriber = WebSubSubscriber(
        callback_url="https://hooks.example/webhook/youtube",
        secret="s3cret",
        transport=httpx.MockTransport(handler),
    )

    accepted = asyncio.run(subscriber.subscribe_all(["UCa", "UCbad"]))

    assert accepted == 1
    assert forms[0]["hub.mode"] == ["subscribe"]
    assert forms[0]["hub.callback"] == ["https://hooks.example/webhook/youtube"]
    assert forms[0]["hub.topic"] == ["https://www.youtube.com/xml/feeds/videos.xml?channel_id=UCa"]
    assert forms[0]["hub.secret"] == ["s3cret"]
