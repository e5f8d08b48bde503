from __future__ import annotations

import asyncio
from types import SimpleNamespace

import discord

from services.discord.announcements import DiscordNotifier, RoleStatus
from shared.platforms.models import Announcement, ServerConfig

SERVER = ServerConfig(server_id="10", announce_channel_id="100", live_role_id="200")


def _http_error(cls, status):
    return cls(SimpleNamespace(status=status, reason="error"), "boom")


class _Channel:
    def __init__(self, error=None):
        self.sent = []
        self.error = error

    async def send(self, **kwargs):
        if self.error:
            raise self.error
        self.sent.append(kwargs)


class _Member:
    def __init__(self, error=None):
        self.added = []
        self.removed = []
        self.error = error

    async def add_roles(self, role, reason=None):
        if self.error:
            raise self.error
        self.added.append(role)

    async def remove_roles(self, role, reason=None):
        if self.error:
            raise self.error
        self.removed.append(role)


class _Guild:
    def __init__(self, *, role=True, member=None, fetch_error=None):
        self.role = SimpleNamespace(id=200) if role else None
        self.member = member
        self.fetch_error = fetch_error
        self.fetched = []

    def get_role(self, role_id):
        return self.role if self.role and role_id == self.role.id else None

    def get_member(self, user_id):
        return None

    async def fetch_member(self, user_id):
        self.fetched.append(user_id)
        if self.fetch_error:
            raise self.fetch_error
        return self.member


class _Client:
    def __init__(self, *, channel=None, guild=None, channel_error=None):
        self.channel = channel
        self.guild = guild
        self.channel_error = channel_error

    def get_channel(self, channel_id):
        return None

    async def fetch_channel(self, channel_id):
        if self.channel_error:
            raise self.channel_error
        return self.channel

    def get_guild(self, guild_id):
        return self.guild if guild_id == 10 else None


def test_announce_plain_content():
    channel = _Channel()
    notifier = DiscordNotifier(_Client(channel=channel))

    ok = asyncio.run(notifier.announce_live(SERVER, Announcement(content="hello")))

    assert ok is True
    assert channel.sent == [{"content": "hello"}]


def test_announce_embed():
    channel = _Channel()
    notifier = DiscordNotifier(_Client(channel=channel))
    message = Announcement(
        title="alice is live on Twitch!",
        description="📺 Speedrun",
        url="https://www.twitch.tv/alice",
        image_url="https://img/1.jpg",
        color=6570404,
    )

    asyncio.run(notifier.announce_live(SERVER, message))

    embed = channel.sent[0]["embed"]
    assert isinstance(embed, discord.Embed)
    assert embed.title == "alice is live on Twitch!"
    assert embed.url == "https://www.twitch.tv/alice"
    assert embed.image.url == "https://img/1.jpg"


def test_announce_failures_return_false():
    missing = DiscordNotifier(_Client(channel_error=_http_error(discord.NotFound, 404)))
    forbidden = DiscordNotifier(_Client(channel=_Channel(error=_http_error(discord.Forbidden, 403))))

    assert asyncio.run(missing.announce_live(SERVER, Announcement(content="x"))) is False
    assert asyncio.run(forbidden.announce_live(SERVER, Announcement(content="x"))) is False


def test_disabled_notifier_sends_nothing():
    channel = _Channel()
    notifier = DiscordNotifier(_Client(channel=channel))
    notifier.disable()

    assert asyncio.run(notifier.announce_live(SERVER, Announcement(content="x"))) is False
    assert channel.sent == []


def test_grant_and_revoke_role():
    member = _Member()
    guild = _Guild(member=member)
    notifier = DiscordNotifier(_Client(guild=guild))

    granted = asyncio.run(notifier.grant_role(SERVER, "42"))
    revoked = asyncio.run(notifier.revoke_role(SERVER, "42"))

    assert granted and granted.status is RoleStatus.APPLIED
    assert revoked.status is RoleStatus.APPLIED
    assert member.added == [guild.role]
    assert member.removed == [guild.role]
    assert guild.fetched == [42, 42]


def test_role_outcomes_for_missing_pieces():
    no_guild = DiscordNotifier(_Client(guild=None))
    no_role = DiscordNotifier(_Client(guild=_Guild(role=False, member=_Member())))
    no_member = DiscordNotifier(
        _Client(guild=_Guild(fetch_error=_http_error(discord.NotFound, 404)))
    )

    assert asyncio.run(no_guild.grant_role(SERVER, "42")).status is RoleStatus.NO_SUCH_GUILD
    assert asyncio.run(no_role.grant_role(SERVER, "42")).status is RoleStatus.NO_SUCH_ROLE
    outcome = asyncio.run(no_member.revoke_role(SERVER, "42"))
    assert outcome.status is RoleStatus.NO_SUCH_MEMBER
    assert not outcome


def test_role_outcomes_for_discord_errors():
    forbidden = DiscordNotifier(
        _Client(guild=_Guild(member=_Member(error=_http_error(discord.Forbidden, 403))))
    )
    transport = DiscordNotifier(
        _Client(guild=_Guild(member=_Member(error=_http_error(discord.HTTPException, 500))))
    )

    assert asyncio.run(forbidden.grant_role(SERVER, "42")).status is RoleStatus.FORBIDDEN
    assert asyncio.run(transport.revoke_role(SERVER, "42")).status is RoleStatus.TRANSPORT_ERROR
