from __future__ import annotations

from pathlib import Path

import pytest

from shared.config.settings import load_settings, require


def test_defaults():
    settings = load_settings({"LIVEWATCH_DATA_DIR": "/srv/livewatch"})

    assert settings.discord_token is None
    assert settings.callback_port == 3000
    assert settings.webhook_port == 3001
    assert settings.twitch_poll_seconds == 60.0
    assert settings.youtube_poll_seconds == 600.0
    assert settings.webhook_forward_verify_tls is True
    assert settings.data_dir == Path("/srv/livewatch")


def test_values_are_parsed():
    settings = load_settings({
        "DISCORD_TOKEN": "  tok  ",
        "CALLBACK_PORT": "8080",
        "TWITCH_POLL_SECONDS": "30",
        "WEBHOOK_FORWARD_VERIFY_TLS": "false",
    })

    assert settings.discord_token == "tok"
    assert settings.callback_port == 8080
    assert settings.twitch_poll_seconds == 30.0
    assert settings.webhook_forward_verify_tls is False


def test_bad_values_fall_back_to_defaults():
    settings = load_settings({
        "CALLBACK_PORT": "http",
        "YOUTUBE_POLL_SECONDS": "-5",
        "WEBHOOK_FORWARD_VERIFY_TLS": "maybe",
    })

    assert settings.callback_port == 3000
    assert settings.youtube_poll_seconds == 600.0
    assert settings.webhook_forward_verify_tls is True


def test_require_names_missing_env_keys():
    settings = load_settings({"DISCORD_TOKEN": "tok", "DISCORD_CLIENT_ID": ""})

    with pytest.raises(RuntimeError) as exc:
        require(settings, ["discord_token", "discord_client_id", "redirect_uri"])

    assert "DISCORD_CLIENT_ID" in str(exc.value)
    assert "REDIRECT_URI" in str(exc.value)
    assert "DISCORD_TOKEN" not in str(exc.value)


def test_youtube_account_limit():
    assert load_settings({}).youtube_account_limit == 0
    assert load_settings({"YOUTUBE_ACCOUNT_LIMIT": "25"}).youtube_account_limit == 25
    assert load_settings({"YOUTUBE_ACCOUNT_LIMIT": "-3"}).youtube_account_limit == 0
