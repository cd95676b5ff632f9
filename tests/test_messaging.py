"""Tests for the Discord messaging surface."""

from unittest.mock import AsyncMock, Mock

import discord
import pytest

from domains.reminders.errors import DeliveryError, NotFoundError
from domains.reminders.messaging import DiscordMessenger


def _http_error(cls, status):
    return cls(Mock(status=status, reason="error"), "boom")


@pytest.mark.asyncio
async def test_resolves_cached_channel(mock_discord_bot):
    channel = await DiscordMessenger(mock_discord_bot).resolve_channel(10)

    assert channel is mock_discord_bot.get_channel.return_value
    mock_discord_bot.fetch_channel.assert_not_called()


@pytest.mark.asyncio
async def test_falls_back_to_fetch(mock_discord_bot):
    fetched = Mock(send=AsyncMock())
    mock_discord_bot.get_channel.return_value = None
    mock_discord_bot.fetch_channel.return_value = fetched

    assert await DiscordMessenger(mock_discord_bot).resolve_channel(10) is fetched


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    _http_error(discord.NotFound, 404),
    _http_error(discord.Forbidden, 403),
    _http_error(discord.HTTPException, 500),
])
async def test_fetch_failure_is_not_found(mock_discord_bot, error):
    mock_discord_bot.get_channel.return_value = None
    mock_discord_bot.fetch_channel.side_effect = error

    with pytest.raises(NotFoundError):
        await DiscordMessenger(mock_discord_bot).resolve_channel(10)


@pytest.mark.asyncio
async def test_non_text_channel_is_not_found(mock_discord_bot):
    mock_discord_bot.get_channel.return_value = Mock(spec=["id", "name"])

    with pytest.raises(NotFoundError):
        await DiscordMessenger(mock_discord_bot).resolve_channel(10)


@pytest.mark.asyncio
async def test_send_allows_user_mentions_only(mock_discord_bot):
    channel = Mock(id=10, send=AsyncMock())

    await DiscordMessenger(mock_discord_bot).send(channel, "hi <@1>")

    args, kwargs = channel.send.call_args
    assert args == ("hi <@1>",)
    allowed = kwargs["allowed_mentions"]
    assert allowed.users is True
    assert allowed.everyone is False
    assert allowed.roles is False


@pytest.mark.asyncio
async def test_send_failure_is_delivery_error(mock_discord_bot):
    channel = Mock(id=10, send=AsyncMock(side_effect=_http_error(discord.Forbidden, 403)))

    with pytest.raises(DeliveryError):
        await DiscordMessenger(mock_discord_bot).send(channel, "hi")
