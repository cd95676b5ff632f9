"""Outbound messaging surface for reminder delivery."""

from abc import ABC, abstractmethod
from typing import Any

import discord

from .errors import DeliveryError, NotFoundError


class Messenger(ABC):
    """Resolves channels and sends text to them."""

    @abstractmethod
    async def resolve_channel(self, channel_id: int) -> Any:
        """Return a sendable channel or raise NotFoundError."""

    @abstractmethod
    async def send(self, channel: Any, text: str) -> None:
        """Send text or raise DeliveryError."""


class DiscordMessenger(Messenger):
    """Messenger backed by a discord.py client."""

    def __init__(self, bot: discord.Client):
        self.bot = bot

    async def resolve_channel(self, channel_id: int):
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(channel_id)
            except (discord.NotFound, discord.Forbidden, discord.InvalidData) as e:
                raise NotFoundError(f"Channel {channel_id} not found: {e}") from e
            except discord.HTTPException as e:
                raise NotFoundError(f"Failed to fetch channel {channel_id}: {e}") from e

        if channel is None or not hasattr(channel, "send"):
            raise NotFoundError(f"Channel {channel_id} is not a text channel")
        return channel

    async def send(self, channel, text: str) -> None:
        try:
            await channel.send(
                text,
                allowed_mentions=discord.AllowedMentions(users=True, roles=False, everyone=False)
            )
        except discord.HTTPException as e:
            raise DeliveryError(f"Send to channel {getattr(channel, 'id', '?')} failed: {e}") from e
