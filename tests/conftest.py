"""Pytest configuration and fixtures."""

import os
import sys
from datetime import datetime, timezone
from unittest.mock import Mock, AsyncMock, patch

import pytest
import pytest_asyncio

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from domains.reminders.errors import DeliveryError, NotFoundError
from domains.reminders.messaging import Messenger
from domains.reminders.sessions import RegistrationSessionManager
from domains.reminders.store import InMemoryReminderStore

# 2025/01/01 09:00 on the UTC+9 reminder clock
NOW = datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)


class FakeMessenger(Messenger):
    """Records sends; channels can be made missing or failing per id."""

    def __init__(self):
        self.sent: list[tuple[int, str]] = []
        self.missing: set[int] = set()
        self.failing: set[int] = set()

    async def resolve_channel(self, channel_id: int):
        if channel_id in self.missing:
            raise NotFoundError(f"Channel {channel_id} not found")
        return channel_id

    async def send(self, channel, text: str) -> None:
        if channel in self.failing:
            raise DeliveryError(f"Send to channel {channel} failed")
        self.sent.append((channel, text))


@pytest.fixture
def memory_store():
    return InMemoryReminderStore()


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest_asyncio.fixture
async def sessions(memory_store):
    """Session manager with a short idle timeout."""
    manager = RegistrationSessionManager(memory_store, timeout_seconds=0.05)
    yield manager
    manager.close()


@pytest.fixture
def mock_discord_bot():
    """Create a mock Discord bot."""
    bot = Mock()
    bot.get_channel = Mock(return_value=Mock(id=10, send=AsyncMock()))
    bot.fetch_channel = AsyncMock()
    bot.user = Mock(name="TestBot#1234")
    return bot


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx client."""
    with patch('httpx.AsyncClient') as mock:
        client = AsyncMock()
        mock.return_value.__aenter__.return_value = client
        yield client
