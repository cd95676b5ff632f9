"""Reminder persistence.

``SupabaseReminderStore`` talks to the Supabase REST API. When Supabase is not
configured the bot falls back to ``InMemoryReminderStore`` (reminders are lost
on restart).

The store has no compare-and-set: the scheduler reads due rows and marks them
notified afterwards, so delivery is at-least-once.
"""

import itertools
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone

import httpx

from logger import logger
from utils import sanitize_for_log
from . import config
from .errors import StoreError
from .models import NewReminder, Reminder


class ReminderStore(ABC):
    """Data-access contract for reminders. All methods raise StoreError on failure."""

    @abstractmethod
    async def query_due(self, now: datetime) -> list[Reminder]:
        """Unnotified reminders with scheduled_at <= now."""

    @abstractmethod
    async def query_by_user(self, user_id: int) -> list[Reminder]:
        """Unnotified reminders for a user, ascending by scheduled_at."""

    @abstractmethod
    async def insert(self, reminder: NewReminder) -> Reminder:
        """Persist a new reminder and return it with its id."""

    @abstractmethod
    async def mark_notified(self, reminder_id: str) -> None:
        """Set notified=true for a reminder."""


class SupabaseReminderStore(ReminderStore):
    """Reminder store backed by Supabase (PostgREST)."""

    def __init__(self, url: str, key: str, table: str = None, timeout: float = None):
        self.url = url.rstrip("/")
        self.key = key
        self.table = table or config.REMINDER_TABLE
        self.timeout = timeout or config.SUPABASE_TIMEOUT

    @property
    def endpoint(self) -> str:
        return f"{self.url}/rest/v1/{self.table}"

    def _headers(self) -> dict:
        return {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation"
        }

    async def _select(self, params: dict, what: str) -> list[Reminder]:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    self.endpoint,
                    headers=self._headers(),
                    params=params,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return [Reminder.from_row(row) for row in response.json()]
        except httpx.HTTPError as e:
            raise StoreError(f"Failed to fetch {what}: {sanitize_for_log(str(e))}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Malformed {what} response: {e}") from e

    async def query_due(self, now: datetime) -> list[Reminder]:
        return await self._select({
            "notified": "eq.false",
            "scheduled_at": f"lte.{now.astimezone(timezone.utc).isoformat()}",
            "select": "*",
        }, "due reminders")

    async def query_by_user(self, user_id: int) -> list[Reminder]:
        return await self._select({
            "user_id": f"eq.{user_id}",
            "notified": "eq.false",
            "select": "*",
            "order": "scheduled_at.asc",
        }, f"reminders for user {user_id}")

    async def insert(self, reminder: NewReminder) -> Reminder:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.endpoint,
                    headers=self._headers(),
                    json=reminder.to_row(),
                    timeout=self.timeout
                )
                response.raise_for_status()
                rows = response.json()
        except httpx.HTTPError as e:
            raise StoreError(f"Failed to save reminder: {sanitize_for_log(str(e))}") from e
        except ValueError as e:
            raise StoreError(f"Malformed insert response: {e}") from e

        if not rows:
            raise StoreError("Supabase returned no row for inserted reminder")

        try:
            saved = Reminder.from_row(rows[0])
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Malformed insert response: {e}") from e
        logger.info(f"Saved reminder {saved.id} to Supabase")
        return saved

    async def mark_notified(self, reminder_id: str) -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.patch(
                    self.endpoint,
                    headers=self._headers(),
                    params={"id": f"eq.{reminder_id}"},
                    json={"notified": True},
                    timeout=self.timeout
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise StoreError(f"Failed to mark reminder {reminder_id} notified: {sanitize_for_log(str(e))}") from e

        logger.debug(f"Marked reminder {reminder_id} as notified")


class InMemoryReminderStore(ReminderStore):
    """Process-local store. Used when Supabase is not configured, and in tests."""

    def __init__(self):
        self._rows: dict[str, Reminder] = {}
        self._ids = itertools.count(1)

    async def query_due(self, now: datetime) -> list[Reminder]:
        return [replace(r) for r in self._rows.values() if r.is_due(now)]

    async def query_by_user(self, user_id: int) -> list[Reminder]:
        rows = [r for r in self._rows.values() if r.user_id == user_id and not r.notified]
        return [replace(r) for r in sorted(rows, key=lambda r: r.scheduled_at)]

    async def insert(self, reminder: NewReminder) -> Reminder:
        saved = Reminder(
            id=str(next(self._ids)),
            user_id=reminder.user_id,
            channel_id=reminder.channel_id,
            message=reminder.message,
            scheduled_at=reminder.scheduled_at,
            mention_user_ids=list(reminder.mention_user_ids),
        )
        self._rows[saved.id] = saved
        return replace(saved)

    async def mark_notified(self, reminder_id: str) -> None:
        reminder = self._rows.get(reminder_id)
        if reminder is None:
            raise StoreError(f"Reminder {reminder_id} does not exist")
        reminder.notified = True

    def all(self) -> list[Reminder]:
        return [replace(r) for r in self._rows.values()]


def create_store(url: str = None, key: str = None) -> ReminderStore:
    """Supabase store if credentials are set, otherwise in-memory."""
    if url and key:
        return SupabaseReminderStore(url, key)

    logger.warning("Supabase not configured, reminders will be kept in memory only")
    return InMemoryReminderStore()
