"""Per-user registration sessions.

A registration moves through:

- IDLE: no pending entry
- AWAITING_DETAILS: the user has opened the details form (not tracked here)
- AWAITING_RECIPIENTS: date/time/message accepted, pending entry stored,
  idle timer running
- back to IDLE on finalize (reminder inserted) or timeout (nothing inserted)

Each pending entry carries its own timer task. Finalize removes the entry and
cancels the timer; a timer that fires anyway only acts if its own entry is
still the current one.

Starting a second registration while one is pending replaces the first and
restarts the timer.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from logger import logger
from utils import sanitize_for_log
from . import config
from .errors import NotFoundError, ValidationError
from .models import PendingRegistration, Reminder, SessionState
from .store import ReminderStore
from .timeconv import local_now, parse_local

TIMEOUT_NOTICE = "⏰ Reminder registration timed out and was cancelled. Start again with `!remind`."

TimeoutNotifier = Callable[[str], Awaitable[Any]]


@dataclass
class SessionEntry:
    """A pending registration and the timer that will expire it."""
    registration: PendingRegistration
    timer: Optional[asyncio.Task] = None

    def cancel_timer(self) -> None:
        if self.timer is not None and not self.timer.done():
            self.timer.cancel()
        self.timer = None


class SessionStore(ABC):
    """Pending registrations keyed by user id."""

    @abstractmethod
    def get(self, user_id: int) -> Optional[SessionEntry]:
        pass

    @abstractmethod
    def put(self, user_id: int, entry: SessionEntry) -> None:
        pass

    @abstractmethod
    def pop(self, user_id: int) -> Optional[SessionEntry]:
        pass

    @abstractmethod
    def user_ids(self) -> list[int]:
        pass


class InMemorySessionStore(SessionStore):
    """Process-local session store. Lost on restart."""

    def __init__(self):
        self._entries: dict[int, SessionEntry] = {}

    def get(self, user_id: int) -> Optional[SessionEntry]:
        return self._entries.get(user_id)

    def put(self, user_id: int, entry: SessionEntry) -> None:
        self._entries[user_id] = entry

    def pop(self, user_id: int) -> Optional[SessionEntry]:
        return self._entries.pop(user_id, None)

    def user_ids(self) -> list[int]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class RegistrationSessionManager:
    """Collects (time, message, recipients) across interaction turns and persists the result."""

    def __init__(
        self,
        store: ReminderStore,
        sessions: Optional[SessionStore] = None,
        timeout_seconds: Optional[float] = None
    ):
        self.store = store
        self.sessions = sessions if sessions is not None else InMemorySessionStore()
        if timeout_seconds is None:
            timeout_seconds = config.REGISTRATION_TIMEOUT_SECONDS
        self.timeout_seconds = timeout_seconds
        # Strong references to expiry tasks, including ones still notifying after their entry was popped
        self._timers: set[asyncio.Task] = set()

    def state_of(self, user_id: int) -> SessionState:
        if self.sessions.get(user_id) is not None:
            return SessionState.AWAITING_RECIPIENTS
        return SessionState.IDLE

    def get(self, user_id: int) -> Optional[PendingRegistration]:
        entry = self.sessions.get(user_id)
        return entry.registration if entry else None

    def begin(self, user_id: int) -> SessionState:
        """Start a registration. The surface presents the details form.

        Nothing is stored here: AWAITING_DETAILS lives only in the open form on
        the client, so state_of() never reports it. An entry exists once
        submit_details() succeeds.
        """
        logger.debug(f"User {user_id} started reminder registration")
        return SessionState.AWAITING_DETAILS

    def submit_details(
        self,
        user_id: int,
        channel_id: int,
        date_str: str,
        time_str: str,
        message: str,
        on_timeout: Optional[TimeoutNotifier] = None,
        now: Optional[datetime] = None
    ) -> PendingRegistration:
        """Accept date, time and message and wait for recipients.

        Must be called from a running event loop (the idle timer is a task).

        Args:
            user_id: Registering user
            channel_id: Channel the reminder will be delivered to
            date_str: Local date, "YYYY/MM/DD"
            time_str: Local time, "HH:mm"
            message: Reminder text
            on_timeout: Awaited with a cancellation notice if the user never finalizes
            now: Current UTC time (defaults to now)

        Returns:
            The stored PendingRegistration

        Raises:
            ValidationError: Malformed input, empty message or a time not in the future
        """
        try:
            registration = self._validate(user_id, channel_id, date_str, time_str, message, now)
        except ValidationError:
            self.cancel(user_id)
            raise

        previous = self.sessions.pop(user_id)
        if previous is not None:
            previous.cancel_timer()
            logger.info(f"Replacing pending reminder registration for user {user_id}")

        entry = SessionEntry(registration=registration)
        self.sessions.put(user_id, entry)
        entry.timer = asyncio.create_task(self._expire_after(user_id, entry, on_timeout))
        self._timers.add(entry.timer)
        entry.timer.add_done_callback(self._timers.discard)

        logger.info(
            f"Pending reminder for user {user_id} at {registration.scheduled_at_local:%Y/%m/%d %H:%M}: "
            f"{sanitize_for_log(registration.message, 50)}"
        )
        return registration

    def _validate(
        self,
        user_id: int,
        channel_id: int,
        date_str: str,
        time_str: str,
        message: str,
        now: Optional[datetime]
    ) -> PendingRegistration:
        message = (message or "").strip()
        if not message:
            raise ValidationError("Reminder message must not be empty.")

        local, utc = parse_local(date_str or "", time_str or "")
        if local <= local_now(now):
            raise ValidationError("The reminder time must be in the future.")

        return PendingRegistration(
            user_id=user_id,
            channel_id=channel_id,
            scheduled_at_local=local,
            scheduled_at_utc=utc,
            message=message,
        )

    async def finalize(self, user_id: int, mention_user_ids: Optional[list[int]] = None) -> Reminder:
        """Persist the pending registration with the chosen mentions.

        An empty list (or None) is the "no mention" confirmation. The pending
        entry is removed before the insert is awaited, so a second finalize
        during the insert sees no session. A failed insert is not restored.

        Raises:
            NotFoundError: No pending registration (timed out or already finalized)
            StoreError: Insert failed
        """
        entry = self.sessions.pop(user_id)
        if entry is None:
            raise NotFoundError(f"No pending reminder registration for user {user_id}")

        entry.cancel_timer()
        reminder = await self.store.insert(entry.registration.to_new_reminder(list(mention_user_ids or [])))

        logger.info(
            f"Registered reminder {reminder.id} for user {user_id} "
            f"({len(reminder.mention_user_ids)} mention(s))"
        )
        return reminder

    def cancel(self, user_id: int) -> bool:
        """Drop a pending registration without notifying the user."""
        entry = self.sessions.pop(user_id)
        if entry is None:
            return False
        entry.cancel_timer()
        return True

    def close(self) -> None:
        """Cancel every pending registration (shutdown)."""
        for user_id in self.sessions.user_ids():
            self.cancel(user_id)
        for task in list(self._timers):
            task.cancel()

    async def _expire_after(
        self,
        user_id: int,
        entry: SessionEntry,
        on_timeout: Optional[TimeoutNotifier]
    ) -> None:
        await asyncio.sleep(self.timeout_seconds)

        if self.sessions.get(user_id) is not entry:
            return

        self.sessions.pop(user_id)
        logger.info(f"Reminder registration for user {user_id} timed out")

        if on_timeout is None:
            return
        try:
            await on_timeout(TIMEOUT_NOTICE)
        except Exception as e:
            logger.warning(f"Failed to send registration timeout notice to user {user_id}: {e}")
