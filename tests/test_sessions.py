"""Tests for the registration session state machine."""

import asyncio
from datetime import datetime, timezone

import pytest

from domains.reminders.errors import NotFoundError, StoreError, ValidationError
from domains.reminders.models import SessionState
from domains.reminders.sessions import (
    InMemorySessionStore,
    RegistrationSessionManager,
    TIMEOUT_NOTICE,
)
from domains.reminders.store import InMemoryReminderStore

from conftest import NOW

USER = 111
CHANNEL = 222


class Notifier:
    def __init__(self):
        self.calls: list[str] = []

    async def __call__(self, text: str):
        self.calls.append(text)


def _submit(sessions, notify=None, date_str="2999/01/01", time_str="09:00", message="Test message", user=USER):
    return sessions.submit_details(user, CHANNEL, date_str, time_str, message, on_timeout=notify, now=NOW)


@pytest.mark.asyncio
async def test_begin_does_not_create_entry(sessions):
    assert sessions.begin(USER) == SessionState.AWAITING_DETAILS
    assert sessions.state_of(USER) == SessionState.IDLE
    assert sessions.get(USER) is None


@pytest.mark.asyncio
async def test_submit_details_stores_pending(sessions):
    pending = _submit(sessions)

    assert sessions.state_of(USER) == SessionState.AWAITING_RECIPIENTS
    assert sessions.get(USER) is pending
    assert pending.channel_id == CHANNEL
    assert pending.message == "Test message"
    assert pending.scheduled_at_local == datetime(2999, 1, 1, 9, 0)
    assert pending.scheduled_at_utc == datetime(2999, 1, 1, 0, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_past_time_rejected(sessions):
    with pytest.raises(ValidationError):
        _submit(sessions, date_str="2020/01/01")
    assert sessions.state_of(USER) == SessionState.IDLE


@pytest.mark.asyncio
async def test_current_minute_rejected(sessions):
    # NOW is 09:00 local - "strictly after now" excludes it
    with pytest.raises(ValidationError):
        _submit(sessions, date_str="2025/01/01", time_str="09:00")


@pytest.mark.asyncio
async def test_next_minute_accepted(sessions):
    pending = _submit(sessions, date_str="2025/01/01", time_str="09:01")
    assert pending.scheduled_at_utc == datetime(2025, 1, 1, 0, 1, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_blank_message_rejected(sessions):
    with pytest.raises(ValidationError):
        _submit(sessions, message="   ")


@pytest.mark.asyncio
async def test_failed_submit_discards_existing_entry(sessions):
    _submit(sessions)
    with pytest.raises(ValidationError):
        _submit(sessions, time_str="nope")
    assert sessions.get(USER) is None


@pytest.mark.asyncio
async def test_finalize_inserts_and_clears(sessions, memory_store):
    _submit(sessions)
    entry = sessions.sessions.get(USER)
    timer = entry.timer

    reminder = await sessions.finalize(USER, [5, 6, 5])

    assert reminder.message == "Test message"
    assert reminder.mention_user_ids == [5, 6, 5]
    assert reminder.notified is False
    assert sessions.state_of(USER) == SessionState.IDLE
    assert len(memory_store.all()) == 1

    await asyncio.sleep(0.01)
    assert timer.cancelled()


@pytest.mark.asyncio
async def test_finalize_without_session_raises(sessions, memory_store):
    with pytest.raises(NotFoundError):
        await sessions.finalize(USER, [])
    assert memory_store.all() == []


@pytest.mark.asyncio
async def test_timeout_cancels_registration(sessions, memory_store):
    notify = Notifier()
    _submit(sessions, notify=notify)

    await asyncio.sleep(0.15)

    assert sessions.state_of(USER) == SessionState.IDLE
    assert notify.calls == [TIMEOUT_NOTICE]
    assert memory_store.all() == []


@pytest.mark.asyncio
async def test_finalize_after_timeout_not_found(sessions, memory_store):
    _submit(sessions, notify=Notifier())
    await asyncio.sleep(0.15)

    with pytest.raises(NotFoundError):
        await sessions.finalize(USER, [])
    assert memory_store.all() == []


@pytest.mark.asyncio
async def test_timer_does_not_fire_after_finalize(sessions):
    notify = Notifier()
    _submit(sessions, notify=notify)
    await sessions.finalize(USER, [])

    await asyncio.sleep(0.15)
    assert notify.calls == []


@pytest.mark.asyncio
async def test_second_registration_overwrites_first(sessions, memory_store):
    first, second = Notifier(), Notifier()
    _submit(sessions, notify=first, message="first")
    _submit(sessions, notify=second, message="second")

    assert sessions.get(USER).message == "second"

    await asyncio.sleep(0.15)
    assert first.calls == []
    assert second.calls == [TIMEOUT_NOTICE]


@pytest.mark.asyncio
async def test_users_are_independent(sessions):
    _submit(sessions, user=1, message="one")
    _submit(sessions, user=2, message="two")

    await sessions.finalize(1, [])

    assert sessions.state_of(1) == SessionState.IDLE
    assert sessions.get(2).message == "two"


@pytest.mark.asyncio
async def test_timeout_notifier_failure_is_contained(sessions):
    async def broken(text):
        raise RuntimeError("channel gone")

    _submit(sessions, notify=broken)
    await asyncio.sleep(0.15)
    assert sessions.state_of(USER) == SessionState.IDLE


class SlowStore(InMemoryReminderStore):
    async def insert(self, reminder):
        await asyncio.sleep(0.01)
        return await super().insert(reminder)


@pytest.mark.asyncio
async def test_concurrent_finalize_inserts_once():
    store = SlowStore()
    manager = RegistrationSessionManager(store, timeout_seconds=5)
    _submit(manager)

    results = await asyncio.gather(
        manager.finalize(USER, []),
        manager.finalize(USER, []),
        return_exceptions=True
    )

    assert sum(isinstance(r, NotFoundError) for r in results) == 1
    assert len(store.all()) == 1
    manager.close()


class FailingStore(InMemoryReminderStore):
    async def insert(self, reminder):
        raise StoreError("insert failed")


@pytest.mark.asyncio
async def test_insert_failure_drops_registration():
    manager = RegistrationSessionManager(FailingStore(), timeout_seconds=5)
    _submit(manager)

    with pytest.raises(StoreError):
        await manager.finalize(USER, [])
    assert manager.state_of(USER) == SessionState.IDLE


@pytest.mark.asyncio
async def test_close_cancels_everything(memory_store):
    store = InMemorySessionStore()
    manager = RegistrationSessionManager(memory_store, sessions=store, timeout_seconds=5)
    _submit(manager, user=1)
    _submit(manager, user=2)

    manager.close()

    assert len(store) == 0


@pytest.mark.asyncio
async def test_zero_timeout_is_kept(memory_store):
    notify = Notifier()
    manager = RegistrationSessionManager(memory_store, timeout_seconds=0)
    assert manager.timeout_seconds == 0

    _submit(manager, notify=notify)
    await asyncio.sleep(0.01)

    assert notify.calls == [TIMEOUT_NOTICE]
    assert manager.state_of(USER) == SessionState.IDLE


@pytest.mark.asyncio
async def test_expiry_task_held_while_notifying(sessions):
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow_notify(text):
        started.set()
        await release.wait()

    _submit(sessions, notify=slow_notify)
    timer = sessions.sessions.get(USER).timer
    await asyncio.wait_for(started.wait(), timeout=1)

    assert sessions.get(USER) is None
    assert timer in sessions._timers
    assert not timer.done()

    release.set()
    await asyncio.wait_for(timer, timeout=1)
    await asyncio.sleep(0)
    assert timer not in sessions._timers


@pytest.mark.asyncio
async def test_close_cancels_timer_still_notifying(sessions):
    started = asyncio.Event()

    async def hanging_notify(text):
        started.set()
        await asyncio.Event().wait()

    _submit(sessions, notify=hanging_notify)
    timer = sessions.sessions.get(USER).timer
    await asyncio.wait_for(started.wait(), timeout=1)

    sessions.close()
    with pytest.raises(asyncio.CancelledError):
        await timer
