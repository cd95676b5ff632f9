"""Poll the store for due reminders and deliver them.

Runs as an APScheduler interval job. Each tick:

1. Query unnotified reminders with scheduled_at <= now
2. Deliver each one independently (one failure never blocks the rest)
3. Mark delivered reminders notified

A reminder whose channel cannot be resolved, or whose send fails, stays
unnotified and is retried on every later tick. Delivery is at-least-once: if
marking fails after a successful send the reminder goes out again next tick.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from logger import logger
from . import config
from .errors import StoreError
from .executor import DeliveryOutcome, deliver_reminder
from .messaging import Messenger
from .store import ReminderStore
from .timeconv import to_local_display

JOB_ID = "reminder_delivery"


@dataclass
class TickResult:
    """Summary of one delivery tick."""
    due: int = 0
    delivered: int = 0
    failed: int = 0
    unmarked: int = 0  # sent, but marking notified failed
    skipped: bool = False


class DeliveryScheduler:
    """Fixed-interval delivery loop for due reminders."""

    def __init__(
        self,
        store: ReminderStore,
        messenger: Messenger,
        interval_seconds: Optional[int] = None
    ):
        self.store = store
        self.messenger = messenger
        if interval_seconds is None:
            interval_seconds = config.POLL_INTERVAL_SECONDS
        self.interval_seconds = interval_seconds
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def start(self, scheduler: AsyncIOScheduler) -> None:
        """Register the delivery job with the scheduler."""
        scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="Deliver due reminders",
            max_instances=1,  # Prevent overlapping ticks
            coalesce=True,    # Combine missed runs
            replace_existing=True
        )
        logger.info(f"Started reminder delivery (every {self.interval_seconds}s)")

    async def tick(self, now: Optional[datetime] = None) -> TickResult:
        """Run one delivery pass."""
        if self._busy:
            logger.warning("Previous reminder tick still running, skipping this one")
            return TickResult(skipped=True)

        self._busy = True
        try:
            return await self._run(now or datetime.now(timezone.utc))
        finally:
            self._busy = False

    async def _run(self, now: datetime) -> TickResult:
        logger.debug(f"Reminder check [UTC: {now.isoformat()}] [local: {to_local_display(now)}]")

        try:
            due = await self.store.query_due(now)
        except StoreError as e:
            logger.error(f"Reminder check skipped: {e}")
            return TickResult(skipped=True)

        result = TickResult(due=len(due))
        if not due:
            return result

        logger.info(f"Found {len(due)} due reminder(s)")

        for reminder in due:
            try:
                outcome = await deliver_reminder(reminder, self.messenger, self.store)
            except Exception as e:
                logger.error(f"Unexpected error delivering reminder {reminder.id}: {e}")
                outcome = DeliveryOutcome.ERROR

            if outcome is DeliveryOutcome.DELIVERED:
                result.delivered += 1
            elif outcome is DeliveryOutcome.MARK_FAILED:
                result.unmarked += 1
            else:
                result.failed += 1

        logger.info(
            f"Reminder tick done: {result.delivered} delivered, {result.failed} failed "
            f"of {result.due} due"
        )
        return result
