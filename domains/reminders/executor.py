"""Deliver a single due reminder."""

from enum import Enum

from logger import logger
from utils import sanitize_for_log
from .errors import DeliveryError, NotFoundError, StoreError
from .messaging import Messenger
from .models import Reminder
from .store import ReminderStore


class DeliveryOutcome(Enum):
    """Result of one delivery attempt."""
    DELIVERED = "delivered"
    CHANNEL_MISSING = "channel_missing"  # left unnotified, retried next tick
    SEND_FAILED = "send_failed"          # left unnotified, retried next tick
    MARK_FAILED = "mark_failed"          # sent but still unnotified - will be sent again
    ERROR = "error"


def compose_message(reminder: Reminder) -> str:
    """Reminder text plus a mention block in list order."""
    text = f"🔔 Reminder: {reminder.message}"
    if reminder.mention_user_ids:
        mentions = " ".join(f"<@{uid}>" for uid in reminder.mention_user_ids)
        text = f"{text}\n\n{mentions}"
    return text


async def deliver_reminder(
    reminder: Reminder,
    messenger: Messenger,
    store: ReminderStore
) -> DeliveryOutcome:
    """Send one reminder and mark it notified.

    Never raises: every failure is logged and reported as an outcome so the
    caller can move on to the next reminder.

    Args:
        reminder: The due reminder
        messenger: Outbound messaging surface
        store: Reminder store used to mark the reminder notified

    Returns:
        DeliveryOutcome for this attempt
    """
    try:
        channel = await messenger.resolve_channel(reminder.channel_id)
    except NotFoundError as e:
        logger.error(f"Reminder {reminder.id}: {e}")
        return DeliveryOutcome.CHANNEL_MISSING
    except Exception as e:
        logger.error(f"Reminder {reminder.id}: unexpected error resolving channel {reminder.channel_id}: {e}")
        return DeliveryOutcome.ERROR

    try:
        await messenger.send(channel, compose_message(reminder))
    except DeliveryError as e:
        logger.error(f"Reminder {reminder.id}: {e}")
        return DeliveryOutcome.SEND_FAILED
    except Exception as e:
        logger.error(f"Reminder {reminder.id}: unexpected error sending: {e}")
        return DeliveryOutcome.ERROR

    logger.info(f"Fired reminder {reminder.id}: {sanitize_for_log(reminder.message, 50)}")

    try:
        await store.mark_notified(reminder.id)
    except StoreError as e:
        # Row stays unnotified, so the next tick sends it again
        logger.error(f"Reminder {reminder.id} was delivered but not marked notified, it may be sent twice: {e}")
        return DeliveryOutcome.MARK_FAILED

    return DeliveryOutcome.DELIVERED
