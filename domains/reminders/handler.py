"""Reminder commands and interaction handling.

Translates user actions into session manager and store calls and produces the
reply text. Which Discord widget goes with a reply is signalled by
``CommandReply.step``; the widgets themselves live in ``views.py``.

Text commands:
- ``/time``: current local time
- ``!remind``: open the registration form
- ``!remind YYYY/MM/DD HH:mm message``: single-step registration
- ``!list``: the caller's pending reminders
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from logger import logger
from . import config
from .errors import NotFoundError, StoreError, ValidationError
from .models import Reminder
from .sessions import RegistrationSessionManager, TimeoutNotifier
from .store import ReminderStore
from .timeconv import local_now, to_local_display

REMIND_COMMAND = "!remind"
LIST_COMMAND = "!list"
TIME_COMMAND = "/time"

USAGE = (
    "Usage: `!remind YYYY/MM/DD HH:mm message`\n"
    "Example: `!remind 2025/11/24 15:00 Meeting starts`\n"
    "Or send `!remind` on its own to use the form."
)


class Step(Enum):
    """Widget the surface should attach to a reply."""
    DETAILS = "details"        # button that opens the details form
    RECIPIENTS = "recipients"  # user select + "no mention" button


@dataclass
class CommandReply:
    """Reply text and the next registration step, if any."""
    text: str
    step: Optional[Step] = None
    ephemeral: bool = False


def _tz() -> str:
    return config.LOCAL_TZ_LABEL


def format_mentions(user_ids: list[int]) -> str:
    if not user_ids:
        return "none"
    return " ".join(f"<@{uid}>" for uid in user_ids)


def format_reminder_list(reminders: list[Reminder]) -> str:
    """Numbered list in local time, or the empty-list message."""
    if not reminders:
        return "You have no pending reminders."

    lines = ["📋 **Your reminders:**"]
    for i, r in enumerate(reminders, start=1):
        lines.append(f"{i}. {to_local_display(r.scheduled_at)} - {r.message}")
    return "\n".join(lines)


class ReminderCommands:
    """Entry points for reminder commands and interactions."""

    def __init__(self, sessions: RegistrationSessionManager, store: ReminderStore):
        self.sessions = sessions
        self.store = store

    async def handle_message(
        self,
        content: str,
        author_id: int,
        channel_id: int,
        notify: Optional[TimeoutNotifier] = None,
        now: Optional[datetime] = None
    ) -> Optional[CommandReply]:
        """Handle a text command.

        Args:
            content: Message content
            author_id: Discord user ID of the author
            channel_id: Channel the message was posted in
            notify: Where to post the timeout notice if registration is abandoned
            now: Current UTC time (defaults to now)

        Returns:
            CommandReply if the message was a reminder command, None otherwise
        """
        content = (content or "").strip()

        if content == TIME_COMMAND:
            return self.current_time(now)

        if content == LIST_COMMAND:
            return await self.list_reminders(author_id)

        if content == REMIND_COMMAND:
            return self.start_registration(author_id)

        if content.startswith(REMIND_COMMAND + " "):
            args = content[len(REMIND_COMMAND):].strip().split(maxsplit=2)
            if len(args) < 3:
                return CommandReply(USAGE)
            date_str, time_str, message = args
            return self.submit_details(author_id, channel_id, date_str, time_str, message, notify, now)

        return None

    def current_time(self, now: Optional[datetime] = None) -> CommandReply:
        return CommandReply(f"{local_now(now):%Y/%m/%d %H:%M:%S} ({_tz()})")

    def start_registration(self, user_id: int) -> CommandReply:
        self.sessions.begin(user_id)
        return CommandReply(
            "Press the button below to register a reminder.",
            step=Step.DETAILS
        )

    def submit_details(
        self,
        user_id: int,
        channel_id: int,
        date_str: str,
        time_str: str,
        message: str,
        notify: Optional[TimeoutNotifier] = None,
        now: Optional[datetime] = None
    ) -> CommandReply:
        """Date/time/message step. On success the recipient step follows."""
        try:
            pending = self.sessions.submit_details(
                user_id, channel_id, date_str, time_str, message,
                on_timeout=notify, now=now
            )
        except ValidationError as e:
            logger.info(f"Rejected reminder details from user {user_id}: {e}")
            return CommandReply(
                f"❌ {e}\nEnter the date as `YYYY/MM/DD` and the time as `HH:mm`.",
                ephemeral=True
            )

        timeout = int(self.sessions.timeout_seconds)
        return CommandReply(
            f"📅 {pending.scheduled_at_local:%Y/%m/%d %H:%M} ({_tz()})\n"
            f"📝 {pending.message}\n\n"
            f"Who should be mentioned? Pick users below or choose **No mention**. "
            f"(Cancelled if nothing is chosen within {timeout}s.)",
            step=Step.RECIPIENTS
        )

    async def select_recipients(self, user_id: int, mention_user_ids: list[int]) -> CommandReply:
        return await self._finalize(user_id, mention_user_ids)

    async def confirm_no_mention(self, user_id: int) -> CommandReply:
        return await self._finalize(user_id, [])

    async def _finalize(self, user_id: int, mention_user_ids: list[int]) -> CommandReply:
        try:
            reminder = await self.sessions.finalize(user_id, mention_user_ids)
        except NotFoundError:
            return CommandReply(
                "❌ No reminder is being registered. It may have timed out; start again with `!remind`.",
                ephemeral=True
            )
        except StoreError as e:
            logger.error(f"Failed to register reminder for user {user_id}: {e}")
            return CommandReply("❌ Failed to register the reminder. Please try again.", ephemeral=True)

        return CommandReply(
            "✅ Reminder registered!\n"
            f"When: {to_local_display(reminder.scheduled_at)} ({_tz()})\n"
            f"Message: {reminder.message}\n"
            f"Mentions: {format_mentions(reminder.mention_user_ids)}"
        )

    async def list_reminders(self, user_id: int) -> CommandReply:
        try:
            reminders = await self.store.query_by_user(user_id)
        except StoreError as e:
            logger.error(f"Failed to list reminders for user {user_id}: {e}")
            return CommandReply("❌ Failed to fetch your reminders.")

        return CommandReply(format_reminder_list(reminders))
