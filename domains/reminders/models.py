"""Reminder data types."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from dateutil.parser import parse as parse_datetime


def _as_utc(value: Any) -> datetime:
    """Parse a stored timestamp; naive values are taken as UTC."""
    dt = value if isinstance(value, datetime) else parse_datetime(value)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class NewReminder:
    """Insert payload - a reminder before the store assigns an id."""
    user_id: int
    channel_id: int
    message: str
    scheduled_at: datetime  # aware, UTC
    mention_user_ids: list[int] = field(default_factory=list)

    def to_row(self) -> dict:
        return {
            "user_id": self.user_id,
            "channel_id": self.channel_id,
            "message": self.message,
            "scheduled_at": self.scheduled_at.astimezone(timezone.utc).isoformat(),
            "mention_user_ids": list(self.mention_user_ids),
            "notified": False,
        }


@dataclass
class Reminder:
    """A persisted reminder."""
    id: str
    user_id: int
    channel_id: int
    message: str
    scheduled_at: datetime  # aware, UTC
    mention_user_ids: list[int] = field(default_factory=list)
    notified: bool = False

    @classmethod
    def from_row(cls, row: dict) -> "Reminder":
        """Build from a store row (Supabase JSON or in-memory dict)."""
        return cls(
            id=str(row["id"]),
            user_id=int(row["user_id"]),
            channel_id=int(row["channel_id"]),
            message=row["message"],
            scheduled_at=_as_utc(row["scheduled_at"]),
            mention_user_ids=[int(uid) for uid in (row.get("mention_user_ids") or [])],
            notified=bool(row.get("notified", False)),
        )

    def is_due(self, now: datetime) -> bool:
        return not self.notified and self.scheduled_at <= now


@dataclass
class PendingRegistration:
    """A reminder being composed across interaction turns. Never persisted."""
    user_id: int
    channel_id: int
    scheduled_at_local: datetime  # naive local wall clock
    scheduled_at_utc: datetime    # aware, UTC
    message: str

    def to_new_reminder(self, mention_user_ids: list[int]) -> NewReminder:
        return NewReminder(
            user_id=self.user_id,
            channel_id=self.channel_id,
            message=self.message,
            scheduled_at=self.scheduled_at_utc,
            mention_user_ids=list(mention_user_ids),
        )


class SessionState(str, Enum):
    """Registration state for one user."""
    IDLE = "idle"
    AWAITING_DETAILS = "awaiting_details"        # details form is open
    AWAITING_RECIPIENTS = "awaiting_recipients"  # pending entry exists
