"""Reminders: one-off scheduled messages with optional mentions.

Registration is an in-memory, per-user flow; delivery is a polling job over
the reminder store (Supabase, or in-memory when not configured).
"""

from .errors import ReminderError, ValidationError, NotFoundError, StoreError, DeliveryError
from .models import Reminder, NewReminder, PendingRegistration, SessionState
from .store import ReminderStore, SupabaseReminderStore, InMemoryReminderStore, create_store
from .messaging import Messenger, DiscordMessenger
from .sessions import RegistrationSessionManager, InMemorySessionStore, SessionStore
from .executor import deliver_reminder, compose_message, DeliveryOutcome
from .scheduler import DeliveryScheduler, TickResult
from .handler import ReminderCommands, CommandReply, Step

__all__ = [
    "ReminderError",
    "ValidationError",
    "NotFoundError",
    "StoreError",
    "DeliveryError",
    "Reminder",
    "NewReminder",
    "PendingRegistration",
    "SessionState",
    "ReminderStore",
    "SupabaseReminderStore",
    "InMemoryReminderStore",
    "create_store",
    "Messenger",
    "DiscordMessenger",
    "RegistrationSessionManager",
    "InMemorySessionStore",
    "SessionStore",
    "deliver_reminder",
    "compose_message",
    "DeliveryOutcome",
    "DeliveryScheduler",
    "TickResult",
    "ReminderCommands",
    "CommandReply",
    "Step",
]
