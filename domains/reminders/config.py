"""Reminder domain configuration."""

import os

# Delivery poll interval (seconds). Delivery granularity is bounded by this.
POLL_INTERVAL_SECONDS = int(os.environ.get("REMINDER_POLL_INTERVAL", 60))

# Idle window between details entry and recipient selection (seconds)
REGISTRATION_TIMEOUT_SECONDS = float(os.environ.get("REMINDER_REGISTRATION_TIMEOUT", 60))

# Fixed offset of the user-facing wall clock from UTC. JST by default, no DST.
UTC_OFFSET_HOURS = int(os.environ.get("REMINDER_UTC_OFFSET_HOURS", 9))
LOCAL_TZ_LABEL = os.environ.get("REMINDER_TZ_LABEL", "JST")

# Supabase table and request timeout
REMINDER_TABLE = os.environ.get("REMINDER_TABLE", "reminders")
SUPABASE_TIMEOUT = float(os.environ.get("SUPABASE_TIMEOUT", 10))

# Discord caps a UserSelect at 25 values
MAX_MENTIONS = 25

# Interaction custom ids
START_BUTTON_ID = "reminder:start"
DETAILS_MODAL_ID = "reminder:details"
RECIPIENT_SELECT_ID = "reminder:recipients"
NO_MENTION_BUTTON_ID = "reminder:no_mention"
