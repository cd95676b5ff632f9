"""Error types for the reminder domain."""


class ReminderError(Exception):
    """Base class for reminder failures."""


class ValidationError(ReminderError):
    """Malformed date/time input or a schedule that is not in the future."""


class NotFoundError(ReminderError):
    """No pending registration for a user, or a delivery channel that cannot be resolved."""


class StoreError(ReminderError):
    """The reminder store failed a query, insert or update."""


class DeliveryError(ReminderError):
    """Sending a reminder to its channel failed."""
