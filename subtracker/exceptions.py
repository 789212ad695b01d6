class ReminderError(Exception):
    """Base class for errors raised by the reminder engine."""


class DataError(ReminderError):
    """Subscription data cannot be evaluated (e.g. an unparseable start date)."""


class TransportError(ReminderError):
    """An outbound notification (email or webhook) could not be delivered."""


class FatalScanError(ReminderError):
    """The reminder scan could not enumerate its input and was aborted."""
