"""Push notifications for newly available slots and products."""

from .formatting import MAX_MESSAGE_LENGTH, LineMessageFormatter
from .line import LineNotifier
from .types import MessageResult, NotificationError, Notifier

__all__ = [
    "NotificationError",
    "MessageResult",
    "Notifier",
    "LineNotifier",
    "LineMessageFormatter",
    "MAX_MESSAGE_LENGTH",
]
