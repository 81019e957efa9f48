"""
Notification sink: fire-and-forget user messages emitted by the stores.
"""
import logging
from enum import Enum
from typing import Protocol

log = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class Notifier(Protocol):
    def notify(self, kind: NotificationKind, title: str, message: str) -> None:
        ...


class LoggingNotifier:
    """Writes notifications to the log. Default sink for headless sessions."""

    def notify(self, kind: NotificationKind, title: str, message: str) -> None:
        if kind == NotificationKind.ERROR:
            log.error("%s: %s", title, message)
        else:
            log.info("%s: %s", title, message)


class ToastNotifier:
    """
    Shows notifications as ttkbootstrap toasts.

    The toolkit is imported on first use so headless sessions never load Tk.
    """

    BOOTSTYLES = {
        NotificationKind.SUCCESS: "success",
        NotificationKind.ERROR: "danger",
    }

    def __init__(self, duration_ms: int = 3000):
        self.duration_ms = duration_ms

    def notify(self, kind: NotificationKind, title: str, message: str) -> None:
        from ttkbootstrap.toast import ToastNotification

        toast = ToastNotification(
            title=title,
            message=message,
            duration=self.duration_ms,
            bootstyle=self.BOOTSTYLES.get(kind, "info"),
        )
        toast.show_toast()
