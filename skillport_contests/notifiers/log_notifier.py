"""
Logging notifier.

Writes contest events to the log; stands in for the email/notification sender.
"""

from typing_extensions import override

from ..interfaces import Notifier
from ..logging_config import get_logger
from ..models import ContestEvent

# Module-level logger
logger = get_logger("log_notifier")


class LogNotifier(Notifier):
    """Notifier that logs every event at INFO."""

    @override
    def notify(self, event: ContestEvent) -> None:
        details = ", ".join(f"{key}={value}" for key, value in event.payload.items())
        logger.info(
            f"[{event.kind}] contest={event.contest_id} actor={event.actor_id or '-'}"
            + (f" {details}" if details else "")
        )
