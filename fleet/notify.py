"""Notification sinks for lifecycle events."""

import logging
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Default sink: writes each event to the log."""

    def notify(self, event: str, payload: Dict[str, Any]) -> None:
        logger.info("event %s %s", event, payload)


class RecordingNotifier:
    """Keeps events in memory, e.g. for a web view of recent activity."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def notify(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, dict(payload)))
