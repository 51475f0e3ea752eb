"""User-visible, non-blocking notifications.

// [LAW:single-enforcer] All user-facing warnings/errors flow through Notifier.
// [LAW:dataflow-not-control-flow] Consumers subscribe to one EventStream; severity is data.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Literal

from snarfx import EventStream

logger = logging.getLogger(__name__)

Level = Literal["info", "warn", "error"]

HISTORY_LIMIT = 100

_LOG_LEVELS: dict[str, int] = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class Notification:
    level: Level
    message: str


class Notifier:
    """Emits Notification values and mirrors them to the log."""

    def __init__(self, history_limit: int = HISTORY_LIMIT):
        self.messages: EventStream = EventStream()
        # most recent only; older notes drop off the front
        self._history: deque[Notification] = deque(maxlen=history_limit)

    def notify(self, level: Level, message: str) -> Notification:
        note = Notification(level=level, message=message)
        logger.log(_LOG_LEVELS.get(level, logging.INFO), "notification: %s", message)
        self._history.append(note)
        self.messages.emit(note)
        return note

    def info(self, message: str) -> Notification:
        return self.notify("info", message)

    def warn(self, message: str) -> Notification:
        return self.notify("warn", message)

    def error(self, message: str) -> Notification:
        return self.notify("error", message)

    @property
    def history(self) -> tuple[Notification, ...]:
        return tuple(self._history)
