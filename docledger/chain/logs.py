# docledger/chain/logs.py
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, Optional, Tuple

from docledger.core.types import ClassifiedError, ErrorCategory

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ActivityEvent:
    time: datetime
    message: str
    kind: Literal["info", "error"] = "info"


@dataclass(frozen=True)
class ErrorLogEntry:
    time: datetime
    location: str
    message: str
    suggestion: str
    category: ErrorCategory

    def as_error(self) -> ClassifiedError:
        return ClassifiedError(self.category, self.message, self.suggestion)


class ActivityLog:
    """Append-only, newest first, session lifetime. No dedup, no cap."""

    def __init__(self):
        self._events = deque()

    def add(self, message: str, kind: str = "info") -> ActivityEvent:
        event = ActivityEvent(utc_now(), message, kind)
        self._events.appendleft(event)
        if kind == "error":
            logger.warning(message)
        else:
            logger.info(message)
        return event

    def entries(self) -> Tuple[ActivityEvent, ...]:
        return tuple(self._events)

    @property
    def latest(self) -> Optional[ActivityEvent]:
        return self._events[0] if self._events else None

    def __len__(self):
        return len(self._events)


class ErrorLog:
    def __init__(self):
        self._entries = deque()

    def add(self, location: str, error: ClassifiedError) -> ErrorLogEntry:
        entry = ErrorLogEntry(utc_now(), location, error.message, error.suggestion, error.category)
        self._entries.appendleft(entry)
        logger.warning("[%s] %s: %s", location, error.category.value, error.message)
        return entry

    def entries(self) -> Tuple[ErrorLogEntry, ...]:
        return tuple(self._entries)

    @property
    def latest(self) -> Optional[ErrorLogEntry]:
        return self._entries[0] if self._entries else None

    def __len__(self):
        return len(self._entries)
