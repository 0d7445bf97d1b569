"""
In-memory diagnostic log served by ``GET /api/logs/recent``.

Entries are kept in a bounded deque; once capacity is reached each append
drops the oldest entry. Every append is mirrored to structlog so the same
events also reach stdout.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Mapping

import structlog

log = structlog.get_logger(__name__)

Level = Literal["info", "req", "error"]

DEFAULT_CAPACITY = 1000
MAX_PAGE = 200


@dataclass(frozen=True)
class LogEntry:
    timestamp: float  # epoch seconds
    level: Level
    message: str
    extra: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            **self.extra,
            "ts": int(self.timestamp * 1000),
            "level": self.level,
            "msg": self.message,
        }


@dataclass(frozen=True)
class LogPage:
    logs: list[LogEntry]
    total: int
    has_more: bool

    def to_dict(self) -> dict:
        return {
            "logs": [e.to_dict() for e in self.logs],
            "total": self.total,
            "hasMore": self.has_more,
        }


class RingLog:
    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, level: Level, message: str, /, **extra: Any) -> LogEntry:
        entry = LogEntry(
            timestamp=time.time(),
            level=level,
            message=message,
            extra=MappingProxyType(dict(extra)),
        )
        with self._lock:
            self._entries.append(entry)

        # extras are nested so keys like "event" cannot clash with structlog arguments
        emit = log.error if level == "error" else log.info
        emit(message, ring_level=level, extra=dict(extra))
        return entry

    def recent(self, limit: int = 50, offset: int = 0) -> LogPage:
        """Return one page counted back from the newest entry.

        The page holds the newest ``offset + limit`` entries minus the newest
        ``offset``, in append order. ``limit`` is clamped to [1, 200] and
        ``offset`` to >= 0.
        """
        limit = max(1, min(MAX_PAGE, limit))
        offset = max(0, offset)

        with self._lock:
            entries = list(self._entries)

        total = len(entries)
        end = max(0, total - offset)
        start = max(0, end - limit)
        page = entries[start:end]
        return LogPage(logs=page, total=total, has_more=offset + len(page) < total)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self):
        with self._lock:
            return iter(list(self._entries))
