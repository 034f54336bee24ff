"""
Trace Controller - in-memory markers for dispatch activity.

Trace marks record what a Registry did during emit() and replay:
1. Which listeners were dispatched, for which type and target
2. How many events a pass produced
3. Which stateful histories were replayed

Marks are only collected while the controller is enabled, so registries
created with ``trace=True`` cost nothing in production.

Usage:
    >>> from eventry.core.tracing import TraceContext
    >>>
    >>> with TraceContext() as tc:
    ...     registry.emit("ready")
    ...     assert tc.has_mark("registry.emit.started")
"""

from __future__ import annotations

from collections import defaultdict, deque
from datetime import datetime
import logging
from typing import Any
from uuid import uuid4

from eventry.core.config import TraceConfig

logger = logging.getLogger(__name__)


class TraceMark:
    """
    Single trace marker.

    Attributes:
        mark_id: Unique marker identifier
        name: Marker name (e.g., "listener.dispatched")
        timestamp: When the marker was recorded
        data: Context attached to the marker
    """

    def __init__(self, name: str, data: dict[str, Any] | None = None):
        self.mark_id = str(uuid4())
        self.name = name
        self.timestamp = datetime.now()
        self.data = data or {}

    def __repr__(self) -> str:
        return f"TraceMark(name={self.name!r}, data={self.data})"


class TraceController:
    """
    Collects trace marks for the whole process.

    Singleton pattern: registries share one controller via get_instance().
    """

    _instance: TraceController | None = None

    def __init__(self, enabled: bool = False, max_marks: int = 10000):
        self.enabled = enabled
        self.max_marks = max_marks
        self._marks: deque[TraceMark] = deque(maxlen=max_marks or None)
        self._marks_by_name: dict[str, list[TraceMark]] = defaultdict(list)

        logger.debug(f"TraceController initialized: enabled={enabled}")

    @classmethod
    def get_instance(cls, enabled: bool | None = None) -> TraceController:
        """
        Get singleton instance, built from TraceConfig on first call.

        Args:
            enabled: Override enabled state
        """
        if cls._instance is None:
            config = TraceConfig()
            cls._instance = cls(
                enabled=config.enabled if enabled is None else enabled,
                max_marks=config.max_marks,
            )
        elif enabled is not None:
            cls._instance.enabled = enabled

        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton (for tests)."""
        cls._instance = None

    def mark(self, name: str, **data: Any) -> TraceMark | None:
        """
        Record a trace mark.

        Returns:
            TraceMark if enabled, None otherwise
        """
        if not self.enabled:
            return None

        if self._marks.maxlen is not None and len(self._marks) == self._marks.maxlen:
            dropped = self._marks[0]
            self._marks_by_name[dropped.name].remove(dropped)

        mark = TraceMark(name=name, data=data)
        self._marks.append(mark)
        self._marks_by_name[name].append(mark)

        logger.debug(f"TRACE[{name}] {data if data else ''}")
        return mark

    def has_mark(self, name: str) -> bool:
        return bool(self._marks_by_name.get(name))

    def get_marks(self, pattern: str | None = None) -> list[TraceMark]:
        """
        Get marks, optionally filtered.

        Args:
            pattern: Exact name, or a prefix ending in "*" ("registry.*")
        """
        if pattern is None:
            return list(self._marks)

        if pattern.endswith("*"):
            prefix = pattern[:-1]
            return [mark for mark in self._marks if mark.name.startswith(prefix)]
        return list(self._marks_by_name.get(pattern, []))

    def count_marks(self, pattern: str | None = None) -> int:
        return len(self.get_marks(pattern))

    def clear(self) -> None:
        """Clear all collected marks."""
        self._marks.clear()
        self._marks_by_name.clear()

    def get_report(self) -> dict[str, Any]:
        """Summary of collected marks."""
        return {
            "enabled": self.enabled,
            "total_marks": len(self._marks),
            "mark_counts": {
                name: len(marks) for name, marks in self._marks_by_name.items() if marks
            },
        }

    def __repr__(self) -> str:
        return f"TraceController(enabled={self.enabled}, marks={len(self._marks)})"


def get_trace_controller(enabled: bool | None = None) -> TraceController:
    """Get the global trace controller."""
    return TraceController.get_instance(enabled=enabled)


def trace_mark(name: str, **data: Any) -> TraceMark | None:
    """Record a mark on the global controller."""
    return TraceController.get_instance().mark(name, **data)


class TraceContext:
    """
    Context manager enabling trace collection for a block.

    Usage:
        >>> with TraceContext() as tc:
        ...     registry.emit("ready")
        ...     assert tc.count_marks("listener.dispatched") == 1
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.tc = TraceController.get_instance()
        self._old_enabled = self.tc.enabled

    def __enter__(self) -> TraceController:
        self.tc.enabled = self.enabled
        self.tc.clear()
        return self.tc

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.tc.enabled = self._old_enabled
        return False
