"""
Per event-type settings and the stateful history buffer.

A type becomes stateful when ``keep_state > 0``. Stateful types remember
their most recent Events, newest first, so listeners added later can be
brought up to date by Registry.add().
"""

from __future__ import annotations

from collections import deque
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .base import Event
    from .tokens import EventType

logger = logging.getLogger(__name__)


class TypeSettings(BaseModel):
    """Validated arguments for Registry.set()."""

    model_config = ConfigDict(extra="forbid")

    one_time: bool | None = None
    keep_state: int | None = Field(default=None, ge=0)
    stateful: bool | None = None
    options: dict[str, Any] | None = None


class TypeData:
    """
    Event type metadata.

    Attributes:
        type: The event type this data belongs to
        one_time: Listeners matched through this type are used only once
        keep_state: History capacity; 0 means not stateful
        options: Custom options composed into Event.options
    """

    def __init__(self, event_type: EventType):
        self._type = event_type
        self.one_time = False
        self.keep_state = 0
        self.options: dict[str, Any] = {}
        self._one_time_explicit = False
        self._history: deque[Event] | None = None

    @property
    def type(self) -> EventType:
        return self._type

    @property
    def stateful(self) -> bool:
        return self.keep_state > 0

    @property
    def history(self) -> tuple[Event, ...]:
        """Stored Events, newest first; empty when not stateful."""
        if self._history is None:
            return ()
        return tuple(self._history)

    @property
    def has_history(self) -> bool:
        return bool(self._history)

    def apply(self, settings: TypeSettings, default_capacity: int) -> None:
        """
        Apply validated settings, then reconcile the history buffer.

        ``keep_state`` wins over the ``stateful`` shortcut. Until ``one_time``
        is set explicitly it follows ``stateful``.
        """
        if settings.one_time is not None:
            self.one_time = settings.one_time
            self._one_time_explicit = True

        if settings.keep_state is not None:
            self.keep_state = settings.keep_state
        elif settings.stateful is True:
            self.keep_state = default_capacity
        elif settings.stateful is False:
            self.keep_state = 0

        if settings.options:
            self.options.update(settings.options)

        if not self._one_time_explicit:
            self.one_time = self.stateful

        self._reconcile()

    def record(self, event: Event) -> None:
        """Push an Event to the front of the history, evicting the oldest."""
        if self._history is None:
            return
        self._history.appendleft(event)

    def _reconcile(self) -> None:
        if self.stateful:
            if self._history is None:
                self._history = deque(maxlen=self.keep_state)
            elif self._history.maxlen != self.keep_state:
                newest = list(self._history)[: self.keep_state]
                self._history = deque(newest, maxlen=self.keep_state)
        elif self._history is not None:
            logger.debug(f"Discarding {len(self._history)} stored events for {self._type!r}")
            self._history = None

    def __repr__(self) -> str:
        return (
            f"TypeData(type={self._type!r}, one_time={self.one_time}, "
            f"keep_state={self.keep_state})"
        )
