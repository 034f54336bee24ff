"""Event type tokens: plain strings, or Symbols compared by identity."""

from __future__ import annotations

NAMELESS = "‽"


class Symbol:
    """
    A non-string event type.

    Two Symbols are never equal, even with the same description, so a
    Symbol type can only be emitted by code holding a reference to it.

    Example:
        >>> READY = Symbol("ready")
        >>> registry.listen(READY, on_ready)
        >>> registry.emit(READY)
    """

    __slots__ = ("description",)

    def __init__(self, description: str | None = None):
        self.description = description

    def __repr__(self) -> str:
        if self.description is None:
            return "Symbol()"
        return f"Symbol({self.description!r})"


EventType = str | Symbol


def is_event_type(value: object) -> bool:
    return isinstance(value, (str, Symbol))


def display_name(event_type: EventType) -> str:
    """The string itself, a Symbol's description, or a placeholder."""
    if isinstance(event_type, Symbol):
        return event_type.description if event_type.description is not None else NAMELESS
    return event_type
