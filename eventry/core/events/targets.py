"""
Target bookkeeping kept outside the target objects.

Which registries a target belongs to, and which proxy attributes each of
them installed on it, lives in a TargetIndex keyed by object identity.
Targets therefore do not need to be hashable or carry any marker.

The index never keeps a target or a registry alive: targets are held
through weak references where the type allows it, and registries only
appear as weak keys/values. A record goes away when its target is
collected, or once no live registry refers to it.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any
import weakref

if TYPE_CHECKING:
    from .registry import Registry


class TargetRecord:
    """
    Registration metadata for one target.

    Attributes:
        target: The target object; None once it has been collected
        registries: Registry -> proxy attribute names it installed
        owners: Proxy attribute name -> Registry that currently owns it
    """

    def __init__(self, target: Any):
        try:
            self._ref: weakref.ref | None = weakref.ref(target)
            self._strong = None
        except TypeError:
            # dict, list and friends cannot be weakly referenced
            self._ref = None
            self._strong = target
        self.registries: weakref.WeakKeyDictionary[Registry, list[str]] = (
            weakref.WeakKeyDictionary()
        )
        self.owners: weakref.WeakValueDictionary[str, Registry] = weakref.WeakValueDictionary()

    @property
    def target(self) -> Any:
        if self._ref is None:
            return self._strong
        return self._ref()

    @property
    def weak(self) -> bool:
        return self._ref is not None

    def __repr__(self) -> str:
        return f"TargetRecord(target={self.target!r}, registries={len(self.registries)})"


class TargetIndex:
    """Identity-keyed table of TargetRecords."""

    def __init__(self) -> None:
        self._records: dict[int, TargetRecord] = {}
        self._stale = False

    def is_registered(self, target: Any) -> bool:
        self._sweep()
        return id(target) in self._records

    def get(self, target: Any, create: bool = False) -> TargetRecord | None:
        """
        Get the record for ``target``.

        Args:
            target: Target object
            create: Create an empty record if none exists

        Returns:
            The record, or None when missing and ``create`` is False
        """
        self._sweep()
        key = id(target)
        record = self._records.get(key)
        if record is None and create:
            record = TargetRecord(target)
            self._records[key] = record
            if record.weak:
                weakref.finalize(target, self._forget, key)
        return record

    def discard(self, target: Any) -> None:
        self._records.pop(id(target), None)

    def targets_of(self, registry: Registry) -> list[Any]:
        self._sweep()
        return [
            rec.target
            for rec in list(self._records.values())
            if registry in rec.registries and rec.target is not None
        ]

    def registry_released(self) -> None:
        """Finalizer hook of a Registry; records are swept on next access."""
        self._stale = True

    def _forget(self, key: int) -> None:
        record = self._records.get(key)
        if record is not None and record.target is None:
            del self._records[key]

    def _sweep(self) -> None:
        if not self._stale:
            return
        self._stale = False
        for key, record in list(self._records.items()):
            if not record.registries:
                del self._records[key]

    def __len__(self) -> int:
        self._sweep()
        return len(self._records)

    def __iter__(self) -> Iterator[TargetRecord]:
        self._sweep()
        return iter(list(self._records.values()))


class TargetList:
    """
    Ordered collection of targets, unique by identity.

    Used for the fixed target source of a Registry.
    """

    def __init__(self, targets: Iterable[Any] = ()):
        self._items: list[Any] = []
        self._ids: set[int] = set()
        for target in targets:
            self.add(target)

    def add(self, target: Any) -> bool:
        if id(target) in self._ids:
            return False
        self._ids.add(id(target))
        self._items.append(target)
        return True

    def discard(self, target: Any) -> bool:
        if id(target) not in self._ids:
            return False
        self._ids.discard(id(target))
        self._items = [item for item in self._items if item is not target]
        return True

    def __contains__(self, target: Any) -> bool:
        return id(target) in self._ids

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"TargetList({self._items!r})"


_global_index: TargetIndex | None = None


def get_target_index() -> TargetIndex:
    """
    Get the global TargetIndex.

    Creates it on first call; can be replaced for tests via set_target_index().
    """
    global _global_index
    if _global_index is None:
        _global_index = TargetIndex()
    return _global_index


def set_target_index(index: TargetIndex) -> None:
    """Set the global TargetIndex."""
    global _global_index
    _global_index = index


__all__ = [
    "TargetIndex",
    "TargetList",
    "TargetRecord",
    "get_target_index",
    "set_target_index",
]
