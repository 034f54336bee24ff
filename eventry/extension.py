"""
Target extension - proxy attributes on registered targets.

When a Registry extends its targets, each target gets attributes that
forward to the registry, e.g. ``target.on(...)`` → ``registry.listen(...)``
and ``target.events`` → the registry itself. The attribute names come
from ``RegistryOptions.extend``.

Only the public Registry interface is used here; what was installed on
which target is remembered in the shared TargetIndex so unregister() can
take it back off.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from eventry.core.events.targets import TargetIndex, TargetRecord, get_target_index

if TYPE_CHECKING:
    from eventry.core.events.registry import Registry

logger = logging.getLogger(__name__)

KNOWN_TRIGGERS = ("emit", "trigger")


def has_trigger(obj: Any) -> str | None:
    """
    Find a known trigger method on an object.

    Returns:
        The first name in KNOWN_TRIGGERS that is a callable attribute of
        ``obj``, or None
    """
    for trigger in KNOWN_TRIGGERS:
        if callable(getattr(obj, trigger, None)):
            return trigger
    return None


class TargetExtender:
    """Installs and removes a registry's proxy attributes on targets."""

    def __init__(self, registry: Registry, index: TargetIndex | None = None):
        self.registry = registry
        self.index = index if index is not None else get_target_index()

    def proxy_for(self, member: str) -> Any:
        """The value installed for a registry member name."""
        if member == "registry":
            return self.registry
        return getattr(self.registry, member)

    def extend(self, target: Any, record: TargetRecord | None = None) -> list[str]:
        """
        Install proxy attributes on ``target``.

        Existing attributes are kept unless the registry's ``overwrite``
        option is set.

        Returns:
            Names of the attributes that were installed
        """
        if record is None:
            record = self.index.get(target, create=True)
        installed = record.registries.setdefault(self.registry, [])
        overwrite = self.registry.options.overwrite

        for member, attr in self.registry.options.extend.proxy_names().items():
            if not overwrite and hasattr(target, attr):
                logger.warning(
                    f"Won't overwrite existing attribute {attr!r} on {type(target).__name__}"
                )
                continue
            try:
                setattr(target, attr, self.proxy_for(member))
            except (AttributeError, TypeError) as e:
                logger.warning(f"Cannot set {attr!r} on {type(target).__name__}: {e}")
                continue
            if attr not in installed:
                installed.append(attr)
            record.owners[attr] = self.registry

        return list(installed)

    def retract(self, target: Any, record: TargetRecord | None = None) -> list[str]:
        """
        Remove the attributes this registry still owns on ``target``.

        Returns:
            Names of the attributes that were removed
        """
        if record is None:
            record = self.index.get(target)
        if record is None:
            return []

        removed = []
        for attr in record.registries.get(self.registry, []):
            if record.owners.get(attr) is not self.registry:
                continue
            del record.owners[attr]
            try:
                delattr(target, attr)
            except AttributeError:
                logger.warning(f"Attribute {attr!r} already gone from {type(target).__name__}")
                continue
            removed.append(attr)

        return removed


__all__ = [
    "KNOWN_TRIGGERS",
    "TargetExtender",
    "has_trigger",
]
