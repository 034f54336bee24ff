"""Configuration management for eventry registries."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import os
from pathlib import Path
import re
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

NON_SERIALIZABLE = {"setup_event", "setup_listener"}


class TraceConfig(BaseSettings):
    """
    Trace Controller Configuration.

    Controls the in-memory dispatch trace markers.
    """

    enabled: bool = Field(default=False, description="Collect trace marks (True=tests/debug)")
    max_marks: int = Field(
        default=10000, ge=0, description="Max marks to keep in memory (0=unlimited)"
    )

    model_config = SettingsConfigDict(
        env_prefix="EVENTRY_TRACE_",
        extra="ignore",
    )


class ExtendOptions(BaseModel):
    """
    Rules for the optional target extension adapter.

    The string fields name the proxy attributes installed on each target;
    ``None`` skips that proxy.
    """

    targets: bool | None = Field(
        default=None,
        description="Extend targets (None: True for fixed targets, False for providers)",
    )
    on_demand: bool = Field(
        default=False,
        description="Set up provider targets on every emit() call",
    )
    registry: str | None = Field(default="events", description="Registry attribute name")
    listen: str | None = Field(default="on", description="listen() proxy name")
    emit: str | None = Field(default="emit", description="emit() proxy name")
    once: str | None = Field(default=None, description="once() proxy name")
    remove: str | None = Field(default=None, description="remove() proxy name")

    def proxy_names(self) -> dict[str, str]:
        """Map registry member name -> attribute name for every enabled proxy."""
        names = {}
        for member in ("registry", "listen", "emit", "once", "remove"):
            attr = getattr(self, member)
            if isinstance(attr, str) and attr.strip():
                names[member] = attr
        return names


class RegistryOptions(BaseSettings):
    """
    Compiled options for a Registry.

    Can be loaded from:
    - Environment variables (prefix: EVENTRY_)
    - YAML file
    - Direct initialization

    Unknown keys are kept and composed into every ``Event.options``.

    Example:
        >>> options = RegistryOptions(multi_match=True, wildcard="all")
        >>> options = RegistryOptions.from_yaml("events.yaml")
    """

    model_config = SettingsConfigDict(
        env_prefix="EVENTRY_",
        extra="allow",
        validate_default=True,
        arbitrary_types_allowed=True,
    )

    delimiter: re.Pattern[str] = Field(
        default=re.compile(r"\s+"),
        description="Pattern used to split event type strings",
    )
    multi_match: bool = Field(
        default=False,
        description="Call a listener once per matching type instead of once per target",
    )
    wildcard: str = Field(
        default="*",
        min_length=1,
        description="Event type that matches every emitted type",
    )
    overwrite: bool = Field(
        default=False,
        description="Replace existing target attributes when installing proxies",
    )
    default_state_capacity: int = Field(
        default=10,
        ge=1,
        description="History size used by set(type, stateful=True)",
    )
    trace: bool = Field(
        default=False,
        description="Emit dispatch trace marks",
    )
    setup_event: Callable[..., Any] | None = Field(
        default=None,
        description="Called as setup_event(listener, event) after each Event is built",
    )
    setup_listener: Callable[..., Any] | None = Field(
        default=None,
        description="Called as setup_listener(registry, listener) after each Listener is built",
    )
    extend: ExtendOptions = Field(default_factory=ExtendOptions)

    @classmethod
    def compile(
        cls, options: RegistryOptions | Mapping[str, Any] | None = None, **overrides: Any
    ) -> RegistryOptions:
        """
        Build options from an existing instance or mapping plus overrides.

        Args:
            options: Base options (instance, mapping or None)
            **overrides: Keys that win over ``options``

        Returns:
            A new RegistryOptions instance
        """
        if options is None:
            data: dict[str, Any] = {}
        elif isinstance(options, RegistryOptions):
            data = options.as_dict(include_extend=True)
        else:
            data = dict(options)
        data.update(overrides)
        return cls(**data)

    def as_dict(self, include_extend: bool = False) -> dict[str, Any]:
        """Field values plus custom keys, without serialization."""
        data = {
            name: getattr(self, name)
            for name in type(self).model_fields
            if include_extend or name != "extend"
        }
        data.update(self.model_extra or {})
        return data

    @classmethod
    def from_yaml(cls, path: Path | str) -> RegistryOptions:
        """
        Load options from a YAML file.

        Environment variables override keys found in the file.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        result_data = {}
        for key, value in yaml_data.items():
            env_key = f"EVENTRY_{key.upper()}"
            if env_key in os.environ:
                continue
            result_data[key] = value

        return cls(**result_data)

    def to_yaml(self, path: Path | str) -> None:
        """Save the serializable options to a YAML file (callbacks are skipped)."""
        path = Path(path)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(mode="json", exclude=NON_SERIALIZABLE),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

    def __repr__(self) -> str:
        return (
            f"RegistryOptions(delimiter={self.delimiter.pattern!r}, "
            f"multi_match={self.multi_match}, wildcard={self.wildcard!r})"
        )
