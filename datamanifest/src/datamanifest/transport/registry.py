"""Registry of transport classes, built-in and contributed through entry points.

Transports are consulted in ascending ``priority`` order, so two transports
claiming the same scheme at the same priority would be dispatched in
registration order. :func:`register_transport` refuses such pairs, as well
as a second class taking over an already registered name, unless
``replace=True`` is passed.
"""

from __future__ import annotations

import logging
from importlib import metadata
from typing import Callable, Dict, Iterator, List, Optional, Type, Union

from datamanifest.errors import TransportConflictError
from datamanifest.transport.base import Transport

LOG = logging.getLogger(__name__)

_ENTRYPOINT_GROUP = "datamanifest.transports"
_REGISTERED_TRANSPORTS: Dict[str, Type[Transport]] = {}
_ENTRYPOINTS_LOADED = False


def find_conflict(transport_cls: Type[Transport]) -> Optional[Type[Transport]]:
    """Return a registered transport sharing a scheme and the priority of ``transport_cls``."""
    schemes = set(transport_cls.schemes)
    for other in _REGISTERED_TRANSPORTS.values():
        if other is transport_cls or other.name == transport_cls.name:
            continue
        if other.priority == transport_cls.priority and schemes & set(other.schemes):
            return other
    return None


def register_transport(
    transport_cls: Optional[Type[Transport]] = None, *, replace: bool = False
) -> Union[Type[Transport], Callable[[Type[Transport]], Type[Transport]]]:
    """Register a Transport implementation; usable as ``@register_transport`` or
    ``@register_transport(replace=True)``.

    Raises:
        TransportConflictError: another class owns the name, or handles one of
            the same schemes at the same priority, and ``replace`` is False.
    """
    if transport_cls is None:
        return lambda cls: register_transport(cls, replace=replace)  # type: ignore[return-value]

    name = getattr(transport_cls, "name", transport_cls.__name__).lower()
    transport_cls.name = name  # type: ignore[attr-defined]
    existing = _REGISTERED_TRANSPORTS.get(name)
    if existing is not None and existing is not transport_cls and not replace:
        raise TransportConflictError(
            f"Transport name '{name}' is already taken by {existing.__module__}.{existing.__qualname__}."
        )
    rival = find_conflict(transport_cls)
    if rival is not None:
        if not replace:
            shared = ", ".join(sorted(set(transport_cls.schemes) & set(rival.schemes)))
            raise TransportConflictError(
                f"Transport '{name}' and '{rival.name}' both handle {shared} at priority "
                f"{transport_cls.priority}; choose another priority."
            )
        LOG.info("Transport '%s' replaces '%s'.", name, rival.name)
        _REGISTERED_TRANSPORTS.pop(rival.name, None)
    _REGISTERED_TRANSPORTS[name] = transport_cls
    return transport_cls


def _select_entry_points(group: str):
    try:
        entry_points = metadata.entry_points()
    except Exception as exc:  # pragma: no cover - importlib edge case
        LOG.debug("Unable to enumerate transport entry points: %s", exc)
        return []
    return list(entry_points.select(group=group))


def _resolve_plugin(resolved) -> Optional[Type[Transport]]:
    if isinstance(resolved, type):
        return resolved if issubclass(resolved, Transport) else None
    if callable(resolved):
        candidate = resolved()
        if isinstance(candidate, type) and issubclass(candidate, Transport):
            return candidate
    return None


def load_transport_plugins(force: bool = False) -> None:
    """Load transport implementations exposed via entry points.

    A plugin that fails to load, is not a Transport, or conflicts with an
    already registered transport is skipped with a warning.
    """
    global _ENTRYPOINTS_LOADED
    if _ENTRYPOINTS_LOADED and not force:
        return

    _ENTRYPOINTS_LOADED = True
    for entry in _select_entry_points(_ENTRYPOINT_GROUP):
        try:
            resolved = entry.load()
        except Exception as exc:  # pragma: no cover - broken plugin
            LOG.warning("Failed to load transport entry point '%s': %s", entry.name, exc)
            continue

        transport_cls = _resolve_plugin(resolved)
        if transport_cls is None:
            LOG.warning("Entry point '%s' did not resolve to a Transport subclass.", entry.name)
            continue
        try:
            register_transport(transport_cls)
        except TransportConflictError as exc:
            LOG.warning("Skipping transport entry point '%s': %s", entry.name, exc)


def iter_transports() -> Iterator[Type[Transport]]:
    """Yield registered transport classes, lowest priority value first."""
    load_transport_plugins()
    yield from sorted(_REGISTERED_TRANSPORTS.values(), key=lambda cls: cls.priority)


def available_transports() -> List[str]:
    """Return the names of all registered transports in dispatch order."""
    return [transport_cls.name for transport_cls in iter_transports()]


from . import git as _git  # noqa: E402,F401
from . import local as _local  # noqa: E402,F401
from . import rsync as _rsync  # noqa: E402,F401
from . import url as _url  # noqa: E402,F401


__all__ = [
    "available_transports",
    "find_conflict",
    "iter_transports",
    "load_transport_plugins",
    "register_transport",
]
