"""Transports that retrieve dataset content."""

from .base import Transport, run_command
from .registry import (
    available_transports,
    iter_transports,
    load_transport_plugins,
    register_transport,
)
from .dispatch import TransportDispatcher, is_local_host

__all__ = [
    "Transport",
    "TransportDispatcher",
    "available_transports",
    "is_local_host",
    "iter_transports",
    "load_transport_plugins",
    "register_transport",
    "run_command",
]
