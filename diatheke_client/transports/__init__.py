"""Transport registry: build a DialogTransport from settings by name."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from .websocket import WebSocketTransport

if TYPE_CHECKING:
    from ..config import Settings
    from ..transport import DialogTransport

TransportFactory = Callable[["Settings"], "DialogTransport"]


def _websocket(settings: Settings) -> DialogTransport:
    return WebSocketTransport(settings.SERVER_ADDRESS, connect_timeout=settings.CONNECT_TIMEOUT)


TRANSPORTS: dict[str, TransportFactory] = {
    "websocket": _websocket,
}


def register_transport(name: str, factory: TransportFactory) -> None:
    """Make a transport available under ``name`` for the TRANSPORT setting."""
    TRANSPORTS[name] = factory


def create_transport(settings: Settings) -> DialogTransport:
    """Build the transport named by ``settings.TRANSPORT``."""
    factory = TRANSPORTS.get(settings.TRANSPORT)
    if factory is None:
        raise ValueError(f"Unknown transport: {settings.TRANSPORT}. Available: {', '.join(sorted(TRANSPORTS))}")
    return factory(settings)
