from .base import Transport, TransportFactory
from .reconnect import ReconnectScheduler, ReconnectStrategy
from .transport import (
    WebSocketTransport,
    open_websocket_transport,
    websocket_transport_factory,
)

__all__ = [
    "Transport",
    "TransportFactory",
    "WebSocketTransport",
    "open_websocket_transport",
    "websocket_transport_factory",
    "ReconnectStrategy",
    "ReconnectScheduler",
]
