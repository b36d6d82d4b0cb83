from .client import WebSocketClient
from .config import (
    ClientOptions,
    ConnectionState,
    DisconnectInfo,
)
from .errors import HeartbeatTimeout, TransportError, WebSocketClientError
from .protocol.heartbeat import HeartbeatMonitor
from .protocol.response_registry import ResponseRegistry
from .transport.base import Transport, TransportFactory
from .transport.reconnect import ReconnectScheduler, ReconnectStrategy
from .transport.transport import (
    WebSocketTransport,
    open_websocket_transport,
    websocket_transport_factory,
)

__all__ = [
    "WebSocketClient",
    "ClientOptions",
    "ConnectionState",
    "DisconnectInfo",
    "WebSocketClientError",
    "TransportError",
    "HeartbeatTimeout",
    "HeartbeatMonitor",
    "ResponseRegistry",
    "Transport",
    "TransportFactory",
    "WebSocketTransport",
    "open_websocket_transport",
    "websocket_transport_factory",
    "ReconnectStrategy",
    "ReconnectScheduler",
]
