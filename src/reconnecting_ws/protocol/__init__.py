from .heartbeat import HeartbeatMonitor
from .response_registry import ResponseRegistry

__all__ = ["HeartbeatMonitor", "ResponseRegistry"]
