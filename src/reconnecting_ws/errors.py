from __future__ import annotations


class WebSocketClientError(Exception):
    """Base error for all reconnecting_ws errors."""

    def __init__(self, code: str, message: str, details: object = None) -> None:
        super().__init__(message)
        self.code = code
        self.details = details


class TransportError(WebSocketClientError):
    """The underlying transport reported a close or an error."""

    def __init__(
        self,
        message: str,
        *,
        close_code: int | None = None,
        reason: str = "",
        details: object = None,
    ) -> None:
        super().__init__("TRANSPORT", message, details)
        self.close_code = close_code
        self.reason = reason


class HeartbeatTimeout(WebSocketClientError):
    """No pong arrived for the last ping within one heartbeat interval."""

    def __init__(self, sequence: int, interval_ms: int) -> None:
        super().__init__(
            "HEARTBEAT_TIMEOUT",
            f"No pong for ping seq={sequence} within {interval_ms}ms",
        )
        self.sequence = sequence
        self.interval_ms = interval_ms
