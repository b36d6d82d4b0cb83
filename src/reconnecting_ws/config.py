from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias

ConnectionState: TypeAlias = Literal["idle", "connecting", "open", "closed"]
TransportState: TypeAlias = Literal[
    "idle", "connecting", "connected", "disconnected"
]

DEFAULT_MIN_RETRY_TIME_MS = 3_000
DEFAULT_MAX_RETRY_TIME_MS = 300_000
DEFAULT_RECONNECT_JITTER_RANGE_MS = 2_000
DEFAULT_MAX_FAILS_BEFORE_BACKOFF = 7
DEFAULT_PING_INTERVAL_MS = 30_000
DEFAULT_CONNECT_TIMEOUT_MS = 5_000


@dataclass(frozen=True)
class ClientOptions:
    min_retry_time_ms: int = DEFAULT_MIN_RETRY_TIME_MS
    max_retry_time_ms: int = DEFAULT_MAX_RETRY_TIME_MS
    reconnect_jitter_range_ms: int = DEFAULT_RECONNECT_JITTER_RANGE_MS
    max_fails_before_backoff: int = DEFAULT_MAX_FAILS_BEFORE_BACKOFF
    ping_enabled: bool = False
    ping_interval_ms: int = DEFAULT_PING_INTERVAL_MS

    def __post_init__(self) -> None:
        if self.min_retry_time_ms < 0:
            raise ValueError("min_retry_time_ms must be >= 0")
        if self.max_retry_time_ms < self.min_retry_time_ms:
            raise ValueError("max_retry_time_ms must be >= min_retry_time_ms")
        if self.reconnect_jitter_range_ms < 0:
            raise ValueError("reconnect_jitter_range_ms must be >= 0")
        if self.max_fails_before_backoff < 0:
            raise ValueError("max_fails_before_backoff must be >= 0")
        if self.ping_interval_ms <= 0:
            raise ValueError("ping_interval_ms must be > 0")


@dataclass(frozen=True)
class DisconnectInfo:
    """Passed to ``disconnected`` observers for every unintentional drop."""

    fail_count: int
    error: Exception | None = None

    @property
    def is_first_failure(self) -> bool:
        return self.fail_count == 1
