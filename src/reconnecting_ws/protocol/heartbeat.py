from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Literal, TypeAlias

logger = logging.getLogger("reconnecting_ws")

HeartbeatStateName: TypeAlias = Literal[
    "idle", "armed", "awaiting_pong", "timed_out"
]


class HeartbeatMonitor:
    """Application-level ping/pong probe for a single connection.

    Every interval a ping ``{"action": "ping", "seq": N}`` is sent. If the
    next tick arrives before ``{"action": "pong", "seq_reply": N}`` was seen,
    ``on_timeout`` is called and the monitor stops ticking.
    """

    def __init__(
        self,
        interval_ms: int,
        send: Callable[[str], Any],
        on_timeout: Callable[[], None],
    ) -> None:
        self._interval_ms = interval_ms
        self._send = send
        self._on_timeout = on_timeout
        self._handle: asyncio.TimerHandle | None = None
        self._state: HeartbeatStateName = "idle"
        self._sequence = 0
        self._awaiting_pong = False
        self._last_sent_at: float | None = None
        self._last_round_trip_ms: float | None = None

    @property
    def state(self) -> HeartbeatStateName:
        return self._state

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def awaiting_pong(self) -> bool:
        return self._awaiting_pong

    @property
    def last_sent_at(self) -> float | None:
        return self._last_sent_at

    @property
    def last_round_trip_ms(self) -> float | None:
        return self._last_round_trip_ms

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._state != "idle":
            return
        self._state = "armed"
        self._schedule_tick()

    def stop(self) -> None:
        self._cancel_tick()
        self._state = "idle"
        self._awaiting_pong = False

    def tick(self) -> None:
        if self._state in ("idle", "timed_out"):
            return

        if self._awaiting_pong:
            self._state = "timed_out"
            self._cancel_tick()
            logger.warning(
                "Heartbeat timeout: no pong for seq=%d within %dms",
                self._sequence,
                self._interval_ms,
            )
            self._on_timeout()
            return

        self._sequence += 1
        self._awaiting_pong = True
        self._state = "awaiting_pong"
        self._last_sent_at = asyncio.get_running_loop().time()
        self._schedule_tick()
        logger.debug("Sending ping seq=%d", self._sequence)
        self._send(json.dumps({"action": "ping", "seq": self._sequence}))

    def handle_message(self, msg: dict[str, Any] | None) -> bool:
        """Process an incoming message. Returns True if it was a pong (and
        must not reach the application), False otherwise.

        Stale pongs (wrong ``seq_reply``) are also consumed, so they never
        reach ``message`` observers, but they do not count as liveness."""
        if not isinstance(msg, dict) or msg.get("action") != "pong":
            return False

        seq_reply = msg.get("seq_reply")
        if not self._awaiting_pong or seq_reply != self._sequence:
            logger.debug(
                "Ignoring stale pong seq_reply=%r (current seq=%d)",
                seq_reply,
                self._sequence,
            )
            return True

        self._awaiting_pong = False
        if self._state == "awaiting_pong":
            self._state = "armed"
        if self._last_sent_at is not None:
            now = asyncio.get_running_loop().time()
            self._last_round_trip_ms = (now - self._last_sent_at) * 1000
        logger.debug("Pong seq=%d", self._sequence)
        return True

    # -- Private ----------------------------------------------------------

    def _schedule_tick(self) -> None:
        self._cancel_tick()
        self._handle = asyncio.get_running_loop().call_later(
            self._interval_ms / 1000, self._on_interval
        )

    def _cancel_tick(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _on_interval(self) -> None:
        self._handle = None
        self.tick()
