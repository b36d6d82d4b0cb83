from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger("reconnecting_ws")

ResponseCallback = Callable[[dict[str, Any]], None]


class ResponseRegistry:
    """Correlates outgoing actions with replies via ``seq`` / ``seq_reply``."""

    def __init__(self) -> None:
        self._callbacks: dict[int, ResponseCallback] = {}
        self._next_seq = 1

    @property
    def pending_count(self) -> int:
        return len(self._callbacks)

    def register(self, callback: ResponseCallback | None = None) -> int:
        """Reserve the next sequence number, remembering *callback* for it."""
        seq = self._next_seq
        self._next_seq += 1
        if callback is not None:
            self._callbacks[seq] = callback
        return seq

    def discard(self, seq: int) -> None:
        self._callbacks.pop(seq, None)

    def handle_message(self, msg: dict[str, Any] | None) -> bool:
        """Process an incoming message. Returns True if it was a reply to a
        registered action, False otherwise."""
        if not isinstance(msg, dict):
            return False

        seq_reply = msg.get("seq_reply")
        if not isinstance(seq_reply, int):
            return False

        callback = self._callbacks.pop(seq_reply, None)
        if callback is None:
            return False

        try:
            callback(msg)
        except Exception:
            logger.exception("Response callback error for seq=%d", seq_reply)
        return True

    def reset(self) -> None:
        """Drop pending callbacks and restart numbering (on connection change)."""
        if self._callbacks:
            logger.debug(
                "Dropping %d pending response callbacks", len(self._callbacks)
            )
        self._callbacks.clear()
        self._next_seq = 1
