from __future__ import annotations

import json
import logging
from typing import Any, Callable

from .config import ClientOptions, ConnectionState, DisconnectInfo
from .errors import HeartbeatTimeout, TransportError
from .protocol.heartbeat import HeartbeatMonitor
from .protocol.response_registry import ResponseCallback, ResponseRegistry
from .transport.base import Transport, TransportFactory
from .transport.reconnect import ReconnectScheduler, ReconnectStrategy
from .transport.transport import open_websocket_transport

logger = logging.getLogger("reconnecting_ws")

Unsubscribe = Callable[[], None]


class WebSocketClient:
    """Keeps one transport alive: heartbeat, backoff and reconnection.

    All methods return immediately. Events are delivered to handlers
    registered with :meth:`on`:

    - ``connected()`` whenever a transport opens
    - ``reconnected()`` when that open follows one or more failures
    - ``disconnected(info: DisconnectInfo)`` on every unintentional drop
    - ``reconnecting(attempt: int, delay_ms: float)`` once a retry is armed
    - ``message(data: str)`` for everything that is not a pong or a reply
    - ``error(error: Exception)`` for transport errors and heartbeat timeouts
    """

    def __init__(
        self,
        transport_factory: TransportFactory | None = None,
        options: ClientOptions | None = None,
    ) -> None:
        self._options = options or ClientOptions()
        self._transport_factory = transport_factory or open_websocket_transport

        self._scheduler = ReconnectScheduler(ReconnectStrategy(self._options))
        self._responses = ResponseRegistry()
        self._heartbeat: HeartbeatMonitor | None = None

        self._state: ConnectionState = "idle"
        self._url: str | None = None
        self._transport: Transport | None = None
        self._transport_unsubs: list[Unsubscribe] = []
        self._instance_id = 0
        self._closed_intentionally = False
        self._listeners: dict[str, list[Callable[..., Any]]] = {}

    # ── State ─────────────────────────────────────────────────────

    @property
    def url(self) -> str | None:
        return self._url

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == "open"

    @property
    def fail_count(self) -> int:
        return self._scheduler.failures

    @property
    def retry_pending(self) -> bool:
        return self._scheduler.pending

    @property
    def heartbeat(self) -> HeartbeatMonitor | None:
        return self._heartbeat

    # ── Lifecycle ─────────────────────────────────────────────────

    def initialize(self, url: str) -> None:
        """Open a fresh transport to *url*.

        Any current transport is replaced, even if it is open, and a
        scheduled automatic retry is superseded.
        """
        self._closed_intentionally = False
        self._scheduler.cancel()
        self._connect(url)

    def close(self) -> None:
        """Close the connection and stop reconnecting. Safe to call repeatedly."""
        self._closed_intentionally = True
        self._scheduler.cancel()
        self._scheduler.reset()
        self._responses.reset()
        transport = self._retire_transport()
        self._state = "closed"

        if transport is not None:
            logger.info("Closing connection to %s", self._url)
            transport.close()

    # ── Sending ───────────────────────────────────────────────────

    def send_message(
        self,
        action: str,
        data: dict[str, Any] | None = None,
        callback: ResponseCallback | None = None,
    ) -> bool:
        """Send ``{"action", "seq", "data"}``. *callback* receives the reply
        whose ``seq_reply`` matches. Returns False if nothing was sent."""
        if self._state != "open":
            logger.warning(
                "Cannot send %s — client is %s", action, self._state
            )
            return False

        seq = self._responses.register(callback)
        msg = {"action": action, "seq": seq, "data": data or {}}
        if not self._send(self._instance_id, json.dumps(msg)):
            self._responses.discard(seq)
            return False
        return True

    # ── Events ────────────────────────────────────────────────────

    def on(self, event: str, handler: Callable[..., Any]) -> Unsubscribe:
        """Register an event handler. Returns a function to unsubscribe."""
        listeners = self._listeners.setdefault(event, [])
        listeners.append(handler)

        def unsub() -> None:
            try:
                listeners.remove(handler)
            except ValueError:
                pass

        return unsub

    # ── Private ───────────────────────────────────────────────────

    def _emit_event(self, event: str, *args: Any) -> None:
        for handler in list(self._listeners.get(event, [])):
            try:
                handler(*args)
            except Exception:
                logger.exception("Event handler error for %s", event)

    def _connect(self, url: str) -> None:
        superseded = self._retire_transport()
        if superseded is not None:
            logger.debug("Replacing transport #%d", self._instance_id)
            superseded.close()

        self._url = url
        self._instance_id += 1
        instance_id = self._instance_id

        try:
            transport = self._transport_factory(url)
        except Exception:
            self._state = "idle"
            raise

        self._transport = transport
        self._state = "connecting"
        self._transport_unsubs = [
            transport.on("open", lambda: self._on_open(instance_id)),
            transport.on(
                "close",
                lambda code=None, reason="": self._on_close(
                    instance_id, code, reason
                ),
            ),
            transport.on(
                "error", lambda error=None: self._on_error(instance_id, error)
            ),
            transport.on(
                "message", lambda data: self._on_message(instance_id, data)
            ),
        ]
        logger.info("Connecting to %s (transport #%d)", url, instance_id)

    def _retire_transport(self) -> Transport | None:
        """Detach the current transport so none of its events count any more."""
        transport = self._transport
        self._transport = None
        for unsub in self._transport_unsubs:
            unsub()
        self._transport_unsubs = []
        self._stop_heartbeat()
        return transport

    def _stop_heartbeat(self) -> None:
        if self._heartbeat is not None:
            self._heartbeat.stop()
            self._heartbeat = None

    def _is_current(self, instance_id: int) -> bool:
        if self._transport is None or instance_id != self._instance_id:
            logger.debug("Ignoring event from stale transport #%d", instance_id)
            return False
        return True

    def _send(self, instance_id: int, data: str) -> bool:
        if not self._is_current(instance_id):
            return False
        assert self._transport is not None
        try:
            self._transport.send(data)
        except ConnectionError as e:
            logger.warning("Send failed: %s", e)
            return False
        return True

    # ── Transport callbacks ───────────────────────────────────────

    def _on_open(self, instance_id: int) -> None:
        if not self._is_current(instance_id):
            return

        reconnected = self._scheduler.failures > 0
        self._state = "open"
        self._scheduler.reset()
        self._responses.reset()

        self._stop_heartbeat()
        if self._options.ping_enabled:
            self._heartbeat = HeartbeatMonitor(
                self._options.ping_interval_ms,
                send=lambda data: self._send(instance_id, data),
                on_timeout=lambda: self._on_heartbeat_timeout(instance_id),
            )
            self._heartbeat.start()

        logger.info("Connected to %s", self._url)
        self._emit_event("connected")
        if reconnected:
            self._emit_event("reconnected")

    def _on_close(self, instance_id: int, code: int | None, reason: str) -> None:
        if self._closed_intentionally or not self._is_current(instance_id):
            return
        error = TransportError(
            f"Connection closed (code={code})", close_code=code, reason=reason
        )
        self._handle_failure(instance_id, error)

    def _on_error(self, instance_id: int, error: Exception | None) -> None:
        if self._closed_intentionally or not self._is_current(instance_id):
            return
        wrapped = TransportError(f"Transport error: {error}", details=error)
        self._emit_event("error", wrapped)
        self._handle_failure(instance_id, wrapped)

    def _on_message(self, instance_id: int, data: str) -> None:
        if not self._is_current(instance_id):
            return

        msg = _decode(data)
        if self._heartbeat is not None and self._heartbeat.handle_message(msg):
            return
        if self._responses.handle_message(msg):
            return
        self._emit_event("message", data)

    def _on_heartbeat_timeout(self, instance_id: int) -> None:
        if not self._is_current(instance_id):
            return
        assert self._heartbeat is not None
        error = HeartbeatTimeout(
            self._heartbeat.sequence, self._options.ping_interval_ms
        )
        self._emit_event("error", error)
        self._handle_failure(instance_id, error, force_close=True)

    # ── Reconnect ─────────────────────────────────────────────────

    def _handle_failure(
        self, instance_id: int, error: Exception, *, force_close: bool = False
    ) -> None:
        # A handler of an earlier event may have closed or replaced us.
        if self._closed_intentionally or not self._is_current(instance_id):
            return

        transport = self._retire_transport()
        self._responses.reset()
        if force_close and transport is not None:
            transport.close()

        self._fail_and_retry(error)

    def _fail_and_retry(self, error: Exception) -> None:
        fail_count = self._scheduler.record_failure()
        self._state = "connecting"
        if fail_count == 1:
            logger.warning("Connection to %s lost: %s", self._url, error)
        else:
            logger.info("Connection attempt %d failed: %s", fail_count, error)

        assert self._url is not None
        delay = self._schedule_retry(self._url)
        self._emit_event("disconnected", DisconnectInfo(fail_count, error))
        # Skipped if a disconnected handler already closed or re-initialized.
        if self._scheduler.pending:
            self._emit_event("reconnecting", fail_count, delay)

    def _schedule_retry(self, url: str) -> float:
        delay = self._scheduler.schedule(lambda: self._retry(url))
        logger.info(
            "Reconnecting to %s in %.0fms (attempt %d)",
            url,
            delay,
            self._scheduler.failures,
        )
        return delay

    def _retry(self, url: str) -> None:
        if self._closed_intentionally:
            return
        try:
            self._connect(url)
        except Exception as e:
            logger.warning("Creating transport for %s failed: %s", url, e)
            self._fail_and_retry(
                TransportError(f"Transport factory failed: {e}", details=e)
            )


def _decode(data: str) -> dict[str, Any] | None:
    try:
        msg = json.loads(data)
    except (json.JSONDecodeError, TypeError):
        return None
    return msg if isinstance(msg, dict) else None
