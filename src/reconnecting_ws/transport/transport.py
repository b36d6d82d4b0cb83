from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from websockets.asyncio.client import ClientConnection, connect as ws_connect
from websockets.exceptions import ConnectionClosed

from ..config import DEFAULT_CONNECT_TIMEOUT_MS, TransportState
from .base import TransportFactory, Unsubscribe

logger = logging.getLogger("reconnecting_ws")


class WebSocketTransport:
    """Non-blocking WebSocket wrapper that reports its life through events."""

    def __init__(
        self,
        url: str,
        *,
        connect_timeout_ms: int = DEFAULT_CONNECT_TIMEOUT_MS,
    ) -> None:
        self._url = url
        self._connect_timeout_ms = connect_timeout_ms
        self._ws: ClientConnection | None = None
        self._state: TransportState = "idle"
        self._listeners: dict[str, list[Callable[..., Any]]] = {}
        self._run_task: asyncio.Task[None] | None = None
        self._close_task: asyncio.Task[None] | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == "connected"

    # -- Lifecycle --------------------------------------------------------

    def open(self) -> None:
        """Start connecting in the background. Returns immediately."""
        if self._state != "idle":
            return

        self._state = "connecting"
        self._run_task = asyncio.get_running_loop().create_task(self._run())

    def close(self, code: int = 1000, reason: str = "Client disconnect") -> None:
        if self._state in ("disconnected", "idle"):
            self._state = "disconnected"
            return

        was_connecting = self._state == "connecting"
        self._state = "disconnected"

        if was_connecting or self._ws is None:
            if self._run_task is not None:
                self._run_task.cancel()
            return

        # The receive loop ends once the close handshake finishes and then
        # emits ``close``.
        self._close_task = asyncio.get_running_loop().create_task(
            self._close_ws(self._ws, code, reason)
        )

    # -- Communication ----------------------------------------------------

    def send(self, data: str) -> None:
        if self._ws is None or self._state != "connected":
            raise ConnectionError("Cannot send — transport is not connected")
        # websockets send is a coroutine, fire-and-forget via task
        asyncio.get_running_loop().create_task(self._ws.send(data))

    # -- Events -----------------------------------------------------------

    def on(self, event: str, handler: Callable[..., Any]) -> Unsubscribe:
        listeners = self._listeners.setdefault(event, [])
        listeners.append(handler)

        def unsub() -> None:
            try:
                listeners.remove(handler)
            except ValueError:
                pass

        return unsub

    # -- Private ----------------------------------------------------------

    def _emit(self, event: str, *args: Any) -> None:
        for handler in list(self._listeners.get(event, [])):
            try:
                handler(*args)
            except Exception:
                logger.exception("Event handler error for %s", event)

    async def _run(self) -> None:
        try:
            ws = await asyncio.wait_for(
                ws_connect(self._url, ping_interval=None),
                timeout=self._connect_timeout_ms / 1000,
            )
        except asyncio.CancelledError:
            return
        except asyncio.TimeoutError:
            self._fail(
                ConnectionError(
                    f"Connect timeout after {self._connect_timeout_ms}ms"
                )
            )
            return
        except Exception as e:
            self._fail(e)
            return

        if self._state != "connecting":
            # close() raced with the handshake
            await ws.close()
            return

        self._ws = ws
        self._state = "connected"
        self._emit("open")
        await self._receive_loop(ws)

    async def _receive_loop(self, ws: ClientConnection) -> None:
        try:
            async for raw in ws:
                data = raw if isinstance(raw, str) else raw.decode("utf-8")
                self._emit("message", data)
        except ConnectionClosed:
            pass
        except asyncio.CancelledError:
            return
        except Exception as e:
            self._emit("error", e)
            await ws.close(1011, "Receive error")
        finally:
            self._state = "disconnected"
            self._ws = None

        self._emit("close", ws.close_code or 1006, ws.close_reason or "")

    async def _close_ws(
        self, ws: ClientConnection, code: int, reason: str
    ) -> None:
        try:
            await ws.close(code, reason)
        except Exception:
            logger.debug("Error closing WebSocket", exc_info=True)

    def _fail(self, error: Exception) -> None:
        self._state = "disconnected"
        self._emit("error", error)
        self._emit("close", 1006, str(error))


def websocket_transport_factory(
    *, connect_timeout_ms: int = DEFAULT_CONNECT_TIMEOUT_MS
) -> TransportFactory:
    """Return a factory that opens a :class:`WebSocketTransport` per URL."""

    def factory(url: str) -> WebSocketTransport:
        transport = WebSocketTransport(url, connect_timeout_ms=connect_timeout_ms)
        transport.open()
        return transport

    return factory


open_websocket_transport = websocket_transport_factory()
