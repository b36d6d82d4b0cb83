from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import pytest


class FakeTransport:
    """In-memory transport whose events are driven by the test."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.sent: list[str] = []
        self.close_calls = 0
        self.opened = False
        self.closed = False
        self.on_send: Callable[[FakeTransport, str], None] | None = None
        self._listeners: dict[str, list[Callable[..., Any]]] = {}

    def on(self, event: str, handler: Callable[..., Any]) -> Callable[[], None]:
        listeners = self._listeners.setdefault(event, [])
        listeners.append(handler)

        def unsub() -> None:
            try:
                listeners.remove(handler)
            except ValueError:
                pass

        return unsub

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    @property
    def pings(self) -> list[dict[str, Any]]:
        msgs = [json.loads(raw) for raw in self.sent]
        return [m for m in msgs if m.get("action") == "ping"]

    # -- Transport API used by the client ----------------------------------

    def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionError("Cannot send — transport is not connected")
        self.sent.append(data)
        if self.on_send is not None:
            self.on_send(self, data)

    def close(self) -> None:
        # Like a browser socket, close() reports ``close`` even when repeated.
        self.close_calls += 1
        self.closed = True
        self._emit("close", 1000, "")

    # -- Simulated peer/network side ---------------------------------------

    def open(self) -> None:
        self.opened = True
        self._emit("open")

    def drop(self, code: int = 1006, reason: str = "") -> None:
        self.closed = True
        self._emit("close", code, reason)

    def fail(self, error: Exception) -> None:
        self._emit("error", error)

    def receive(self, msg: str | dict[str, Any]) -> None:
        self._emit("message", msg if isinstance(msg, str) else json.dumps(msg))

    def _emit(self, event: str, *args: Any) -> None:
        for handler in list(self._listeners.get(event, [])):
            handler(*args)


def answer_pings(transport: FakeTransport, data: str) -> None:
    msg = json.loads(data)
    if msg.get("action") == "ping":
        transport.receive({"action": "pong", "seq_reply": msg["seq"]})


class FakeTransportFactory:
    """Records every transport the client asks for."""

    def __init__(
        self, *, auto_open: bool = False, respond_to_pings: bool = False
    ) -> None:
        self.auto_open = auto_open
        self.respond_to_pings = respond_to_pings
        self.created: list[FakeTransport] = []

    def __call__(self, url: str) -> FakeTransport:
        transport = FakeTransport(url)
        if self.respond_to_pings:
            transport.on_send = answer_pings
        self.created.append(transport)
        if self.auto_open:
            asyncio.get_running_loop().call_soon(self._open_if_live, transport)
        return transport

    @property
    def latest(self) -> FakeTransport:
        return self.created[-1]

    @property
    def opened_count(self) -> int:
        return sum(1 for t in self.created if t.opened)

    @property
    def ping_count(self) -> int:
        return sum(len(t.pings) for t in self.created)

    @staticmethod
    def _open_if_live(transport: FakeTransport) -> None:
        if not transport.closed:
            transport.open()


@pytest.fixture
def factory() -> FakeTransportFactory:
    return FakeTransportFactory()
