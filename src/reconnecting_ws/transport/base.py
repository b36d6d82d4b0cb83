from __future__ import annotations

from typing import Any, Callable, Protocol

Unsubscribe = Callable[[], None]


class Transport(Protocol):
    """One instance of the underlying message channel.

    Events: ``open()``, ``close(code, reason)``, ``error(exc)`` and
    ``message(data)``.
    """

    def on(self, event: str, handler: Callable[..., Any]) -> Unsubscribe: ...

    def send(self, data: str) -> None: ...

    def close(self) -> None: ...


TransportFactory = Callable[[str], Transport]
