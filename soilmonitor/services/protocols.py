"""
Service protocols (structural typing interfaces).

Protocols let consumer services declare the *minimal* surface they depend on
without importing the concrete class, making tests trivially mockable.

Usage
-----
In a consumer service::

    from __future__ import annotations
    from typing import TYPE_CHECKING
    if TYPE_CHECKING:
        from soilmonitor.services.protocols import KeyValueStore

    class HistoryStore:
        def __init__(self, store: "KeyValueStore", ...): ...

At runtime ``JsonFileStore`` and ``InMemoryStore`` already satisfy
``KeyValueStore`` via structural subtyping, and a ``paho.mqtt.client.Client``
satisfies ``MQTTTransport``; no explicit inheritance needed.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Durable key-value persistence for history and preferences."""

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key`` or ``default``."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable ``value`` under ``key``."""
        ...


@runtime_checkable
class MQTTTransport(Protocol):
    """The subset of the paho client the connection manager relies on."""

    on_connect: Optional[Callable[..., None]]
    on_disconnect: Optional[Callable[..., None]]
    on_message: Optional[Callable[..., None]]

    def username_pw_set(self, username: str, password: Optional[str] = None) -> None:
        ...

    def connect(self, host: str, port: int = 1883, keepalive: int = 60) -> Any:
        ...

    def subscribe(self, topic: str, qos: int = 0) -> Tuple[int, Optional[int]]:
        ...

    def loop_start(self) -> Any:
        ...

    def loop_stop(self) -> Any:
        ...

    def disconnect(self) -> Any:
        ...
