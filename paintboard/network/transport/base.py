"""Transport abstractions for the paint socket."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseTransport(ABC):
    """Abstract binary message transport used by the connection manager."""

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def send(self, data: bytes) -> None:
        ...

    @abstractmethod
    async def receive(self) -> bytes:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
