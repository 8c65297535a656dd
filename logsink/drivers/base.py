"""
logsink Base Driver Classes

Abstract base classes for sink drivers and their connections.

Lifecycle:
    driver.connect(instance) -> connection   (no I/O, settings only)
    await connection.open()                  (network setup)
    await connection.write(*entries)         (one batch per call)
    await connection.close()                 (idempotent)

Connections are also async context managers:
    async with driver.connect(instance) as conn:
        await conn.write(entry)

Property of Uncompromising Sensors LLC.
"""

from abc import ABC, abstractmethod
from typing import Optional

from logsink.core.events import Instance, LogEntry


class BaseConnection(ABC):
    """A driver's handle to one destination."""

    def __init__(self, instance: Optional[Instance]):
        self.instance = instance

    @abstractmethod
    async def open(self) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    @abstractmethod
    async def write(self, *entries: LogEntry) -> None:
        """Persist a batch of entries in the given order."""
        pass

    @property
    @abstractmethod
    def isOpen(self) -> bool:
        pass

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


class BaseDriver(ABC):
    """Factory for connections of one backend type."""

    @property
    @abstractmethod
    def driverId(self) -> str:
        pass

    @abstractmethod
    def connect(self, instance: Optional[Instance]) -> BaseConnection:
        """Build an unopened connection for a configured instance."""
        pass
