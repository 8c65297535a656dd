"""
logsink Logging Bridge

Feeds stdlib logging records into a sink connection.

Flow:
  logging.Logger -> SinkHandler.emit (any thread)
                 -> LogShipper.submit (thread-safe queue)
                 -> LogShipper.run (asyncio task, batches)
                 -> connection.write(*batch)

Usage:
    shipper = LogShipper(connection, batchSize=200, flushInterval=0.5)
    shipper.start()
    logging.getLogger().addHandler(SinkHandler(shipper, project='billing', node='web-1'))
    ...
    await shipper.stop()   # ships what is queued, then ends run()

Batches whose write fails are logged and dropped; nothing is retried.

Property of Uncompromising Sensors LLC.
"""

import asyncio
import logging
import queue
import threading
import time
from typing import Any, List, Optional

from logsink.core.events import LogEntry, levelFromLogging, toUnixNanos
from logsink.drivers.base import BaseConnection
from logsink.logging import getLogger, recordFields


_STOP = object()
_PLAIN_TYPES = (str, int, float, bool, type(None), list, dict)


class LogShipper:
    """Batches submitted entries and writes them through a connection."""

    def __init__(self, connection: BaseConnection, batchSize: int = 100, flushInterval: float = 1.0):
        if batchSize < 1:
            raise ValueError("batchSize must be >= 1")
        if flushInterval <= 0:
            raise ValueError("flushInterval must be > 0")
        self.log = getLogger()
        self.connection = connection
        self.batchSize = batchSize
        self.flushInterval = flushInterval
        self.shipped = 0
        self.dropped = 0
        self._queue: queue.Queue = queue.Queue()
        self._task: Optional[asyncio.Task] = None
        self._done: Optional[asyncio.Event] = None  # set while run() is active
        self._stopping = False
        # Orders submit() against stop() so nothing lands behind the stop marker
        self._submitLock = threading.Lock()

    def submit(self, entry: LogEntry) -> None:
        """Queue an entry (safe from any thread)."""
        with self._submitLock:
            if self._stopping:
                self.dropped += 1
                return
            self._queue.put(entry)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> asyncio.Task:
        """Run the shipper as a task on the current event loop."""
        if self._task is None or self._task.done():
            self._stopping = False
            self._task = asyncio.create_task(self.run())
        return self._task

    async def run(self) -> None:
        """Drain the queue until stop() is called, whether started by start() or by the caller."""
        done = self._done = asyncio.Event()
        try:
            running = True
            while running:
                batch, running = await asyncio.to_thread(self._collect)
                if batch:
                    await self._ship(batch)
            # Anything still queued after the stop marker
            await self.flush()
        finally:
            if self._done is done:
                self._done = None
            done.set()

    async def flush(self) -> None:
        """Ship everything currently queued, in batches."""
        while True:
            batch = self._drainNowait()
            if not batch:
                return
            await self._ship(batch)

    async def stop(self) -> None:
        """Ship pending entries and end run()."""
        with self._submitLock:
            self._stopping = True
        task, self._task = self._task, None
        done = self._done
        if done is not None:
            self._queue.put(_STOP)
            await done.wait()
        elif task is not None and not task.done():
            # start() was called but run() has not begun yet
            self._queue.put(_STOP)
            await task
        else:
            await self.flush()

    def _collect(self):
        """Block for up to flushInterval gathering one batch. Returns (batch, keepRunning)."""
        batch: List[LogEntry] = []
        deadline = time.monotonic() + self.flushInterval
        while len(batch) < self.batchSize:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                item = self._queue.get(timeout=remaining)
            except queue.Empty:
                break
            if item is _STOP:
                return batch, False
            batch.append(item)
        return batch, True

    def _drainNowait(self) -> List[LogEntry]:
        batch: List[LogEntry] = []
        while len(batch) < self.batchSize:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is not _STOP:
                batch.append(item)
        return batch

    async def _ship(self, batch: List[LogEntry]) -> None:
        try:
            await self.connection.write(*batch)
            self.shipped += len(batch)
        except Exception as e:
            self.dropped += len(batch)
            self.log.error("Dropped log batch", rows=len(batch), errorClass=type(e).__name__, errorMsg=str(e))


class SinkHandler(logging.Handler):
    """logging.Handler that converts records to LogEntry and submits them to a LogShipper."""

    def __init__(self, shipper: LogShipper, project: str = "", profile: str = "", node: str = "",
                 level: int = logging.NOTSET):
        super().__init__(level)
        self.shipper = shipper
        self.project = project
        self.profile = profile
        self.node = node

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.shipper.submit(self.toEntry(record))
        except Exception:
            self.handleError(record)

    def toEntry(self, record: logging.LogRecord) -> LogEntry:
        fields = {key: _plain(value) for key, value in recordFields(record).items()}
        fields['logger'] = record.name
        if record.exc_info:
            fields['exception'] = logging.Formatter().formatException(record.exc_info)

        body = self.format(record) if self.formatter is not None else record.getMessage()
        return LogEntry(
            body=body,
            level=levelFromLogging(record.levelno),
            time=toUnixNanos(record.created),
            fields=fields,
            project=self.project,
            profile=self.profile,
            node=self.node,
        )


def _plain(value: Any) -> Any:
    """Keep JSON-friendly values, stringify the rest."""
    if isinstance(value, _PLAIN_TYPES):
        return value
    return str(value)
