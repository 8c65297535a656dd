"""
GreptimeDB Sink Driver

Writes log entries to a GreptimeDB table over HTTP.

API:
    driver = GreptimeDriver()
    conn = driver.connect(Instance(name='main', setting={'host': 'db', 'table': 'logs'}))
    await conn.open()            # session + optional CREATE TABLE
    await conn.write(*entries)   # one line-protocol POST per batch
    await conn.close()

Endpoints:
    POST /v1/sql?db=<database>                       (form: sql=...)
    POST /v1/influxdb/write?db=<database>&precision=ns

Design:
- Every row gets a timestamp from the connection's TimestampAllocator, so
  entries sharing a clock tick never collide on the time index
- The allocator lives from open() to close(); reopening starts a new sequence
- write() before open(), without an instance, or with no entries is a no-op
- No retries; failures surface as GreptimeWriteError

Property of Uncompromising Sensors LLC.
"""

# Imports
import asyncio
from typing import Dict, Optional

import aiohttp

# Local imports
from logsink.core.contract import SchemaError, TableSchema, buildTable, encodeFields
from logsink.core.events import Instance, LogEntry, LEVEL_NAMES, UNKNOWN_LEVEL, toUnixNanos
from logsink.core.lineProtocol import encodeBatch, encodeRow
from logsink.core.settings import GreptimeSetting
from logsink.core.timestamps import TimestampAllocator
from logsink.logging import getLogger
from .base import BaseConnection, BaseDriver


SQL_PATH = '/v1/sql'
INFLUX_WRITE_PATH = '/v1/influxdb/write'


class GreptimeError(Exception):
    """GreptimeDB connection error"""
    pass


class GreptimeWriteError(GreptimeError):
    """GreptimeDB rejected or failed a request"""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class GreptimeConnection(BaseConnection):
    """One HTTP session to a GreptimeDB database."""

    def __init__(self, instance: Optional[Instance], setting: GreptimeSetting,
                 levels: Optional[Dict[int, str]] = None):
        super().__init__(instance)
        self.log = getLogger()
        self.setting = setting
        self.levels = dict(levels if levels is not None else LEVEL_NAMES)
        self._session: Optional[aiohttp.ClientSession] = None
        self._allocator: Optional[TimestampAllocator] = None
        self._schema: Optional[TableSchema] = None
        self._openLock = asyncio.Lock()

    @property
    def isOpen(self) -> bool:
        return self._session is not None

    @property
    def allocator(self) -> Optional[TimestampAllocator]:
        return self._allocator

    async def open(self) -> None:
        # Concurrent callers share one session
        async with self._openLock:
            await self._openSession()

    async def _openSession(self) -> None:
        if self._session is not None:
            return

        try:
            schema = buildTable(self.setting.table)
        except SchemaError as e:
            raise GreptimeError(f"Cannot open GreptimeDB connection: {e}") from e

        auth = None
        if self.setting.username:
            auth = aiohttp.BasicAuth(self.setting.username, self.setting.password)
        session = aiohttp.ClientSession(auth=auth)

        if self.setting.autoCreate:
            try:
                await self._post(session, SQL_PATH, params={'db': self.setting.database},
                                 data={'sql': schema.createTableSql()})
            except BaseException:
                await session.close()
                raise

        self._session = session
        self._schema = schema
        self._allocator = TimestampAllocator()
        self.log.info("Opened GreptimeDB connection", sink=self._sinkName, url=self.setting.baseUrl,
                      **self.setting.redacted())

    async def close(self) -> None:
        session, self._session = self._session, None
        self._allocator = None
        if session is not None:
            await session.close()
            self.log.info("Closed GreptimeDB connection", sink=self._sinkName)

    async def write(self, *entries: LogEntry) -> None:
        session = self._session
        allocator = self._allocator
        if session is None or allocator is None or self.instance is None or not entries:
            return

        lines = []
        for entry in entries:
            level = self.levels.get(int(entry.level)) or UNKNOWN_LEVEL
            ts = allocator.allocate(toUnixNanos(entry.time))
            lines.append(encodeRow(self._schema, {
                'project': entry.project,
                'profile': entry.profile,
                'node': entry.node,
                'level': level,
                'level_code': int(entry.level),
                'body': entry.body,
                'fields': encodeFields(entry.fields),
            }, ts))

        await self._post(session, INFLUX_WRITE_PATH,
                         params={'db': self.setting.database, 'precision': 'ns'},
                         data=encodeBatch(lines),
                         headers={'Content-Type': 'text/plain; charset=utf-8'})
        self.log.debug("Wrote log batch", sink=self._sinkName, rows=len(lines), table=self.setting.table)

    async def _post(self, session: aiohttp.ClientSession, path: str, **kwargs) -> str:
        url = f"{self.setting.baseUrl}{path}"
        timeout = aiohttp.ClientTimeout(total=self.setting.timeout)
        try:
            async with session.post(url, timeout=timeout, **kwargs) as resp:
                body = await resp.text()
                if resp.status >= 300:
                    self.log.error("GreptimeDB request rejected", sink=self._sinkName, path=path,
                                   status=resp.status, errorMsg=body[:200])
                    raise GreptimeWriteError(f"GreptimeDB {path} returned {resp.status}: {body}",
                                             status=resp.status, body=body)
                return body
        except asyncio.TimeoutError as e:
            raise GreptimeWriteError(f"GreptimeDB {path} timed out after {self.setting.timeout}s") from e
        except aiohttp.ClientError as e:
            raise GreptimeWriteError(f"GreptimeDB {path} failed: {e}") from e

    @property
    def _sinkName(self) -> str:
        return self.instance.name if self.instance is not None else ''


class GreptimeDriver(BaseDriver):
    """Driver for GreptimeDB log tables."""

    @property
    def driverId(self) -> str:
        return 'greptime'

    def connect(self, instance: Optional[Instance]) -> GreptimeConnection:
        setting = GreptimeSetting.fromInstance(instance)
        return GreptimeConnection(instance, setting, levels=LEVEL_NAMES)
