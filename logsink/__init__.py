"""
logsink - ship structured log entries into a time-series database.

Public API:
    - LogEntry, Level, Instance: log model
    - TimestampAllocator: strictly increasing per-connection nanosecond timestamps
    - GreptimeSetting: typed settings extracted from an instance setting map
    - DriverRegistry / registerDriver / getDefaultRegistry: driver lookup
    - GreptimeDriver: GreptimeDB backend (registered as 'greptime')
    - LogShipper, SinkHandler: bridge from stdlib logging

Usage:
    from logsink import Instance, LogEntry, getDefaultRegistry

    conn = getDefaultRegistry().connect(Instance(name='main', setting={'host': 'db'}))
    async with conn:
        await conn.write(LogEntry(body='started', fields={'pid': 42}))

Property of Uncompromising Sensors LLC.
"""

from .core import __version__
from .core.events import Instance, Level, LogEntry, LEVEL_NAMES, levelName, levelFromLogging, toUnixNanos
from .core.settings import GreptimeSetting, loadConfig, loadInstances
from .core.timestamps import TimestampAllocator
from .drivers import (
    BaseConnection,
    BaseDriver,
    DriverError,
    DriverRegistry,
    GreptimeConnection,
    GreptimeDriver,
    GreptimeError,
    GreptimeWriteError,
    getDefaultRegistry,
    registerDriver
)
from .handler import LogShipper, SinkHandler

__all__ = [
    '__version__',
    'Instance',
    'Level',
    'LogEntry',
    'LEVEL_NAMES',
    'levelName',
    'levelFromLogging',
    'toUnixNanos',
    'GreptimeSetting',
    'loadConfig',
    'loadInstances',
    'TimestampAllocator',
    'BaseConnection',
    'BaseDriver',
    'DriverError',
    'DriverRegistry',
    'GreptimeConnection',
    'GreptimeDriver',
    'GreptimeError',
    'GreptimeWriteError',
    'getDefaultRegistry',
    'registerDriver',
    'LogShipper',
    'SinkHandler'
]
