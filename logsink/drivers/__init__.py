"""
logsink Driver Plugin System

Drivers turn a configured Instance into a connection that persists log
entries.

Drivers:
- GreptimeDriver: GreptimeDB over HTTP (line protocol)

Property of Uncompromising Sensors LLC.
"""

from .base import BaseConnection, BaseDriver
from .registry import DriverError, DriverRegistry, getDefaultRegistry, registerDriver
from .greptime import GreptimeConnection, GreptimeDriver, GreptimeError, GreptimeWriteError

# Register default drivers
registerDriver('greptime', GreptimeDriver())

__all__ = [
    'BaseConnection',
    'BaseDriver',
    'DriverError',
    'DriverRegistry',
    'getDefaultRegistry',
    'registerDriver',
    'GreptimeConnection',
    'GreptimeDriver',
    'GreptimeError',
    'GreptimeWriteError'
]
