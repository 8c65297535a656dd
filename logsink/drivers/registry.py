"""
logsink Driver Registry

Central name -> driver registry used to turn a configured Instance into a
connection.

Usage:
    registerDriver('greptime', GreptimeDriver())
    connection = getDefaultRegistry().connect(Instance(name='main', driver='greptime'))

Property of Uncompromising Sensors LLC.
"""

# Imports
from typing import Dict, List, Optional

# Local imports
from logsink.core.events import Instance
from logsink.logging import getLogger
from .base import BaseConnection, BaseDriver


class DriverError(Exception):
    """Driver lookup error"""
    pass


# Class
class DriverRegistry:
    """DriverRegistry() -> registry for driver name -> driver instance"""

    def __init__(self):
        self.log = getLogger()
        self._drivers: Dict[str, BaseDriver] = {}

    def register(self, name: str, driver: BaseDriver) -> None:
        if not isinstance(driver, BaseDriver):
            raise TypeError(f"Driver {driver!r} must be a BaseDriver instance")
        key = name.lower()
        if key in self._drivers:
            self.log.warning("Replacing registered driver", driver=key,
                             previous=type(self._drivers[key]).__name__)
        self._drivers[key] = driver
        self.log.debug("Registered driver", driver=key, driverId=driver.driverId)

    def get(self, name: str) -> Optional[BaseDriver]:
        return self._drivers.get(name.lower())

    def names(self) -> List[str]:
        return list(self._drivers.keys())

    def connect(self, instance: Instance) -> BaseConnection:
        driver = self.get(instance.driver)
        if driver is None:
            available = ', '.join(self.names()) or 'none'
            raise DriverError(f"No driver registered for '{instance.driver}'. Available drivers: {available}")
        return driver.connect(instance)


# Global default registry (can be replaced/injected for testing)
_defaultRegistry = DriverRegistry()


def registerDriver(name: str, driver: BaseDriver) -> None:
    _defaultRegistry.register(name, driver)


def getDefaultRegistry() -> DriverRegistry:
    return _defaultRegistry
