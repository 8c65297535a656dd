"""
logsink diagnostics logging.

API:
    from logsink.logging import getLogger

    log = getLogger()                      # Auto: 'drivers.registry'
    log.info("Registered driver", driver='greptime')

    # Optional, once at app startup
    from logsink.logging import configureLogging
    configureLogging(logDir='./logs', level='DEBUG')

Property of Uncompromising Sensors LLC.
"""

from .logger import getLogger, configureLogging, recordFields, StructuredFormatter

__all__ = [
    'getLogger',
    'configureLogging',
    'recordFields',
    'StructuredFormatter'
]
