"""
Hierarchical diagnostics logger for logsink internals.

Features:
- Logger name auto-detected from the call stack (computed once, cached)
- Structured keyword fields: log.info("Wrote batch", rows=12, table='logs')
- Console output by default, rotating file output when a logDir is configured
- Loggers never propagate, so a SinkHandler on the root logger cannot
  feed the sink's own diagnostics back into the sink

Usage:
    from logsink.logging import getLogger

    class GreptimeConnection:
        def __init__(self):
            self.log = getLogger()  # 'drivers.greptime.GreptimeConnection'

        async def write(self, *entries):
            self.log.debug("Writing batch", rows=len(entries))

Property of Uncompromising Sensors LLC.
"""

# Imports
import inspect, logging, logging.handlers, socket
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone as tz


# Global state
_hostname = socket.gethostname()
_configured = False
_fileHandlers = {}  # Singleton cache: logPath -> handler
_config = {
    'logDir': None,                 # None = console only
    'maxBytes': 10_000_000,         # 10 MB per log file before rotation
    'backupCount': 5,
    'console': True,
    'level': logging.INFO,
    'utc': False
}

# LogRecord attributes that are not structured fields
_RECORD_ATTRIBUTES = frozenset({
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'message', 'pathname', 'process', 'processName',
    'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'hostname', 'asctime', 'taskName'
})


def configureLogging(logDir: Optional[str] = None, maxBytes: int = 10_000_000,
                     backupCount: int = 5, console: bool = True, level: str = 'INFO', utc: bool = False):
    """
    Configure global diagnostics logging (call once at app startup).

    Args:
        logDir: Directory for rotating log files (default: None, console only)
        maxBytes: Maximum size per log file before rotation (default: 10MB)
        backupCount: Number of backup files to keep (default: 5)
        console: Also log to console (default: True)
        level: Minimum log level (default: 'INFO')
        utc: Use UTC timestamps (default: False, uses local time)
    """
    global _configured

    _config.update({'logDir': logDir, 'maxBytes': maxBytes, 'backupCount': backupCount,
                    'console': console, 'level': getattr(logging, level.upper()), 'utc': utc})

    if logDir is not None:
        Path(logDir).mkdir(parents=True, exist_ok=True)
    _configured = True


def recordFields(record: logging.LogRecord) -> dict:
    """Return the structured fields attached to a record via `extra`."""
    return {key: value for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith('_')}


def _autoDetectName() -> str:
    """Auto-detect logger name from call stack. Returns hierarchy like: 'drivers.greptime.GreptimeConnection'"""

    frame = inspect.currentframe()
    try:
        current = frame
        while current is not None:
            current = current.f_back
            if current is None:
                break

            module = inspect.getmodule(current)
            if module is None:
                continue

            moduleName = module.__name__

            # Skip frames inside this logging package
            if moduleName.startswith('logsink.logging'):
                continue

            # Skip Python's import machinery
            if moduleName.startswith('importlib') or moduleName == '__main__':
                continue

            parts = moduleName.split('.')

            # 'logsink' is just the package wrapper
            if parts and parts[0] == 'logsink':
                parts = parts[1:]

            className = None
            if current.f_locals:
                if 'self' in current.f_locals:
                    className = current.f_locals['self'].__class__.__name__
                elif 'cls' in current.f_locals:
                    className = current.f_locals['cls'].__name__

            hierarchy = '.'.join(parts) if parts else 'logsink'
            if className:
                hierarchy = f"{hierarchy}.{className}"

            return hierarchy

        return 'logsink'
    finally:
        del frame


class StructuredFormatter(logging.Formatter):
    """Formatter that appends structured fields.
    Format: timestamp - hostname - logger.name - level - message [field1=value1, field2=value2]"""

    def __init__(self, fmt=None, datefmt=None, utc=False):
        super().__init__(fmt, datefmt)
        self.utc = utc

    def formatTime(self, record, datefmt=None):
        if self.utc:
            ct = datetime.fromtimestamp(record.created, tz=tz.utc)
        else:
            ct = datetime.fromtimestamp(record.created)

        if datefmt:
            return ct.strftime(datefmt)
        return f"{ct.strftime('%Y-%m-%d %H:%M:%S')},{int(record.msecs):03d}"

    def format(self, record):
        record.hostname = _hostname

        structuredFields = [f"{key}={value}" for key, value in recordFields(record).items()]

        # Append to a copy of msg, other handlers see the original
        originalMsg = record.msg
        if structuredFields:
            record.msg = f"{originalMsg} [{', '.join(structuredFields)}]"
        try:
            return super().format(record)
        finally:
            record.msg = originalMsg


def getLogger(name: Optional[str] = None) -> logging.Logger:
    """
    Get or create a logger with automatic hierarchy detection.

    Stack inspection happens once per getLogger() call; keep the returned
    logger on the instance or at module level.

    Args:
        name: Logger name (auto-detected from call stack if None)

    Returns:
        logging.Logger whose debug/info/warning/error/critical accept
        structured fields as keyword arguments
    """
    if not _configured:
        configureLogging()

    if name is None:
        name = _autoDetectName()

    logger = logging.getLogger(name)
    logger.propagate = False

    if not logger.handlers and not hasattr(logger, '_configured_by_logsink'):
        logger.setLevel(_config['level'])

        if _config['logDir'] is not None:
            logPath = str(Path(_config['logDir']) / 'logsink.log')
            if logPath not in _fileHandlers:
                fileHandler = logging.handlers.RotatingFileHandler(
                    logPath,
                    maxBytes=_config['maxBytes'],
                    backupCount=_config['backupCount'],
                    encoding='utf-8'
                )
                fileHandler.setLevel(_config['level'])
                fileHandler.setFormatter(StructuredFormatter(
                    '%(asctime)s - %(hostname)s - %(name)s - %(levelname)s - %(message)s',
                    utc=_config['utc']
                ))
                _fileHandlers[logPath] = fileHandler
            logger.addHandler(_fileHandlers[logPath])

        if _config['console']:
            consoleHandler = logging.StreamHandler()
            consoleHandler.setLevel(_config['level'])
            consoleHandler.setFormatter(StructuredFormatter(
                '%(name)s - %(levelname)s - %(message)s',
                utc=_config['utc']
            ))
            logger.addHandler(consoleHandler)

        logger._configured_by_logsink = True

    return _wrapLogger(logger)


def _wrapLogger(logger: logging.Logger) -> logging.Logger:
    """
    Let the standard level methods take structured fields as **kwargs.

    log.info("Message", rows=3) instead of log.info("Message", extra={'rows': 3})
    """
    if hasattr(logger, '_is_wrapped'):
        return logger

    def wrap(original):
        def method(msg, *args, **kwargs):
            # exc_info and stack_info are reserved logging params
            exc_info = kwargs.pop('exc_info', False)
            stack_info = kwargs.pop('stack_info', False)
            original(msg, *args, extra=kwargs or None, exc_info=exc_info,
                     stack_info=stack_info, stacklevel=2)
        return method

    logger.debug = wrap(logger.debug)
    logger.info = wrap(logger.info)
    logger.warning = wrap(logger.warning)
    logger.error = wrap(logger.error)
    logger.critical = wrap(logger.critical)
    logger._is_wrapped = True

    return logger
