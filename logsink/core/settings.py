"""
logsink Settings Extraction

Maps a sink instance's free-form setting map onto a typed GreptimeSetting.

Rules:
- Unknown keys are ignored; values of the wrong type are ignored
- Extraction never raises: a bad value keeps the default
- Aliases are applied in a fixed order (later wins unless noted):
    host -> server
    port (must be > 0)
    username -> user (only while username is empty)
    password -> pass (only while password is empty)
    database -> db
    table
    timeout (must be > 0; numbers are seconds, strings are Go-style durations)
    insecure -> tls (tls=True means insecure=False)
    autoCreate

Config files are JSON documents of the form:
    {"sinks": {"<name>": {"driver": "greptime", "setting": {...}}}}

Property of Uncompromising Sensors LLC.
"""

import math
import re
from dataclasses import dataclass, asdict
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import orjson

from .events import Instance


# Seconds per Go duration unit
_DURATION_UNITS: Dict[str, float] = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,  # micro sign
    'μs': 1e-6,  # greek mu
    'ms': 1e-3,
    's': 1.0,
    'm': 60.0,
    'h': 3600.0,
}

_DURATION_RE = re.compile(r'^[-+]?(?:(?:\d+\.?\d*|\.\d+)[a-zµμ]+)+$')
_DURATION_PART_RE = re.compile(r'(\d+\.?\d*|\.\d+)([a-zµμ]+)')


def parseDuration(text: str) -> float:
    """
    Parse a Go-style duration string into seconds.

    Examples:
        >>> parseDuration("1m30s")
        90.0
        >>> parseDuration("250ms")
        0.25

    Raises:
        ValueError: If text is not a valid duration
    """
    text = text.strip()
    if text in ('0', '+0', '-0'):
        return 0.0
    if not _DURATION_RE.match(text):
        raise ValueError(f"Invalid duration: {text!r}")

    sign = -1.0 if text.startswith('-') else 1.0
    total = 0.0
    for number, unit in _DURATION_PART_RE.findall(text):
        scale = _DURATION_UNITS.get(unit)
        if scale is None:
            raise ValueError(f"Unknown unit {unit!r} in duration {text!r}")
        total += float(number) * scale
    return sign * total


def getString(setting: Optional[Mapping[str, Any]], key: str) -> Tuple[str, bool]:
    if not setting or key not in setting:
        return "", False
    value = setting[key]
    if isinstance(value, str):
        return value, True
    return "", False


def getInt(setting: Optional[Mapping[str, Any]], key: str) -> Tuple[int, bool]:
    if not setting or key not in setting:
        return 0, False
    value = setting[key]
    if isinstance(value, bool):
        return 0, False
    if isinstance(value, int):
        return value, True
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0, False
        return int(value), True
    if isinstance(value, str):
        try:
            return int(value.strip()), True
        except ValueError:
            return 0, False
    return 0, False


def getDuration(setting: Optional[Mapping[str, Any]], key: str) -> Tuple[float, bool]:
    """Duration in seconds. Numbers are seconds, strings use Go duration syntax."""
    if not setting or key not in setting:
        return 0.0, False
    value = setting[key]
    if isinstance(value, bool):
        return 0.0, False
    if isinstance(value, timedelta):
        return value.total_seconds(), True
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return 0.0, False
        return float(value), True
    if isinstance(value, str):
        try:
            seconds = parseDuration(value)
        except ValueError:
            return 0.0, False
        if not math.isfinite(seconds):
            return 0.0, False
        return seconds, True
    return 0.0, False


def getBool(setting: Optional[Mapping[str, Any]], key: str) -> Tuple[bool, bool]:
    if not setting or key not in setting:
        return False, False
    value = setting[key]
    if isinstance(value, bool):
        return value, True
    return False, False


@dataclass
class GreptimeSetting:
    """Connection settings for a GreptimeDB sink."""
    host: str = "127.0.0.1"
    port: int = 4000            # GreptimeDB HTTP port
    username: str = ""
    password: str = ""
    database: str = "public"
    table: str = "logs"
    timeout: float = 5.0        # seconds, per write request
    insecure: bool = True       # True = plain http, False = https
    autoCreate: bool = True     # issue CREATE TABLE IF NOT EXISTS on open

    @classmethod
    def fromInstance(cls, instance: Optional[Instance]) -> 'GreptimeSetting':
        setting = cls()
        if instance is None:
            return setting
        raw = instance.setting

        value, ok = getString(raw, 'host')
        if ok and value:
            setting.host = value
        value, ok = getString(raw, 'server')
        if ok and value:
            setting.host = value

        port, ok = getInt(raw, 'port')
        if ok and port > 0:
            setting.port = port

        value, ok = getString(raw, 'username')
        if ok:
            setting.username = value
        value, ok = getString(raw, 'user')
        if ok and not setting.username:
            setting.username = value

        value, ok = getString(raw, 'password')
        if ok:
            setting.password = value
        value, ok = getString(raw, 'pass')
        if ok and not setting.password:
            setting.password = value

        value, ok = getString(raw, 'database')
        if ok and value:
            setting.database = value
        value, ok = getString(raw, 'db')
        if ok and value:
            setting.database = value

        value, ok = getString(raw, 'table')
        if ok and value:
            setting.table = value

        timeout, ok = getDuration(raw, 'timeout')
        if ok and timeout > 0:
            setting.timeout = timeout

        flag, ok = getBool(raw, 'insecure')
        if ok:
            setting.insecure = flag
        flag, ok = getBool(raw, 'tls')
        if ok:
            setting.insecure = not flag

        flag, ok = getBool(raw, 'autoCreate')
        if ok:
            setting.autoCreate = flag

        return setting

    @property
    def baseUrl(self) -> str:
        scheme = 'http' if self.insecure else 'https'
        return f"{scheme}://{self.host}:{self.port}"

    def redacted(self) -> Dict[str, Any]:
        """Setting as a dict with the password masked, for logging."""
        values = asdict(self)
        if values['password']:
            values['password'] = '***'
        return values


def loadConfig(configPath: Union[str, Path]) -> dict:
    """Load a JSON configuration file."""
    with open(configPath, 'rb') as f:
        return orjson.loads(f.read())


def loadInstances(config: Mapping[str, Any]) -> List[Instance]:
    """
    Build sink instances from a loaded config.

    Raises:
        ValueError: If the 'sinks' section or an entry is not a JSON object
    """
    if not isinstance(config, dict):
        raise ValueError("Config must be a JSON object")
    sinks = config.get('sinks', {})
    if not isinstance(sinks, dict):
        raise ValueError("'sinks' must be an object")

    instances = []
    for name, entry in sinks.items():
        if not isinstance(entry, dict):
            raise ValueError(f"Sink '{name}' must be an object")
        setting = entry.get('setting', {})
        if not isinstance(setting, dict):
            raise ValueError(f"Sink '{name}' setting must be an object")
        instances.append(Instance(name=name, driver=entry.get('driver', 'greptime'), setting=setting))
    return instances
