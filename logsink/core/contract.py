"""
logsink Table Contract

SINGLE SOURCE OF TRUTH for the log table layout.

Columns (order is fixed):
  Tags:      project, profile, node             STRING  (primary key)
  Fields:    level STRING, level_code INT64, body STRING, fields STRING (JSON)
  Timestamp: time                               TIMESTAMP_NANOSECOND (time index)

Rows are written in column order: tags, then fields, then the timestamp.

Property of Uncompromising Sensors LLC.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import orjson


class SchemaError(Exception):
    """Invalid table definition"""
    pass


class ColumnType(Enum):
    STRING = "STRING"
    INT64 = "BIGINT"
    TIMESTAMP_NANOSECOND = "TIMESTAMP(9)"


class SemanticType(Enum):
    TAG = "tag"
    FIELD = "field"
    TIMESTAMP = "timestamp"


@dataclass(frozen=True)
class Column:
    name: str
    semantic: SemanticType
    dataType: ColumnType


# ============================================================================
# Log table columns
# ============================================================================

LOG_COLUMNS: Tuple[Column, ...] = (
    Column("project", SemanticType.TAG, ColumnType.STRING),
    Column("profile", SemanticType.TAG, ColumnType.STRING),
    Column("node", SemanticType.TAG, ColumnType.STRING),
    Column("level", SemanticType.FIELD, ColumnType.STRING),
    Column("level_code", SemanticType.FIELD, ColumnType.INT64),
    Column("body", SemanticType.FIELD, ColumnType.STRING),
    Column("fields", SemanticType.FIELD, ColumnType.STRING),
    Column("time", SemanticType.TIMESTAMP, ColumnType.TIMESTAMP_NANOSECOND),
)

_TABLE_NAME_RE = re.compile(r'^[A-Za-z0-9_.\-]+$')


@dataclass(frozen=True)
class TableSchema:
    """Named table with its ordered columns."""
    name: str
    columns: Tuple[Column, ...]

    @property
    def tags(self) -> List[Column]:
        return [c for c in self.columns if c.semantic == SemanticType.TAG]

    @property
    def fields(self) -> List[Column]:
        return [c for c in self.columns if c.semantic == SemanticType.FIELD]

    @property
    def timestamp(self) -> Column:
        return next(c for c in self.columns if c.semantic == SemanticType.TIMESTAMP)

    def createTableSql(self) -> str:
        """CREATE TABLE IF NOT EXISTS statement for this schema."""
        definitions = [f"`{c.name}` {c.dataType.value}" for c in self.columns
                       if c.semantic != SemanticType.TIMESTAMP]
        ts = self.timestamp
        definitions.append(f"`{ts.name}` {ts.dataType.value} TIME INDEX")
        primaryKey = ", ".join(f"`{c.name}`" for c in self.tags)
        if primaryKey:
            definitions.append(f"PRIMARY KEY ({primaryKey})")
        return f"CREATE TABLE IF NOT EXISTS `{self.name}` ({', '.join(definitions)})"


def buildTable(name: str) -> TableSchema:
    """
    Build the log table schema.

    Raises:
        SchemaError: If name is empty or has characters outside [A-Za-z0-9_.-]
    """
    if not name:
        raise SchemaError("Table name is empty")
    if not _TABLE_NAME_RE.match(name):
        raise SchemaError(f"Invalid table name: {name!r}")
    return TableSchema(name=name, columns=LOG_COLUMNS)


def encodeFields(fields: Optional[Dict[str, Any]]) -> str:
    """
    Encode structured fields as compact JSON with sorted keys.

    Empty or unserializable input encodes as "{}".
    """
    if not fields:
        return "{}"
    try:
        return orjson.dumps(fields, option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS).decode('utf-8')
    except (orjson.JSONEncodeError, TypeError):
        return "{}"
