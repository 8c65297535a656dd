"""
logsink Line Protocol Encoding

Renders log rows as InfluxDB line protocol, which GreptimeDB ingests over
HTTP at /v1/influxdb/write.

Line format:
    <table>[,<tag>=<value>...] <field>=<value>[,<field>=<value>...] <timestampNs>

Escaping:
- measurement: ',' and ' '
- tag keys, tag values, field keys: ',', '=' and ' '
- string field values: double-quoted, '\\' and '"' escaped, newlines as \\n
  (assumes the server unescapes \\n; otherwise it is stored literally)
- INT64 field values: integer with an 'i' suffix

Tags with an empty value are left out; the protocol has no empty tag value.

Property of Uncompromising Sensors LLC.
"""

from typing import Any, Iterable, Mapping

from .contract import ColumnType, TableSchema


# Line breaks end a line, so they become escaped spaces
_MEASUREMENT_ESCAPES = str.maketrans({',': '\\,', ' ': '\\ ', '\n': '\\ ', '\r': '\\ '})
_KEY_ESCAPES = str.maketrans({',': '\\,', '=': '\\=', ' ': '\\ ', '\n': '\\ ', '\r': '\\ '})
_STRING_ESCAPES = str.maketrans({'\\': '\\\\', '"': '\\"', '\n': '\\n', '\r': '\\r'})


def escapeMeasurement(name: str) -> str:
    return name.translate(_MEASUREMENT_ESCAPES)


def escapeKey(key: str) -> str:
    """Escape a tag key, tag value or field key."""
    return key.translate(_KEY_ESCAPES)


def formatFieldValue(value: Any, dataType: ColumnType) -> str:
    if dataType == ColumnType.INT64:
        return f"{int(value)}i"
    return f'"{str(value).translate(_STRING_ESCAPES)}"'


def encodeRow(schema: TableSchema, values: Mapping[str, Any], timestampNs: int) -> str:
    """
    Encode one row.

    Args:
        schema: Table layout (tags and fields)
        values: Column name -> value for tags and fields
        timestampNs: Issued timestamp in Unix nanoseconds

    Raises:
        ValueError: If a field value is missing
    """
    parts = [escapeMeasurement(schema.name)]
    for column in schema.tags:
        value = values.get(column.name)
        if value is None or value == "":
            continue
        parts.append(f"{escapeKey(column.name)}={escapeKey(str(value))}")
    head = ','.join(parts)

    fieldParts = []
    for column in schema.fields:
        if column.name not in values or values[column.name] is None:
            raise ValueError(f"Missing value for field '{column.name}'")
        fieldParts.append(f"{escapeKey(column.name)}={formatFieldValue(values[column.name], column.dataType)}")

    return f"{head} {','.join(fieldParts)} {int(timestampNs)}"


def encodeBatch(lines: Iterable[str]) -> bytes:
    """Join encoded rows into a request body."""
    return '\n'.join(lines).encode('utf-8')
