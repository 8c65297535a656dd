"""
logsink Core Package

Log model, settings extraction, table contract, wire encoding and the
monotonic timestamp allocator. No I/O happens in this package.

Invariants:
- Issued timestamps are strictly increasing per connection
- Column order is fixed by contract.LOG_COLUMNS
- Settings extraction never raises

Property of Uncompromising Sensors LLC.
"""

__version__ = "0.1.0"
