"""
Logging Bridge Tests

Covers:
1. SinkHandler record -> LogEntry conversion
2. LogShipper batching, flush on stop, failure handling
3. End to end: stdlib logger -> shipper -> GreptimeDB connection

Run: python -m pytest test/test_handler.py -v
"""

import asyncio
import logging
import sys
import threading
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from logsink.core.events import Instance, Level, LogEntry
from logsink.drivers import GreptimeDriver
from logsink.drivers.base import BaseConnection
from logsink.handler import LogShipper, SinkHandler
from fakeGreptime import runFakeGreptime


class RecordingConnection(BaseConnection):
    """Connection that keeps every batch it is asked to write."""

    def __init__(self, failFirst: int = 0):
        super().__init__(Instance(name='recording'))
        self.batches = []
        self.failFirst = failFirst

    @property
    def isOpen(self):
        return True

    async def open(self):
        pass

    async def close(self):
        pass

    async def write(self, *entries):
        if self.failFirst > 0:
            self.failFirst -= 1
            raise RuntimeError("backend down")
        self.batches.append(list(entries))


def makeLogger(name: str, handler: logging.Handler) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger


# ============================================================================
# SinkHandler
# ============================================================================

class TestSinkHandler:

    def test_record_conversion(self):
        shipper = LogShipper(RecordingConnection())
        handler = SinkHandler(shipper, project='shop', profile='prod', node='web-1')
        record = logging.LogRecord('app.orders', logging.WARNING, __file__, 10,
                                   'order %s failed', ('A-1',), None)
        record.orderId = 'A-1'
        record.amount = 12.5

        entry = handler.toEntry(record)

        assert entry.body == 'order A-1 failed'
        assert entry.level == Level.WARNING
        assert entry.time == round(record.created * 1_000_000_000)
        assert entry.fields == {'orderId': 'A-1', 'amount': 12.5, 'logger': 'app.orders'}
        assert (entry.project, entry.profile, entry.node) == ('shop', 'prod', 'web-1')

    def test_exception_text_and_non_json_values(self):
        handler = SinkHandler(LogShipper(RecordingConnection()))
        try:
            raise ValueError("bad input")
        except ValueError:
            record = logging.LogRecord('app', logging.ERROR, __file__, 1, 'failed', (), sys.exc_info())
        record.path = Path('/tmp/x')

        entry = handler.toEntry(record)

        assert 'ValueError: bad input' in entry.fields['exception']
        assert entry.fields['path'] == str(Path('/tmp/x'))
        assert entry.level == Level.ERROR

    def test_formatter_shapes_body(self):
        handler = SinkHandler(LogShipper(RecordingConnection()))
        record = logging.LogRecord('app', logging.INFO, __file__, 1, 'ready %d', (3,), None)
        assert handler.toEntry(record).body == 'ready 3'

        handler.setFormatter(logging.Formatter('%(name)s: %(message)s'))
        assert handler.toEntry(record).body == 'app: ready 3'

    def test_emit_submits_through_logger(self):
        shipper = LogShipper(RecordingConnection())
        logger = makeLogger('test.emit', SinkHandler(shipper))
        logger.info("one")
        logger.debug("two", extra={'step': 2})
        assert shipper.pending == 2

    def test_handler_level_filters(self):
        shipper = LogShipper(RecordingConnection())
        logger = makeLogger('test.level', SinkHandler(shipper, level=logging.ERROR))
        logger.warning("ignored")
        logger.error("kept")
        assert shipper.pending == 1


# ============================================================================
# LogShipper
# ============================================================================

class TestLogShipper:

    def test_rejects_bad_options(self):
        with pytest.raises(ValueError):
            LogShipper(RecordingConnection(), batchSize=0)
        with pytest.raises(ValueError):
            LogShipper(RecordingConnection(), flushInterval=0)

    @pytest.mark.asyncio
    async def test_flush_without_task_batches(self):
        conn = RecordingConnection()
        shipper = LogShipper(conn, batchSize=3)
        for i in range(7):
            shipper.submit(LogEntry(body=str(i)))
        await shipper.flush()
        assert [len(b) for b in conn.batches] == [3, 3, 1]
        assert [e.body for b in conn.batches for e in b] == [str(i) for i in range(7)]
        assert shipper.shipped == 7

    @pytest.mark.asyncio
    async def test_run_ships_and_stop_drains(self):
        conn = RecordingConnection()
        shipper = LogShipper(conn, batchSize=10, flushInterval=0.05)
        shipper.start()
        for i in range(25):
            shipper.submit(LogEntry(body=str(i)))
        await shipper.stop()

        bodies = [e.body for b in conn.batches for e in b]
        assert bodies == [str(i) for i in range(25)]
        assert all(len(b) <= 10 for b in conn.batches)
        assert shipper.shipped == 25
        assert shipper.pending == 0

    @pytest.mark.asyncio
    async def test_flush_interval_ships_partial_batch(self):
        conn = RecordingConnection()
        shipper = LogShipper(conn, batchSize=100, flushInterval=0.05)
        shipper.start()
        shipper.submit(LogEntry(body='lonely'))
        for _ in range(100):
            if conn.batches:
                break
            await asyncio.sleep(0.02)
        assert [e.body for b in conn.batches for e in b] == ['lonely']
        await shipper.stop()

    @pytest.mark.asyncio
    async def test_submit_from_threads(self):
        conn = RecordingConnection()
        shipper = LogShipper(conn, batchSize=50, flushInterval=0.05)
        shipper.start()

        def produce(n):
            for i in range(100):
                shipper.submit(LogEntry(body=f'{n}-{i}'))

        threads = [threading.Thread(target=produce, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        await shipper.stop()

        assert shipper.shipped == 400
        assert len({e.body for b in conn.batches for e in b}) == 400

    @pytest.mark.asyncio
    async def test_failed_batch_dropped_and_shipper_continues(self):
        conn = RecordingConnection(failFirst=1)
        shipper = LogShipper(conn, batchSize=2)
        for i in range(4):
            shipper.submit(LogEntry(body=str(i)))
        await shipper.flush()
        assert shipper.dropped == 2
        assert shipper.shipped == 2
        assert [e.body for b in conn.batches for e in b] == ['2', '3']

    @pytest.mark.asyncio
    async def test_stop_ends_caller_owned_run(self):
        conn = RecordingConnection()
        shipper = LogShipper(conn, batchSize=10, flushInterval=0.05)
        task = asyncio.create_task(shipper.run())
        await asyncio.sleep(0.01)
        for i in range(5):
            shipper.submit(LogEntry(body=str(i)))
        await shipper.stop()
        await asyncio.wait_for(task, 1.0)

        assert [e.body for b in conn.batches for e in b] == [str(i) for i in range(5)]
        assert shipper.pending == 0

    @pytest.mark.asyncio
    async def test_submit_racing_stop_is_shipped_or_counted(self):
        conn = RecordingConnection()
        shipper = LogShipper(conn, batchSize=20, flushInterval=0.01)
        shipper.start()
        perThread = 500
        started = threading.Event()

        def produce(n):
            for i in range(perThread):
                shipper.submit(LogEntry(body=f'{n}-{i}'))
                if i == 10:
                    started.set()

        threads = [threading.Thread(target=produce, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        await asyncio.to_thread(started.wait, 5.0)
        await shipper.stop()
        for t in threads:
            await asyncio.to_thread(t.join)

        assert shipper.pending == 0
        assert shipper.shipped + shipper.dropped == 4 * perThread
        assert shipper.shipped == sum(len(b) for b in conn.batches)

    @pytest.mark.asyncio
    async def test_submit_after_stop_is_dropped(self):
        conn = RecordingConnection()
        shipper = LogShipper(conn)
        await shipper.stop()
        shipper.submit(LogEntry(body='late'))
        assert shipper.pending == 0
        assert shipper.dropped == 1


# ============================================================================
# End to end
# ============================================================================

class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_logger_to_greptime(self):
        async with runFakeGreptime() as (fake, setting):
            conn = GreptimeDriver().connect(Instance(name='e2e', setting=setting))
            async with conn:
                shipper = LogShipper(conn, batchSize=50, flushInterval=0.05)
                shipper.start()
                logger = makeLogger('test.e2e', SinkHandler(shipper, project='shop', node='web-1'))
                for i in range(30):
                    logger.info("tick %d", i, extra={'i': i})
                await shipper.stop()

        lines = fake.lines
        assert len(lines) == 30
        assert all(line.startswith('logs,project=shop,node=web-1 level="INFO",level_code=5i,') for line in lines)
        assert 'body="tick 0"' in lines[0]
        timestamps = fake.timestamps
        assert timestamps == sorted(timestamps)
        assert len(set(timestamps)) == 30
