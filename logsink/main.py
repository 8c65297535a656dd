"""
logsink command line entry point.

Ships lines read from stdin to a configured sink, one log entry per line.

Usage:
    tail -F app.log | python -m logsink --config sinks.json --sink main --level WARNING

Config (JSON):
    {"sinks": {"main": {"driver": "greptime", "setting": {"host": "127.0.0.1", "table": "logs"}}}}

Exit codes: 0 on EOF, 1 when the sink cannot be opened, 2 on config errors.

Property of Uncompromising Sensors LLC.
"""

import argparse
import asyncio
import sys
from typing import List, Optional, TextIO

from logsink.core.events import Level, LogEntry
from logsink.core.settings import loadConfig, loadInstances
from logsink.drivers import DriverError, GreptimeError, getDefaultRegistry
from logsink.handler import LogShipper
from logsink.logging import configureLogging, getLogger


def parseArgs(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog='logsink', description='Ship stdin lines to a log sink')
    parser.add_argument('--config', required=True, help='Path to JSON config with a "sinks" object')
    parser.add_argument('--sink', default=None, help='Sink name (default: first sink in config)')
    parser.add_argument('--level', default='INFO', choices=[level.name for level in Level],
                        help='Level for every shipped line (default: INFO)')
    parser.add_argument('--project', default='')
    parser.add_argument('--profile', default='')
    parser.add_argument('--node', default='')
    parser.add_argument('--batch-size', type=int, default=100, dest='batchSize')
    parser.add_argument('--log-level', default='WARNING', dest='logLevel',
                        help='Level for logsink diagnostics (default: WARNING)')
    return parser.parse_args(argv)


async def shipLines(connection, stream: TextIO, level: Level, project: str, profile: str, node: str,
                    batchSize: int) -> LogShipper:
    """Ship lines from a text stream until EOF, return the finished shipper."""
    shipper = LogShipper(connection, batchSize=batchSize)
    shipper.start()
    while True:
        # readline blocks, keep the loop free for run()
        line = await asyncio.to_thread(stream.readline)
        if not line:
            break
        body = line.rstrip('\r\n')
        if body:
            shipper.submit(LogEntry(body=body, level=level, project=project, profile=profile, node=node))
    await shipper.stop()
    return shipper


async def runSink(args: argparse.Namespace, stream: TextIO) -> int:
    log = getLogger()

    try:
        instances = loadInstances(loadConfig(args.config))
    except (OSError, ValueError) as e:
        log.error("Invalid config", configPath=args.config, errorMsg=str(e))
        return 2

    if not instances:
        log.error("No sinks configured", configPath=args.config)
        return 2

    if args.sink is None:
        instance = instances[0]
    else:
        matches = [i for i in instances if i.name == args.sink]
        if not matches:
            log.error("Unknown sink", sink=args.sink, available=[i.name for i in instances])
            return 2
        instance = matches[0]

    try:
        connection = getDefaultRegistry().connect(instance)
    except DriverError as e:
        log.error("Unknown driver", sink=instance.name, errorMsg=str(e))
        return 2

    try:
        await connection.open()
    except GreptimeError as e:
        log.error("Cannot open sink", sink=instance.name, errorMsg=str(e))
        return 1

    try:
        shipper = await shipLines(connection, stream, Level[args.level], args.project, args.profile,
                                  args.node, args.batchSize)
    finally:
        await connection.close()

    log.info("Finished shipping", sink=instance.name, shipped=shipper.shipped, dropped=shipper.dropped)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parseArgs(argv)
    configureLogging(level=args.logLevel)
    return asyncio.run(runSink(args, sys.stdin))


if __name__ == '__main__':
    sys.exit(main())
