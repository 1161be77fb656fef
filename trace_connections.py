import argparse
import logging
import sys

from auditconn.config import ConfigError, load_settings
from auditconn.correlator import Correlator
from auditconn.errors import ParseError
from auditconn.parser import parse_log_file
from auditconn.report import render_fact, render_summary
from auditconn.resolver import HostnameCache, reverse_lookup

logger = logging.getLogger("trace_connections")


def trace_connections(log_path="/var/log/audit/audit.log", resolve_hostnames=True, time_format=None):
    """
    Один проход по audit.log: печатает найденные соединения и итоговую строку.
    Возвращает Correlator (со счётчиками) для вызывающего кода.
    """
    cache = HostnameCache(lookup=reverse_lookup if resolve_hostnames else None)
    correlator = Correlator(cache)
    failed = 0

    for line_num, result in parse_log_file(log_path):
        if isinstance(result, ParseError):
            failed += 1
            logger.warning("failed to parse %d: %s", line_num, result)
            continue

        for fact in correlator.observe(result):
            print(render_fact(fact, time_format))

    print()
    print(render_summary(correlator))

    logger.info(
        "records: %d, failed lines: %d, unmatched SYSCALL ids: %d, dns cache: %d entries (%d hits)",
        correlator.records_seen, failed, correlator.pending, len(cache), cache.hits,
    )
    return correlator


def build_arg_parser():
    parser = argparse.ArgumentParser(
        description="Show which processes opened network connections or unix sockets, from audit.log",
    )
    parser.add_argument("log_file", help="path to audit.log")
    parser.add_argument("--config", help="YAML settings file (default: auditconn.yaml)")
    parser.add_argument("--no-resolve", action="store_true", help="do not reverse-resolve addresses")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv=None):
    args = build_arg_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings["log_level"],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        trace_connections(
            args.log_file,
            resolve_hostnames=settings["resolve_hostnames"] and not args.no_resolve,
            time_format=settings["time_format"],
        )
    except OSError as e:
        logger.error("cannot read %s: %s", args.log_file, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
