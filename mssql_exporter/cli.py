"""Command line interface: run the exporter or document its queries."""

import argparse
import sys
from collections.abc import Sequence
from typing import NoReturn, TextIO

from dotenv import load_dotenv
from prometheus_client import CollectorRegistry

from mssql_exporter.collectors.base import Collector
from mssql_exporter.collectors.catalog import build_collectors
from mssql_exporter.config import Settings
from mssql_exporter.exceptions import ConfigurationError
from mssql_exporter.services.connection_service import ConnectionService


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Prometheus exporter for Microsoft SQL Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("serve", help="Serve /metrics over HTTP")

    docs_parser = subparsers.add_parser(
        "docs",
        help="Print every collector's metrics and SQL query",
    )
    docs_parser.add_argument(
        "--support-2012",
        action="store_true",
        default=None,
        help="Document the SQL Server 2012 compatible queries",
    )

    subparsers.add_parser("check", help="Verify the database is reachable")

    return parser


def write_docs(collectors: Sequence[Collector], out: TextIO) -> None:
    """Write the collectors as an SQL script annotated for DBAs.

    Each query is preceded by ``--`` comments naming its metrics; a closing
    comment block lists every metric with its labels and help text.
    """
    for collector in collectors:
        for handle in collector.handles.values():
            print("--", handle.name, handle.documentation, file=out)
        print(collector.query + ";", file=out)
        print("", file=out)

    print("/*", file=out)
    for collector in collectors:
        for handle in collector.handles.values():
            labels = "{" + ",".join(handle.labelnames) + "}" if handle.labelnames else ""
            print("* ", handle.name + labels, handle.documentation, file=out)
    print("*/", file=out)


def handle_docs(support_mssql_2012: bool, out: TextIO = sys.stdout) -> None:
    collectors = build_collectors(support_mssql_2012, CollectorRegistry())
    write_docs(collectors, out)


def handle_check(settings: Settings) -> None:
    try:
        settings.validate_config()
    except ConfigurationError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    print(f"Using database: {settings.target}")

    connected, message = ConnectionService(settings).check_connection()
    if not connected:
        print(f"Cannot connect to database: {message}", file=sys.stderr)
        sys.exit(1)

    print(message)


def main() -> NoReturn:
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    settings = Settings.load()

    if args.command == "serve":
        from mssql_exporter.runner import run

        try:
            run(settings)
        except ConfigurationError as e:
            print(str(e), file=sys.stderr)
            sys.exit(1)
    elif args.command == "docs":
        support_mssql_2012 = (
            settings.support_mssql_2012 if args.support_2012 is None else args.support_2012
        )
        handle_docs(support_mssql_2012)
    elif args.command == "check":
        handle_check(settings)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
