"""Exporter entry point."""

from mssql_exporter.runner import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
