import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional
import colorlog

from csv_query import __version__ as _PACKAGE_VERSION
from csv_query.config import Settings, load_settings, log_settings
from csv_query.core.errors import ConfigurationError, LoadError, SchemaError


# Exit codes returned by the commands
EXIT_OK = 0
EXIT_LOAD_FAILED = 1
EXIT_CONFIG_FAILED = 2

# argparse dests that map onto Settings fields
_SETTING_ARGS = (
    "file",
    "delimiter",
    "field_count",
    "has_header",
    "header",
    "indices",
    "numeric",
    "encoding",
    "host",
    "port",
    "shutdown_timeout",
    "progress",
)


def setup_logging(
    verbose: bool = False, warnings_only: bool = False, errors_only: bool = False
) -> None:
    logger = logging.getLogger()
    for h in list(logger.handlers):
        logger.removeHandler(h)
    log_format = (
        "%(asctime)s:%(levelname)s:%(name)s in %(filename)s:%(funcName)s:%(lineno)d: %(message)s"
    )
    log_colors = {
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold_red",
    }
    stream_handler = colorlog.StreamHandler()
    formatter = colorlog.ColoredFormatter(f"%(log_color)s{log_format}", log_colors=log_colors)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)
    if errors_only:
        logger.setLevel(logging.ERROR)
    elif warnings_only:
        logger.setLevel(logging.WARNING)
    else:
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def _load_settings(args: argparse.Namespace) -> Settings:
    overrides: Dict[str, Any] = {name: getattr(args, name, None) for name in _SETTING_ARGS}
    config_path = Path(args.config) if getattr(args, "config", None) else None
    logging.info("*** Parsing configuration ***")
    settings = load_settings(overrides, config_path=config_path)
    log_settings(settings)
    return settings


def cmd_serve(args: argparse.Namespace) -> int:
    """Load the CSV file into SQLite and serve it over HTTP.

    Returns 2 for configuration and schema errors and 1 when the import of
    data rows fails; nothing is served in either case.
    """
    from csv_query.app import build_context
    from csv_query.interfaces.http.server import serve

    try:
        settings = _load_settings(args)
        context = build_context(settings)
    except (ConfigurationError, SchemaError) as e:
        logging.error("%s", e)
        return EXIT_CONFIG_FAILED
    except LoadError as e:
        logging.error("%s", e)
        return EXIT_LOAD_FAILED

    try:
        serve(context)
    except KeyboardInterrupt:
        pass
    return EXIT_OK


def cmd_schema(args: argparse.Namespace) -> int:
    """Print the SQL statements the schema of the CSV file resolves to."""
    from csv_query.app import read_schema

    try:
        settings = _load_settings(args)
        schema = read_schema(settings)
    except (ConfigurationError, SchemaError) as e:
        logging.error("%s", e)
        return EXIT_CONFIG_FAILED

    for statement in schema.statements():
        print(f"{statement};")
    return EXIT_OK


def _add_source_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--config",
        default=None,
        help="Path to a YAML config file; flags and CSV_* environment variables take precedence",
    )
    p.add_argument("--file", default=None, help="Path to the CSV file (env: CSV_FILE)")
    p.add_argument(
        "--delimiter",
        default=None,
        help="Single-character field separator, default ',' (env: CSV_DELIMITER)",
    )
    p.add_argument(
        "--field-count",
        type=int,
        default=None,
        help="Number of fields per row; 0 detects it from the header (env: CSV_FIELD_COUNT)",
    )
    p.add_argument(
        "--has-header",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Whether the first record of the file is a header, default true (env: CSV_HAS_HEADER)",
    )
    p.add_argument(
        "--header",
        default=None,
        help=(
            "Custom header, split on the delimiter or on commas; replaces the file header "
            "(env: CSV_HEADER)"
        ),
    )
    p.add_argument(
        "--indices",
        "--indicies",
        dest="indices",
        default=None,
        help="Columns to index, split on the delimiter or on commas (env: CSV_INDICES)",
    )
    p.add_argument(
        "--encoding",
        default=None,
        help="Text encoding of the CSV file, default utf-8 (env: CSV_ENCODING)",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="csv-query",
        description="Serve a CSV file as a read-only JSON query API",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {_PACKAGE_VERSION}")
    p.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    p.add_argument(
        "--warnings-only",
        action="store_true",
        help="Only show warnings and errors",
    )
    p.add_argument(
        "--errors-only",
        action="store_true",
        help="Only show errors",
    )
    sub = p.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Load the CSV file and serve it over HTTP")
    _add_source_arguments(p_serve)
    p_serve.add_argument(
        "--numeric",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Convert numeric-looking values to JSON numbers, default true (env: CSV_NUMERIC)",
    )
    p_serve.add_argument(
        "--host",
        default=None,
        help="Host to bind, default 0.0.0.0 (env: CSV_HOST)",
    )
    p_serve.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on, default 8080 (env: CSV_PORT)",
    )
    p_serve.add_argument(
        "--shutdown-timeout",
        type=float,
        default=None,
        help="Seconds to wait for in-flight requests on shutdown, default 5 (env: CSV_SHUTDOWN_TIMEOUT)",
    )
    p_serve.add_argument(
        "--progress",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Show a progress counter while importing (env: CSV_PROGRESS)",
    )
    p_serve.set_defaults(func=cmd_serve)

    p_schema = sub.add_parser(
        "schema", help="Print the CREATE statements for the CSV file without serving it"
    )
    _add_source_arguments(p_schema)
    p_schema.set_defaults(func=cmd_schema)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(
        verbose=bool(args.verbose),
        warnings_only=bool(getattr(args, "warnings_only", False)),
        errors_only=bool(getattr(args, "errors_only", False)),
    )
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
