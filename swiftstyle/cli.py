"""CLI entrypoints for swiftstyle commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import CONFIG_FILENAME, ConfigurationError, LintConfig, load_config
from .engine import Linter
from .logging import configure_logging, get_logger
from .rules import discover_rules

EXIT_USAGE = 2


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swiftstyle",
        description="Check Swift sources against a house style guide.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log output to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check",
        help="Check Swift files or directories and print findings.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    check_parser.add_argument(
        "paths",
        nargs="*",
        default=["."],
        help="Files or directories to check (defaults to current directory).",
    )
    check_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to a {CONFIG_FILENAME} file (defaults to one in the current directory).",
    )
    check_parser.add_argument(
        "--workers",
        type=_positive_int,
        default=None,
        help="Number of files checked in parallel.",
    )

    rules_parser = subparsers.add_parser(
        "rules",
        help="List the available rules.",
    )
    _add_verbose_option(rules_parser, suppress_default=True)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for swiftstyle commands; returns the process exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "check":
        return _run_check(parser, args)
    if args.command == "rules":
        for rule in discover_rules():
            print(f"{rule.rule_id} ({rule.default_severity.value}): {rule.description}")
        return 0
    if args.command == "serve":
        from .service.app import run_service

        run_service(host=args.host, port=args.port)
        return 0
    parser.exit(EXIT_USAGE, "Unknown command\n")  # pragma: no cover - argparse enforces choices
    return EXIT_USAGE  # pragma: no cover


def _run_check(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    logger = get_logger("cli")
    try:
        config = _load_config(args.config)
        linter = Linter.from_config(config, workers=args.workers)
        logger.debug("Using configuration rooted at %s", config.root)
    except ConfigurationError as exc:
        parser.exit(EXIT_USAGE, f"swiftstyle: configuration error: {exc}\n")

    paths = [Path(item) for item in args.paths]
    try:
        report = linter.lint_paths(paths, exclude_paths=config.exclude_paths)
    except FileNotFoundError as exc:
        parser.exit(EXIT_USAGE, f"swiftstyle: {exc}\n")

    for item in report.findings:
        print(item)
    print(report.summary(), file=sys.stderr)
    return report.exit_code


def _load_config(config_path: Path | None) -> LintConfig:
    if config_path is None:
        return load_config(Path.cwd())
    if not config_path.expanduser().exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")
    return load_config(config_path)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
