"""CLI entrypoints for diffdash commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Sequence

from .collector import SignalCollector
from .config import ConfigError, DiffdashConfig, load_config
from .file_filter import FileFilter
from .linter import LintFormatter, LintRunner
from .logging import configure_logging, get_logger
from .signals.filters import filter_interpolated_logs

logger = get_logger("cli")


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


def _add_repo_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--root",
        default=".",
        help="Repository root used for ancestor and metric lookups (defaults to current directory).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to .diffdash.yml or its directory (defaults to the repository root).",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also append diffdash logs to this file.",
    )
    parser.add_argument(
        "paths",
        nargs="+",
        metavar="PATH",
        help="Changed Ruby files, relative to the repository root.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="diffdash",
        description="Detect logs and metrics touched by a change set in Ruby code.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Print detected signals and dynamic metric calls as JSON.",
    )
    _add_verbose_option(scan_parser, suppress_default=True)
    _add_repo_options(scan_parser)

    lint_parser = subparsers.add_parser(
        "lint",
        help="Report log calls that are hard to query, such as interpolated messages.",
    )
    _add_verbose_option(lint_parser, suppress_default=True)
    _add_repo_options(lint_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for diffdash commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    verbose = bool(args.verbose)
    configure_logging(verbose=verbose, log_file=Path(args.log_file) if args.log_file else None)

    root = Path(args.root)
    try:
        config = load_config(Path(args.config) if args.config else root)
    except (ConfigError, ValueError) as exc:
        parser.exit(2, f"diffdash: invalid configuration: {exc}\n")

    paths = _select_paths(root, config, args.paths)

    if args.command == "scan":
        _run_scan(root, config, paths)
    elif args.command == "lint":
        report, issue_count = _run_lint(paths, verbose=verbose)
        print(report)
        if issue_count:
            parser.exit(1)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _select_paths(root: Path, config: DiffdashConfig, paths: Sequence[str]) -> List[str]:
    """Filter changed paths on their repository-relative form; return them joined to ``root``."""
    file_filter = FileFilter.from_config(config.files)
    selected = [path for path in paths if file_filter.accepts(_relative_to_root(root, path))]
    skipped = len(paths) - len(selected)
    if skipped:
        logger.debug("Filtered out %d path(s)", skipped)
    return [path if Path(path).is_absolute() else str(root / path) for path in selected]


def _relative_to_root(root: Path, path: str) -> str:
    candidate = Path(path)
    if not candidate.is_absolute():
        return path
    try:
        return candidate.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        # Outside the repository; filter on the path as given.
        return path


def _run_scan(root: Path, config: DiffdashConfig, paths: Sequence[str]) -> None:
    collector = SignalCollector(root, metric_definition_paths=config.metrics.definition_paths)
    result = collector.collect(paths)
    signals, warning = filter_interpolated_logs(result.signals, config.signals.interpolated_logs)
    warnings = [warning] if warning else []
    for message in warnings:
        logger.warning(message)
    payload = {
        "signals": [signal.to_dict() for signal in signals],
        "dynamic_metrics": [call.to_dict() for call in result.dynamic_metrics],
        "warnings": warnings,
    }
    print(json.dumps(payload, indent=2))


def _run_lint(paths: Sequence[str], *, verbose: bool) -> tuple[str, int]:
    runner = LintRunner()
    issues = runner.run(paths)
    return LintFormatter(issues, verbose=verbose).format(), len(issues)


if __name__ == "__main__":
    main(sys.argv[1:])
