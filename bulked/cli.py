#! /usr/bin/env python3
import argparse
import sys
from typing import List, Optional

from rich.console import Console

from bulked import __version__, log_utils
from bulked.apply_engine import ApplyMode, apply
from bulked.code_block import Applied, BinaryFileSkipped, Conflict, Failed, SearchResult, Skipped
from bulked.config import Settings, load_settings
from bulked.file_system import FileSystem, PhysicalFileSystem
from bulked.ingest import INPUT_FORMATS, IngestError, ingest, parse_records
from bulked.matchers import PatternError
from bulked.search_utils import SearchConfig, search
from bulked.structured_format import ParseError, format_plain, format_structured


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {number}")
    return number


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bulked",
        description="Search code, edit the results as text, apply the edits back.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    verbose = argparse.ArgumentParser(add_help=False)
    verbose.add_argument("-v", "--verbose", action="store_true", help="Print diagnostics on stderr.")

    search_parser = subparsers.add_parser(
        "search", parents=[verbose], help="Search files and print editable results.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    search_parser.add_argument("pattern", help="Regular expression (Python re syntax).")
    search_parser.add_argument("path", nargs="?", default=".", help="Directory or file to search.")
    search_parser.add_argument(
        "-C", "--context", type=_non_negative_int, default=settings.context_lines,
        help="Lines of context before and after each match.",
    )
    search_parser.add_argument(
        "--no-ignore", action="store_true", default=settings.no_ignore, help="Do not respect .gitignore files."
    )
    search_parser.add_argument(
        "--hidden", action="store_true", default=settings.hidden, help="Search hidden files and directories."
    )
    search_parser.add_argument("--follow", action="store_true", help="Follow symbolic links.")
    search_parser.add_argument("--plain", action="store_true", help="Human-readable output, not accepted by apply.")

    apply_parser = subparsers.add_parser(
        "apply", parents=[verbose], help="Apply edited search results.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    apply_parser.add_argument(
        "-i", "--input", default="-", help="Structured input file, '-' for stdin."
    )
    apply_parser.add_argument(
        "--dry-run", action="store_true", help="Print the diff of every change without writing."
    )

    ingest_parser = subparsers.add_parser(
        "ingest", parents=[verbose], help="Turn path:line locations into editable results.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    ingest_parser.add_argument("path", nargs="?", default="-", help="Location list file, '-' for stdin.")
    ingest_parser.add_argument("-f", "--format", choices=INPUT_FORMATS, default="auto", help="Input format.")
    ingest_parser.add_argument(
        "-C", "--context", type=_non_negative_int, default=settings.context_lines,
        help="Lines of context before and after each location.",
    )
    ingest_parser.add_argument("--plain", action="store_true", help="Human-readable output, not accepted by apply.")
    return parser


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _print_result(result: SearchResult, plain: bool) -> None:
    for error in result.errors:
        if isinstance(error, BinaryFileSkipped):
            log_utils.debug(error.describe())
        else:
            log_utils.warning(error.describe())
    if plain:
        Console(highlight=False).print(format_plain(result), end="", soft_wrap=True)
    else:
        sys.stdout.write(format_structured(result))
        sys.stdout.flush()
    log_utils.debug(f"{len(result.matches)} match(es) in {len(result.file_paths)} file(s)")


def run_search(args: argparse.Namespace, file_system: FileSystem) -> int:
    if not file_system.exists(args.path):
        log_utils.error(f"Path not found: {args.path}")
        return 1
    config = SearchConfig(
        pattern=args.pattern,
        root_path=args.path,
        context_lines=args.context,
        respect_gitignore=not args.no_ignore,
        include_hidden=args.hidden,
        follow_symlinks=args.follow,
    )
    try:
        result = search(config, file_system, config.build_walker())
    except PatternError as e:
        log_utils.error(e.message)
        return 1
    except OSError as e:
        log_utils.error(f"Cannot read {args.path}: {e}")
        return 1
    _print_result(result, args.plain)
    # A single-file search whose file cannot be read found nothing to search.
    if any(error.path == args.path for error in result.read_errors):
        return 1
    return 0


def run_apply(args: argparse.Namespace, file_system: FileSystem) -> int:
    try:
        source = _read_input(args.input)
    except (OSError, UnicodeDecodeError) as e:
        log_utils.error(f"Cannot read input {args.input}: {e}")
        return 1

    mode = ApplyMode.DRY_RUN if args.dry_run else ApplyMode.COMMIT
    try:
        report = apply(source, mode, file_system)
    except ParseError as e:
        log_utils.error(f"Invalid structured input: {e}")
        return 1

    for outcome in report.outcomes:
        if isinstance(outcome, Applied):
            if outcome.dry_run and outcome.diff:
                sys.stdout.write(outcome.diff + "\n")
            log_utils.success(outcome.describe())
        elif isinstance(outcome, Skipped):
            log_utils.info(outcome.describe())
        elif isinstance(outcome, (Conflict, Failed)):
            log_utils.error(outcome.describe())
    sys.stdout.flush()

    if not report.outcomes:
        log_utils.info("No edits to apply.")
    return 0 if report.succeeded else 1


def run_ingest(args: argparse.Namespace, file_system: FileSystem) -> int:
    try:
        records = parse_records(_read_input(args.path), args.format)
    except (OSError, UnicodeDecodeError) as e:
        log_utils.error(f"Cannot read input {args.path}: {e}")
        return 1
    except IngestError as e:
        log_utils.error(f"Invalid location input: {e}")
        return 1
    _print_result(ingest(records, file_system, args.context), args.plain)
    return 0


_COMMANDS = {
    "search": run_search,
    "apply": run_apply,
    "ingest": run_ingest,
}


def main(argv: Optional[List[str]] = None, file_system: Optional[FileSystem] = None) -> int:
    settings = load_settings()
    args = build_parser(settings).parse_args(argv)
    log_utils.set_verbose(args.verbose)
    try:
        return _COMMANDS[args.command](args, file_system or PhysicalFileSystem())
    except KeyboardInterrupt:
        log_utils.error("Interrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
