"""Command-line grep over files, directories, zip archives or standard input.

Usage:
    streamgrep [options] PATTERN [PATH ...]

Exit status is 0 when something matched, 1 when nothing did and 2 when the
pattern is invalid.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
import logging
import sys
from typing import TextIO

from pydantic import ValidationError

from streamgrep.adapters.candidates import PathWalker
from streamgrep.config import Settings
from streamgrep.domain.search import SearchRequest
from streamgrep.observability.logging import configure_logging
from streamgrep.search.formatters import OutputMode, create_formatter
from streamgrep.search.limiter import MatchLimiter
from streamgrep.search.matcher import PatternError, compile_matcher
from streamgrep.search.scanner import ChunkScanner, ScanConfig
from streamgrep.service_layer.search_service import SearchService


logger = logging.getLogger(__name__)

STDIN_NAME = "(standard input)"
LIMIT_NOTICE = "more matches not shown due to match limit"


def build_argument_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="streamgrep",
        description="Search files for lines matching a regular expression.",
        add_help=False,
    )
    parser.add_argument("pattern", help="Regular expression to search for")
    parser.add_argument("paths", nargs="*", help="Files or directories (default: standard input)")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("-l", "--files-with-matches", action="store_true", help="Print only names of matching files")
    mode.add_argument("-c", "--count", action="store_true", help="Print the number of matches per file")

    parser.add_argument("-n", "--line-number", action="store_true", help="Prefix matches with line numbers")
    parser.add_argument("-h", "--no-filename", action="store_true", help="Do not prefix matches with file names")
    parser.add_argument("-i", "--ignore-case", action="store_true", help="Match case-insensitively")
    parser.add_argument("-F", "--fixed-strings", action="store_true", help="Treat PATTERN as literal text")
    parser.add_argument("-f", "--file-pattern", default="", help="Only search files whose names match this regex")
    parser.add_argument(
        "-A", "--after-context", type=int, default=None, metavar="NUM", help="Lines of context after each match"
    )
    parser.add_argument(
        "-B", "--before-context", type=int, default=None, metavar="NUM", help="Lines of context before each match"
    )
    parser.add_argument(
        "-C", "--context", type=int, default=None, metavar="NUM", help="Lines of context before and after"
    )
    parser.add_argument(
        "-m",
        "--max-count",
        type=int,
        default=settings.default_limit,
        metavar="NUM",
        help="Stop after NUM matches in total (default: %(default)s, 0 = unlimited)",
    )
    parser.add_argument("--html", action="store_true", help="Emit escaped HTML with links")
    parser.add_argument("--hidden", action="store_true", help="Search hidden files and directories")
    parser.add_argument(
        "--archives",
        action="store_true",
        default=settings.expand_archives,
        help="Search inside .zip archives found under PATH",
    )
    parser.add_argument(
        "--buffer-size",
        type=int,
        default=settings.buffer_size,
        help="Working buffer size in bytes (default: %(default)s)",
    )
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s)")
    parser.add_argument("--json-logs", action="store_true", default=settings.json_logs, help="Log as JSON")
    parser.add_argument("--help", action="help", help="Show this help message and exit")
    return parser


def _context_counts(args: argparse.Namespace, settings: Settings) -> tuple[int, int]:
    before = args.before_context
    after = args.after_context
    if args.context is not None:
        before = args.context if before is None else before
        after = args.context if after is None else after
    before = settings.context_before if before is None else before
    after = settings.context_after if after is None else after
    return before, after


def _output_mode(args: argparse.Namespace) -> OutputMode:
    if args.files_with_matches:
        return OutputMode.NAMES
    if args.count:
        return OutputMode.COUNTS
    return OutputMode.PLAIN


def main(
    argv: Sequence[str] | None = None,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    settings = Settings()
    args = build_argument_parser(settings).parse_args(argv)
    configure_logging(args.log_level, json_output=args.json_logs, stream=stderr)

    before, after = _context_counts(args, settings)
    try:
        request = SearchRequest(
            query=args.pattern,
            file_pattern=args.file_pattern,
            literal=args.fixed_strings,
            ignore_case=args.ignore_case,
            limit=args.max_count,
            context_before=before,
            context_after=after,
        )
        if args.buffer_size < 1:
            raise ValueError("--buffer-size must be positive")
    except (ValidationError, ValueError) as exc:
        stderr.write(f"Bad arguments: {exc}\n")
        return 2

    formatter = create_formatter(
        _output_mode(args),
        stdout,
        markup=args.html,
        show_names=not args.no_filename and bool(args.paths),
        line_numbers=args.line_number,
        context_before=before,
        context_after=after,
        pattern=args.pattern,
    )

    try:
        if not args.paths:
            matches, limited = _scan_stdin(request, formatter, args, stdin, stderr)
        else:
            service = SearchService(
                PathWalker(args.paths, include_hidden=args.hidden, expand_archives=args.archives),
                buffer_size=args.buffer_size,
            )
            summary = service.stream(request, formatter, stderr=stderr, line_numbers=args.line_number)
            matches, limited = summary.matches, summary.limited
    except PatternError as exc:
        stderr.write(f"Bad query: {exc}\n")
        return 2

    if limited:
        stderr.write(f"{LIMIT_NOTICE}\n")
    stdout.flush()
    return 0 if matches else 1


def _scan_stdin(
    request: SearchRequest,
    formatter,
    args: argparse.Namespace,
    stdin: TextIO | None,
    stderr: TextIO,
) -> tuple[int, bool]:
    matcher = compile_matcher(request.query, literal=request.literal, ignore_case=request.ignore_case)
    limiter = MatchLimiter(request.limit)
    config = ScanConfig(
        context_before=request.context_before,
        context_after=request.context_after,
        line_numbers=args.line_number,
        buffer_size=args.buffer_size,
    )
    source = (stdin or sys.stdin).buffer
    ChunkScanner(matcher, formatter, config, limiter=limiter, stderr=stderr).scan(source, STDIN_NAME)
    return limiter.matches, limiter.limited


if __name__ == "__main__":
    sys.exit(main())
