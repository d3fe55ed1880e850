"""Command-line interface: argument parsing and the program entry point."""

from __future__ import annotations

import argparse
import logging
import os
import re
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from .handling import AmalgamateError, ErrorHandling, parse_error_handling
from .inlining import InliningFilter, InvertibleGlob, parse_glob
from .process import ErrorHandlingOpts, Processor
from .resolve import IncludeResolver

logger = logging.getLogger(__name__)

VERSION = "1.0.1"
TRACE = 5
OFF = logging.CRITICAL + 1

_BOTH = "both"
_QUOTE = "quote"
_SYSTEM = "system"
_HANDLER_NAME = "amalgamate-cli"

_DESCRIPTION = (
    "Recursively combines C++ source files and the headers they include into a "
    "single output file. It tracks which headers have been included and skips any "
    "further references to them. Which includes are inlined and which are left as "
    "is can be precisely controlled."
)


@dataclass(frozen=True)
class Options:
    """Parsed command-line options."""

    files: list[Path]
    output: Path | None = None
    search_dirs: list[tuple[str, Path]] = field(default_factory=list)
    filters: list[tuple[str, InvertibleGlob]] = field(default_factory=list)
    unresolvable_include: ErrorHandling | None = None
    unresolvable_quote_include: ErrorHandling | None = None
    unresolvable_system_include: ErrorHandling | None = None
    cyclic_include: ErrorHandling | None = None
    verbose: int = 0
    quiet: int = 0
    line_directives: bool = False

    def quote_search_dirs(self) -> list[Path]:
        """Shared and quote-only search dirs, in command-line order."""
        return [path for kind, path in self.search_dirs if kind in (_BOTH, _QUOTE)]

    def system_search_dirs(self) -> list[Path]:
        """Shared and system-only search dirs, in command-line order."""
        return [path for kind, path in self.search_dirs if kind in (_BOTH, _SYSTEM)]

    def quote_filter_globs(self) -> list[InvertibleGlob]:
        """Globs from --filter and --filter-quote, in command-line order."""
        return [glob for kind, glob in self.filters if kind in (_BOTH, _QUOTE)]

    def system_filter_globs(self) -> list[InvertibleGlob]:
        """Globs from --filter and --filter-system, in command-line order."""
        return [glob for kind, glob in self.filters if kind in (_BOTH, _SYSTEM)]

    def unresolvable_quote_include_handling(self) -> ErrorHandling:
        return (
            self.unresolvable_include
            or self.unresolvable_quote_include
            or ErrorHandling.IGNORE
        )

    def unresolvable_system_include_handling(self) -> ErrorHandling:
        return (
            self.unresolvable_include
            or self.unresolvable_system_include
            or ErrorHandling.IGNORE
        )

    def cyclic_include_handling(self) -> ErrorHandling:
        return self.cyclic_include or ErrorHandling.ERROR

    def log_level(self) -> int:
        """The logging level selected by -v and -q."""
        delta = self.verbose - self.quiet
        if delta <= -2:
            return OFF
        if delta >= 3:
            return TRACE
        return {
            -1: logging.ERROR,
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG,
        }[delta]


class _Ordered(argparse.Action):
    """Appends ``(kind, value)`` so that related options keep their relative order."""

    def __call__(self, parser, namespace, values, option_string=None):
        items = list(getattr(namespace, self.dest, None) or [])
        items.append((self.const, values))
        setattr(namespace, self.dest, items)


def _checked(convert: Callable[[str], object]) -> Callable[[str], object]:
    def converter(text: str) -> object:
        try:
            return convert(text)
        except (AmalgamateError, re.error) as exc:
            raise argparse.ArgumentTypeError(str(exc)) from exc

    converter.__name__ = getattr(convert, "__name__", "value")
    return converter


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="amalgamate", description=_DESCRIPTION)
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("files", nargs="+", type=Path, metavar="FILES",
                        help="Source files to process")
    parser.add_argument("-o", "--output", type=Path, metavar="file",
                        help="Redirect output to a file")

    for flags, kind, text in (
        (("-d", "--dir"), _BOTH, "both system and quote includes"),
        (("--dir-quote",), _QUOTE, "quote includes"),
        (("--dir-system",), _SYSTEM, "system includes"),
    ):
        parser.add_argument(*flags, dest="search_dirs", action=_Ordered, const=kind,
                            type=Path, metavar="dir",
                            help=f"Add a search directory for {text}")

    glob_type = _checked(parse_glob)
    for flags, kind, text in (
        (("-f", "--filter"), _BOTH, "Filter which includes are inlined; a leading '!' "
                                    "re-admits files, the last matching glob wins"),
        (("--filter-quote",), _QUOTE, "Like --filter, but only for quote includes"),
        (("--filter-system",), _SYSTEM, "Like --filter, but only for system includes"),
    ):
        parser.add_argument(*flags, dest="filters", action=_Ordered, const=kind,
                            type=glob_type, metavar="glob", help=text)

    handling_type = _checked(parse_error_handling)
    parser.add_argument("--unresolvable-include", type=handling_type, metavar="handling",
                        help="How to handle an unresolvable include: error, warn or "
                             "ignore (the default)")
    parser.add_argument("--unresolvable-quote-include", type=handling_type,
                        metavar="handling",
                        help="Like --unresolvable-include, only for quote includes")
    parser.add_argument("--unresolvable-system-include", type=handling_type,
                        metavar="handling",
                        help="Like --unresolvable-include, only for system includes")
    parser.add_argument("--cyclic-include", type=handling_type, metavar="handling",
                        help="How to handle a cyclic include: error (the default), "
                             "warn or ignore")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="count", default=0,
                           help="Increase the verbosity of the output (repeatable)")
    verbosity.add_argument("-q", "--quiet", action="count", default=0,
                           help="Report only errors (-q) or nothing (-qq)")
    parser.add_argument("--line-directives", action="store_true",
                        help="Add #line directives")
    return parser


def parse_args(argv: list[str] | None = None) -> Options:
    """Parse command-line arguments; print help and exit when none are given."""
    args = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    if not args:
        sys.stderr.write(parser.format_help())
        raise SystemExit(2)

    ns = parser.parse_intermixed_args(args)
    if ns.unresolvable_include is not None and (
        ns.unresolvable_quote_include is not None
        or ns.unresolvable_system_include is not None
    ):
        parser.error(
            "--unresolvable-include cannot be used with "
            "--unresolvable-quote-include or --unresolvable-system-include"
        )

    return Options(
        files=list(ns.files),
        output=ns.output,
        search_dirs=list(ns.search_dirs or []),
        filters=list(ns.filters or []),
        unresolvable_include=ns.unresolvable_include,
        unresolvable_quote_include=ns.unresolvable_quote_include,
        unresolvable_system_include=ns.unresolvable_system_include,
        cyclic_include=ns.cyclic_include,
        verbose=ns.verbose,
        quiet=ns.quiet,
        line_directives=ns.line_directives,
    )


def run(options: Options, writer: TextIO) -> None:
    """Amalgamate every source file named in ``options`` into ``writer``."""
    resolver = IncludeResolver(options.quote_search_dirs(), options.system_search_dirs())
    inlining_filter = InliningFilter(options.quote_filter_globs(), options.system_filter_globs())
    error_handling_opts = ErrorHandlingOpts(
        cyclic_include=options.cyclic_include_handling(),
        unresolvable_quote_include=options.unresolvable_quote_include_handling(),
        unresolvable_system_include=options.unresolvable_system_include_handling(),
    )
    processor = Processor(
        writer, resolver, options.line_directives, inlining_filter, error_handling_opts
    )
    for source_file in options.files:
        processor.process(source_file)


def _configure_logging(level: int) -> None:
    logging.addLevelName(TRACE, "TRACE")
    package_logger = logging.getLogger(__name__.rpartition(".")[0] or __name__)
    for handler in list(package_logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            package_logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    if os.environ.get("AMALGAMATE_LOG_VERBOSE"):
        fmt = "[%(asctime)s %(levelname)s %(name)s] %(message)s"
    else:
        fmt = "[%(levelname)s] %(message)s"
    handler.setFormatter(logging.Formatter(fmt))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False


def _describe(error: BaseException) -> str:
    parts = []
    current: BaseException | None = error
    while current is not None:
        text = str(current).rstrip("\n")
        if text:
            parts.append(text)
        current = current.__cause__
    return ": ".join(parts)


def main(argv: list[str] | None = None) -> int:
    """Run the command line; return the exit status."""
    options = parse_args(argv)
    _configure_logging(options.log_level())
    try:
        if options.output is not None:
            logger.info("Writing to %s", options.output)
            try:
                out = open(options.output, "w", encoding="utf-8", newline="")
            except OSError as exc:
                raise AmalgamateError("Failed to open output file") from exc
            with out:
                run(options, out)
        else:
            logger.info("Writing to terminal")
            run(options, sys.stdout)
            sys.stdout.flush()
    except AmalgamateError as exc:
        logger.error("%s", _describe(exc))
        return 1
    return 0