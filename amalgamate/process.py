"""Recursive processing of source files and the headers they include."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import TextIO

from .handling import AmalgamateError, ErrorHandling, debug_file_name, handle
from .inlining import InliningFilter
from .resolve import IncludeResolver

logger = logging.getLogger(__name__)

_INCLUDE = re.compile(r'\s*#\s*include\s*(["<][^>"]+[">])\s*')
_PRAGMA_ONCE = re.compile(r"\s*#\s*pragma\s+once\s*")


class CyclicIncludeError(AmalgamateError):
    """Raised when a file ends up including itself."""

    def __init__(self, cycle: list[Path]) -> None:
        self.cycle = list(cycle)
        super().__init__(str(self))

    def __str__(self) -> str:
        lines = ["Cyclic include detected:"]
        lines.extend(f"\t{file}" for file in self.cycle)
        return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class ErrorHandlingOpts:
    """How cyclic and unresolvable includes are dealt with."""

    cyclic_include: ErrorHandling = ErrorHandling.ERROR
    unresolvable_quote_include: ErrorHandling = ErrorHandling.IGNORE
    unresolvable_system_include: ErrorHandling = ErrorHandling.IGNORE


class _IncludeHandling(Enum):
    INLINE = auto()
    REMOVE = auto()
    LEAVE = auto()


@dataclass
class _FileState:
    canonical_path: Path
    included_by: int | None
    line_num: int = 0
    in_stack: bool = True


class Processor:
    """Writes source files to ``writer`` with their includes inlined."""

    def __init__(
        self,
        writer: TextIO,
        resolver: IncludeResolver,
        line_directives: bool,
        inlining_filter: InliningFilter,
        error_handling_opts: ErrorHandlingOpts,
    ) -> None:
        self._writer = writer
        self._resolver = resolver
        self._line_directives = line_directives
        self._filter = inlining_filter
        self._opts = error_handling_opts
        self._files: list[_FileState] = []
        self._known: dict[Path, int] = {}
        self._tail: int | None = None
        self._expected_line: tuple[int | None, int] = (None, 0)

    def process(self, source_file: str | os.PathLike[str]) -> None:
        """Process one source file, inlining every header not yet seen."""
        logger.info("Processing source file %r", debug_file_name(source_file))
        try:
            canonical = Path(source_file).resolve(strict=True)
        except OSError as exc:
            raise AmalgamateError(
                f'Failed to canonicalize source file path "{source_file}"'
            ) from exc

        assert self._tail is None
        if self._push(canonical) is _IncludeHandling.INLINE:
            self._process_current()
        assert self._tail is None

    def _push(self, canonical_path: Path) -> _IncludeHandling:
        idx = self._known.get(canonical_path)
        if idx is None:
            self._known[canonical_path] = len(self._files)
            self._files.append(_FileState(canonical_path, self._tail))
            self._tail = len(self._files) - 1
            logger.info("Processing %r", debug_file_name(canonical_path))
            return _IncludeHandling.INLINE

        if self._files[idx].in_stack:
            assert self._tail is not None, "cannot get include cycles with an empty stack"
            cycle = [self._files[self._tail].canonical_path]
            current = self._tail
            while current != idx:
                current = self._files[current].included_by
                cycle.append(self._files[current].canonical_path)
            error = CyclicIncludeError(cycle)
            if self._opts.cyclic_include is ErrorHandling.ERROR:
                raise error
            handle(self._opts.cyclic_include, str(error))
            return _IncludeHandling.REMOVE

        logger.debug("Skipping %r, already included", debug_file_name(canonical_path))
        return _IncludeHandling.REMOVE

    def _process_current(self) -> None:
        state = self._files[self._tail]
        path = state.canonical_path
        current_dir = path.parent
        try:
            reader = open(path, "rb")
        except OSError as exc:
            raise AmalgamateError(f'Failed to open file "{path}"') from exc

        with reader:
            while True:
                try:
                    raw = reader.readline()
                    line = raw.decode("utf-8")
                except (OSError, UnicodeDecodeError) as exc:
                    raise AmalgamateError(f'Failed to read from "{path}"') from exc
                if not raw:
                    break
                self._process_line(line, current_dir)

        state.in_stack = False
        self._tail = state.included_by

    def _process_line(self, line: str, current_dir: Path) -> None:
        self._files[self._tail].line_num += 1
        if _PRAGMA_ONCE.fullmatch(line):
            logger.debug("Skipping pragma once")
            return
        match = _INCLUDE.fullmatch(line)
        if match and not self._process_include(match.group(1), current_dir):
            return
        self._output(line)

    def _process_include(self, include_ref: str, current_dir: Path) -> bool:
        """Return whether the include statement itself is kept in the output."""
        inner = include_ref[1:-1]
        if include_ref.startswith('"') and include_ref.endswith('"'):
            resolved = self._resolver.resolve_quote(inner, current_dir)
        elif include_ref.startswith("<") and include_ref.endswith(">"):
            resolved = self._resolver.resolve_system(inner)
        else:
            logger.debug("Found weird include-like statement: %s", include_ref)
            return True
        is_system = include_ref.startswith("<")

        if resolved is None:
            handling = (
                self._opts.unresolvable_system_include
                if is_system
                else self._opts.unresolvable_quote_include
            )
            handle(handling, f"Could not resolve {include_ref}")
            return True

        if not self._filter.should_inline(resolved, is_system):
            return True

        result = self._push(resolved)
        if result is _IncludeHandling.INLINE:
            self._process_current()
            return False
        return result is _IncludeHandling.LEAVE

    def _output(self, line: str) -> None:
        try:
            if self._line_directives:
                state = self._files[self._tail]
                current = (self._tail, state.line_num)
                if current != self._expected_line:
                    shown = str(state.canonical_path).replace("\\", "/")
                    self._writer.write(f'#line {state.line_num} "{shown}"\n')
                self._expected_line = (self._tail, state.line_num + 1)
            self._writer.write(line)
        except OSError as exc:
            raise AmalgamateError("Failed writing to output") from exc