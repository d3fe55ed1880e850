"""Deciding which resolved includes are inlined."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from .handling import AmalgamateError, debug_file_name

logger = logging.getLogger(__name__)


def _translate_class(pattern: str, start: int) -> tuple[str, int]:
    """Translate a ``[...]`` class starting at ``start``; return regex and next index."""
    n = len(pattern)
    j = start + 1
    negated = False
    if j < n and pattern[j] in "!^":
        negated = True
        j += 1
    items: list[str] = []
    first = True
    while j < n and (pattern[j] != "]" or first):
        first = False
        c = pattern[j]
        if j + 2 < n and pattern[j + 1] == "-" and pattern[j + 2] != "]":
            end = pattern[j + 2]
            if c > end:
                raise AmalgamateError(f"invalid range '{c}-{end}' in glob '{pattern}'")
            items.append(f"{re.escape(c)}-{re.escape(end)}")
            j += 3
        else:
            items.append(re.escape(c))
            j += 1
    if j >= n:
        raise AmalgamateError(f"unclosed character class in glob '{pattern}'")
    return "[" + ("^" if negated else "") + "".join(items) + "]", j + 1


def glob_to_regex(pattern: str) -> str:
    """Translate a glob into a regular expression matching whole paths.

    ``*`` and ``?`` also match ``/``; ``**`` as a whole path component
    matches any number of directories.
    """
    out: list[str] = []
    n = len(pattern)
    i = 0
    in_alternation = False
    while i < n:
        c = pattern[i]
        if c == "\\":
            if i + 1 >= n:
                raise AmalgamateError(f"dangling '\\' in glob '{pattern}'")
            out.append(re.escape(pattern[i + 1]))
            i += 2
        elif c == "*":
            j = i
            while j < n and pattern[j] == "*":
                j += 1
            prev_ok = i == 0 or pattern[i - 1] == "/"
            next_ok = j == n or pattern[j] == "/"
            if j - i == 2 and prev_ok and next_ok:
                if i == 0 and j == n:
                    out.append(".*")
                    i = j
                elif i == 0:
                    out.append("(?:/?|.*/)")
                    i = j + 1
                elif j == n:
                    out.append(".*")
                    i = j
                else:
                    out.append("(?:.*/)?")
                    i = j + 1
            else:
                out.append(".*")
                i = j
        elif c == "?":
            out.append(".")
            i += 1
        elif c == "[":
            regex, i = _translate_class(pattern, i)
            out.append(regex)
        elif c == "{":
            if in_alternation:
                raise AmalgamateError(f"nested alternates in glob '{pattern}'")
            in_alternation = True
            out.append("(?:")
            i += 1
        elif c == "}":
            if not in_alternation:
                raise AmalgamateError(f"unopened alternates in glob '{pattern}'")
            in_alternation = False
            out.append(")")
            i += 1
        elif c == "," and in_alternation:
            out.append("|")
            i += 1
        else:
            out.append(re.escape(c))
            i += 1
    if in_alternation:
        raise AmalgamateError(f"unclosed alternates in glob '{pattern}'")
    return "".join(out)


@dataclass(frozen=True)
class InvertibleGlob:
    """A glob that excludes matching files, or re-admits them when inverted."""

    glob: str
    inverted: bool = False
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_regex", re.compile(glob_to_regex(self.glob), re.DOTALL))

    def matches(self, path: str | os.PathLike[str]) -> bool:
        """Whether the glob matches the whole of ``path``."""
        return self._regex.fullmatch(os.fspath(path)) is not None


def parse_glob(text: str) -> InvertibleGlob:
    """Parse a glob, where a leading ``!`` marks it as inverted."""
    if text.startswith("!"):
        return InvertibleGlob(text[1:], inverted=True)
    return InvertibleGlob(text)


class InliningFilter:
    """Applies ordered globs to decide whether an include is inlined."""

    def __init__(
        self,
        quote_globs: Iterable[InvertibleGlob],
        system_globs: Iterable[InvertibleGlob],
    ) -> None:
        self._quote = list(quote_globs)
        self._system = list(system_globs)
        logger.debug("Quote ignore globs: %s", [g.glob for g in self._quote])
        logger.debug("System ignore globs: %s", [g.glob for g in self._system])

    def should_inline(self, path: str | os.PathLike[str], is_system: bool) -> bool:
        """Whether ``path`` should be inlined; the last matching glob decides."""
        globs = self._system if is_system else self._quote
        name = debug_file_name(path)
        for glob in reversed(globs):
            if glob.matches(path):
                if glob.inverted:
                    logger.debug("Inlining %r (cause: '%s')", name, glob.glob)
                    return True
                logger.debug("Not inlining %r (cause: '%s')", name, glob.glob)
                return False
        logger.debug("Inlining %r by default", name)
        return True