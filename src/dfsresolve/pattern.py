# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Glob path patterns and segment-wise matching.

A pattern is split on ``/`` into segments, each tagged by the wildcard it
uses:

- ``LITERAL``: no wildcard, compared by exact (case-sensitive) equality
- ``STAR``: contains ``*``; matches any run of characters within a segment
- ``QUESTION``: contains ``?`` or a ``[...]`` class but no ``*``; each
  wildcard stands for exactly one character
- ``DOUBLE_STAR``: exactly ``**``; matches zero or more whole segments

``STAR`` and ``QUESTION`` segments use :func:`fnmatch.fnmatchcase`, so the
segment delimiter can never be matched by them.

Example::

    pattern = parse_pattern("/data/**/*.txt")
    matches(pattern, ["data", "b", "c", "c.txt"])  # True
    matches(pattern, ["data", "a.txt"])  # True, ``**`` matched zero segments
"""

from __future__ import annotations

import fnmatch
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Final

from .errors import MalformedPatternError
from .namespace import ROOT, SEPARATOR, normalize_path, split_segments

_WILDCARD_CHARS: Final = frozenset("*?[")
_DOUBLE_STAR: Final = "**"


class SegmentKind(Enum):
    """Wildcard class of one pattern segment."""

    LITERAL = "literal"
    STAR = "star"
    QUESTION = "question"
    DOUBLE_STAR = "double_star"


@dataclass(slots=True, frozen=True)
class PatternSegment:
    """One ``/``-delimited unit of a path pattern."""

    text: str
    kind: SegmentKind

    def matches_name(self, name: str) -> bool:
        """Match a single candidate segment; ``DOUBLE_STAR`` matches any."""
        if self.kind is SegmentKind.LITERAL:
            return self.text == name
        if self.kind is SegmentKind.DOUBLE_STAR:
            return True
        return fnmatch.fnmatchcase(name, self.text)


@dataclass(slots=True, frozen=True)
class PathPattern:
    """Parsed, normalized glob pattern.

    Attributes:
        source: The pattern text as supplied by the caller.
        segments: Ordered segments below the root.
    """

    source: str
    segments: tuple[PatternSegment, ...]

    @property
    def has_wildcards(self) -> bool:
        return any(s.kind is not SegmentKind.LITERAL for s in self.segments)

    def literal_prefix(self) -> tuple[str, PathPattern]:
        """Split into the longest wildcard-free prefix path and the remainder.

        Example::

            parse_pattern("/data/logs/*/part-?").literal_prefix()
            # ("/data/logs", PathPattern(segments=(*, part-?)))
        """
        index = next(
            (
                position
                for position, segment in enumerate(self.segments)
                if segment.kind is not SegmentKind.LITERAL
            ),
            len(self.segments),
        )
        prefix = ROOT + SEPARATOR.join(s.text for s in self.segments[:index])
        return prefix, PathPattern(source=self.source, segments=self.segments[index:])

    def with_trailing_double_star(self) -> PathPattern:
        """Return this pattern extended with a final ``**`` segment."""
        if self.segments and self.segments[-1].kind is SegmentKind.DOUBLE_STAR:
            return self
        tail = PatternSegment(_DOUBLE_STAR, SegmentKind.DOUBLE_STAR)
        return PathPattern(
            source=f"{self.source.rstrip(SEPARATOR)}{SEPARATOR}{_DOUBLE_STAR}",
            segments=(*self.segments, tail),
        )

    def __str__(self) -> str:
        return ROOT + SEPARATOR.join(s.text for s in self.segments)


def has_wildcards(text: str) -> bool:
    """True if ``text`` contains any glob metacharacter."""

    return any(char in _WILDCARD_CHARS for char in text)


def classify_segment(text: str, *, pattern: str) -> PatternSegment:
    """Tag a raw segment with its :class:`SegmentKind`.

    Raises:
        MalformedPatternError: ``**`` is fused with other characters.
    """
    if text == _DOUBLE_STAR:
        return PatternSegment(text, SegmentKind.DOUBLE_STAR)
    if _DOUBLE_STAR in text:
        msg = f"'**' must be a whole path segment in pattern '{pattern}' (got '{text}')"
        raise MalformedPatternError(msg, location=pattern)
    if "*" in text:
        return PatternSegment(text, SegmentKind.STAR)
    if "?" in text or "[" in text:
        return PatternSegment(text, SegmentKind.QUESTION)
    return PatternSegment(text, SegmentKind.LITERAL)


def parse_pattern(text: str) -> PathPattern:
    """Parse an absolute pattern string into a :class:`PathPattern`.

    The text is normalized first (duplicate slashes, ``.`` and ``..``
    segments), so ``/data//b/../*`` parses as ``/data/*``.

    Raises:
        MalformedPatternError: Empty pattern or a fused ``**`` segment.
    """
    if not text:
        msg = "Pattern must not be empty"
        raise MalformedPatternError(msg, location=text)
    segments = tuple(
        classify_segment(raw, pattern=text)
        for raw in split_segments(normalize_path(text))
    )
    return PathPattern(source=text, segments=segments)


def literal_pattern(path: str) -> PathPattern:
    """Build a pattern matching exactly ``path``.

    Every segment is ``LITERAL`` even when it contains glob metacharacters,
    so concrete paths returned by an earlier expansion can be walked again.
    """
    normalized = normalize_path(path)
    segments = tuple(
        PatternSegment(raw, SegmentKind.LITERAL) for raw in split_segments(normalized)
    )
    return PathPattern(source=normalized, segments=segments)


def matches(pattern: PathPattern, candidate: Sequence[str]) -> bool:
    """Return True if ``candidate`` segments match ``pattern`` entirely.

    ``DOUBLE_STAR`` first tries to consume zero segments, then one more
    segment at a time, backtracking until both sequences are consumed.
    Candidates must already be normalized.
    """
    segments = pattern.segments
    failed: set[tuple[int, int]] = set()

    def match_from(p: int, c: int) -> bool:
        if (p, c) in failed:
            return False
        if p == len(segments):
            result = c == len(candidate)
        elif segments[p].kind is SegmentKind.DOUBLE_STAR:
            result = match_from(p + 1, c) or (
                c < len(candidate) and match_from(p, c + 1)
            )
        else:
            result = (
                c < len(candidate)
                and segments[p].matches_name(candidate[c])
                and match_from(p + 1, c + 1)
            )
        if not result:
            failed.add((p, c))
        return result

    return match_from(0, 0)


__all__ = [
    "PathPattern",
    "PatternSegment",
    "SegmentKind",
    "classify_segment",
    "has_wildcards",
    "literal_pattern",
    "matches",
    "parse_pattern",
]
