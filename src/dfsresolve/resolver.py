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

"""Pattern expansion against a remote namespace.

``PatternResolver`` walks the namespace guided by a :class:`PathPattern`
without ever materializing the full tree. Work items on the *frontier* pair
an entry with the index of the next pattern segment to consume:

- Pattern consumed: the entry is a match.
- ``LITERAL``: one ``stat`` for the exact child (or a lookup in a listing
  already fetched during this expansion).
- ``STAR`` / ``QUESTION``: one listing; every child whose name matches
  advances to the next segment.
- ``DOUBLE_STAR``: the entry itself advances past ``**`` (zero segments) and
  every child stays on ``**`` (one or more segments).

The frontier is processed in waves. Before a wave runs, the listings it
needs are submitted to the executor together, so a thread pool lists
sibling directories in parallel. Listings are memoized per expansion in an
in-flight map of futures keyed by path: each directory is listed at most once
per ``expand`` call, however many frontier items reach it.

Results are deduplicated by path and returned in discovery order.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .errors import NamespaceUnavailableError
from .executor import Executor, Future, InlineExecutor
from .logging import StructuredLogger, get_logger
from .namespace import NamespaceClient, NamespaceEntry, join_path, normalize_path
from .pattern import PathPattern, SegmentKind, parse_pattern

__all__ = ["PatternResolver"]

logger: StructuredLogger = get_logger(__name__, context={"component": "resolver"})

_WorkItem = tuple[NamespaceEntry, int]


class PatternResolver:
    """Expand glob patterns into concrete namespace entries.

    Example::

        resolver = PatternResolver(client)
        for entry in resolver.expand("/data/**/*.txt"):
            print(entry.path, entry.size)
    """

    def __init__(
        self,
        client: NamespaceClient,
        *,
        executor: Executor | None = None,
    ) -> None:
        self._client = client
        self._executor = executor if executor is not None else InlineExecutor()

    @property
    def client(self) -> NamespaceClient:
        return self._client

    def expand(
        self, pattern: PathPattern | str, root: str = "/"
    ) -> list[NamespaceEntry]:
        """Return every entry under ``root`` matching ``pattern``.

        Pattern segments are applied below ``root``; with the default root an
        absolute pattern is matched from the top of the namespace. A missing
        literal segment is simply no match.

        Raises:
            MalformedPatternError: ``pattern`` text cannot be parsed.
            NamespaceUnavailableError: A required stat or listing failed. No
                partial result is returned.
        """
        parsed = parse_pattern(pattern) if isinstance(pattern, str) else pattern
        expansion = _Expansion(
            client=self._client, executor=self._executor, pattern=parsed
        )
        matches = expansion.run(normalize_path(root))
        logger.debug(
            "Pattern expanded.",
            event="resolver.expand",
            context={
                "pattern": parsed.source,
                "root": root,
                "matches": len(matches),
                "listings": len(expansion.listings),
            },
        )
        return matches


@dataclass(slots=True)
class _Expansion:
    """State of one ``expand`` call."""

    client: NamespaceClient
    executor: Executor
    pattern: PathPattern
    listings: dict[str, Future[Sequence[NamespaceEntry]]] = field(
        default_factory=dict[str, Future[Sequence[NamespaceEntry]]]
    )
    visited: set[tuple[str, int]] = field(default_factory=set[tuple[str, int]])
    results: dict[str, NamespaceEntry] = field(default_factory=dict[str, NamespaceEntry])
    lock: threading.Lock = field(default_factory=threading.Lock)

    def run(self, root: str) -> list[NamespaceEntry]:
        prefix, remainder = self.pattern.literal_prefix()
        start = self._stat(join_path(root, prefix.lstrip("/")))
        if start is None:
            return []
        segments = remainder.segments
        frontier: deque[_WorkItem] = deque([(start, 0)])
        while frontier:
            wave = list(frontier)
            frontier.clear()
            self._prefetch(wave, remainder)
            for entry, index in wave:
                if index == len(segments):
                    _ = self.results.setdefault(entry.path, entry)
                    continue
                frontier.extend(self._advance(entry, index, remainder))
        return list(self.results.values())

    def _advance(
        self, entry: NamespaceEntry, index: int, pattern: PathPattern
    ) -> Iterable[_WorkItem]:
        key = (entry.path, index)
        if key in self.visited:
            return ()
        self.visited.add(key)
        segment = pattern.segments[index]
        if segment.kind is SegmentKind.DOUBLE_STAR:
            following: list[_WorkItem] = [(entry, index + 1)]
            if entry.is_directory:
                following.extend((child, index) for child in self._children(entry.path))
            return following
        if not entry.is_directory:
            return ()
        if segment.kind is SegmentKind.LITERAL:
            child = self._child(entry.path, segment.text)
            return () if child is None else ((child, index + 1),)
        return (
            (child, index + 1)
            for child in self._children(entry.path)
            if segment.matches_name(child.name)
        )

    def _prefetch(self, wave: Sequence[_WorkItem], pattern: PathPattern) -> None:
        for entry, index in wave:
            if index == len(pattern.segments) or not entry.is_directory:
                continue
            if (entry.path, index) in self.visited:
                continue
            if pattern.segments[index].kind is not SegmentKind.LITERAL:
                _ = self._listing(entry.path)

    def _listing(self, path: str) -> Future[Sequence[NamespaceEntry]]:
        with self.lock:
            pending = self.listings.get(path)
            if pending is None:
                pending = self.executor.submit(lambda: self._list(path))
                self.listings[path] = pending
            return pending

    def _children(self, path: str) -> Sequence[NamespaceEntry]:
        return self._listing(path).result()

    def _child(self, parent: str, name: str) -> NamespaceEntry | None:
        pending = self.listings.get(parent)
        if pending is not None and pending.done():
            return next((c for c in pending.result() if c.name == name), None)
        return self._stat(join_path(parent, name))

    def _list(self, path: str) -> Sequence[NamespaceEntry]:
        logger.debug(
            "Listing directory.",
            event="resolver.list",
            context={"path": path, "pattern": self.pattern.source},
        )
        try:
            return self.client.list_children(path)
        except (FileNotFoundError, NotADirectoryError):
            return ()
        except NamespaceUnavailableError:
            raise
        except OSError as error:
            raise self._unavailable(path, error) from error

    def _stat(self, path: str) -> NamespaceEntry | None:
        try:
            return self.client.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            return None
        except NamespaceUnavailableError:
            raise
        except OSError as error:
            raise self._unavailable(path, error) from error

    def _unavailable(self, path: str, error: OSError) -> NamespaceUnavailableError:
        msg = f"Namespace unavailable while expanding '{self.pattern.source}' at '{path}': {error}"
        return NamespaceUnavailableError(msg, location=self.pattern.source)
