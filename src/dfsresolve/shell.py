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

"""Shell-style file operations over a namespace.

:class:`ShellFacade` composes :class:`PatternResolver` expansion with the
primitive operations of a principal-scoped client. Pattern-accepting
operations expand the pattern first (relative patterns are qualified under
the principal's home) and fail with :class:`NotFoundError` when nothing
matches. Recursive variants re-expand each matched directory with a
trailing ``**``.

Operations that touch several entries are not atomic. When one entry
fails, entries already processed stay mutated, the remaining ones are left
untouched and :class:`PartialOperationFailure` reports exactly what
completed::

    shell = ShellFacade(identity, principal="alice")
    try:
        shell.remove("/data/tmp-*", recursive=True)
    except PartialOperationFailure as e:
        cleanup(e.completed, e.failed_path)
"""

from __future__ import annotations

import builtins
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from .errors import NotFoundError, PartialOperationFailure
from .executor import Executor
from .identity import IdentityContext, ScopedClient
from .logging import StructuredLogger, get_logger
from .namespace import (
    ROOT,
    NamespaceEntry,
    join_path,
    normalize_path,
    parent_path,
    split_segments,
)
from .pattern import has_wildcards, literal_pattern
from .resolver import PatternResolver
from .resource import ResourceHandle

__all__ = ["ShellFacade", "parse_mode"]

logger: StructuredLogger = get_logger(__name__, context={"component": "shell"})


def parse_mode(mode: int | str) -> int:
    """Return permission bits from an int or an octal string (``"755"``).

    Raises:
        ValueError: ``mode`` is not an octal number within ``0o7777``.
    """
    if isinstance(mode, str):
        text = mode.strip().lower().removeprefix("0o")
        try:
            bits = int(text, 8)
        except ValueError:
            msg = f"Invalid octal permission mode: {mode!r}"
            raise ValueError(msg) from None
    else:
        bits = mode
    if not 0 <= bits <= 0o7777:
        msg = f"Permission mode out of range: {mode!r}"
        raise ValueError(msg)
    return bits


def _outermost(matches: Sequence[NamespaceEntry]) -> list[NamespaceEntry]:
    """Drop matches lying below another matched directory.

    Recursive operations reach those entries through the ancestor's
    subtree, so applying the primitive to them again would act twice.
    """
    directories = {m.path for m in matches if m.is_directory}
    kept: list[NamespaceEntry] = []
    for match in matches:
        ancestor = match.path
        while ancestor != ROOT:
            ancestor = parent_path(ancestor)
            if ancestor in directories:
                break
        else:
            kept.append(match)
    return kept


class _Progress:
    """Tracks completed paths of one multi-entry operation."""

    def __init__(self, operation: str, pattern: str) -> None:
        self.operation = operation
        self.pattern = pattern
        self.completed: list[str] = []

    @contextmanager
    def step(self, path: str, *, record: bool = True) -> Iterator[None]:
        try:
            yield
        except OSError as error:
            logger.warning(
                "Shell operation failed partway.",
                event="shell.partial_failure",
                context={
                    "operation": self.operation,
                    "pattern": self.pattern,
                    "failed_path": path,
                    "completed": len(self.completed),
                },
            )
            raise PartialOperationFailure(
                operation=self.operation,
                pattern=self.pattern,
                completed=self.completed,
                failed_path=path,
                cause=error,
            ) from error
        if record:
            self.completed.append(path)


class ShellFacade:
    """Recursive copy, remove, chmod and friends for one principal."""

    def __init__(
        self,
        identity: IdentityContext,
        *,
        principal: str | None = None,
        executor: Executor | None = None,
        use_codecs: bool = True,
    ) -> None:
        self._identity = identity
        self._principal = identity.principal(principal)
        self._client = identity.client_for(self._principal)
        self._resolver = PatternResolver(self._client, executor=executor)
        self._use_codecs = use_codecs

    @property
    def principal(self) -> str:
        return self._principal

    @property
    def client(self) -> ScopedClient:
        return self._client

    # --- Pattern operations ---

    def remove(self, pattern: str, *, recursive: bool = False) -> builtins.list[str]:
        """Delete every match; directories require ``recursive``.

        Directory contents are deleted children first; matches inside a
        matched directory are removed with it. Returns the deleted paths in
        deletion order.

        Raises:
            NotFoundError: Nothing matches ``pattern``.
            PartialOperationFailure: A deletion failed.
        """
        matches = self._expand(pattern, "remove")
        if recursive:
            matches = _outermost(matches)
        progress = _Progress("remove", pattern)
        for match in matches:
            if not match.is_directory:
                with progress.step(match.path):
                    self._client.delete(match.path)
                continue
            with progress.step(match.path):
                if not recursive:
                    msg = f"Is a directory (use recursive): {match.path}"
                    raise IsADirectoryError(msg)
                subtree = self._subtree(match.path)
                for entry in reversed(subtree[1:]):
                    with progress.step(entry.path):
                        self._client.delete(entry.path)
                self._client.delete(match.path)
        return progress.completed

    def copy(self, src_pattern: str, dst: str) -> builtins.list[str]:
        """Copy every match of ``src_pattern`` to ``dst``.

        With several matches ``dst`` must be an existing directory; each
        source lands under it by name. Directories are copied recursively,
        so matches inside a matched directory are not copied a second time.
        Returns the created destination paths.

        Raises:
            NotFoundError: Nothing matches, or several sources and no ``dst``.
            NotADirectoryError: Several sources and ``dst`` is a file.
            PartialOperationFailure: A copy failed.
        """
        sources = _outermost(self._expand(src_pattern, "copy"))
        progress = _Progress("copy", src_pattern)
        for source, target in self._targets(sources, dst):
            if not source.is_directory:
                with progress.step(target):
                    _ = self._client.copy(source.path, target)
                continue
            with progress.step(source.path, record=False):
                subtree = self._subtree(source.path)
            for entry in subtree:
                relative = entry.path[len(source.path) :]
                destination = normalize_path(target + relative)
                with progress.step(destination):
                    if entry.is_directory:
                        _ = self._client.mkdir(destination)
                    else:
                        _ = self._client.copy(entry.path, destination)
        return progress.completed

    def move(self, src_pattern: str, dst: str) -> builtins.list[str]:
        """Rename every match of ``src_pattern`` to or under ``dst``."""
        sources = _outermost(self._expand(src_pattern, "move"))
        progress = _Progress("move", src_pattern)
        for source, target in self._targets(sources, dst):
            with progress.step(target):
                _ = self._client.rename(source.path, target)
        return progress.completed

    def change_permissions(
        self, mode: int | str, pattern: str, *, recursive: bool = False
    ) -> builtins.list[str]:
        """Set permission bits on every match (and its subtree if recursive)."""
        bits = parse_mode(mode)
        matches = self._expand(pattern, "chmod")
        if recursive:
            matches = _outermost(matches)
        progress = _Progress("chmod", pattern)
        for match in matches:
            entries: Sequence[NamespaceEntry] = (match,)
            if recursive and match.is_directory:
                with progress.step(match.path, record=False):
                    entries = self._subtree(match.path)
            for entry in entries:
                with progress.step(entry.path):
                    _ = self._client.set_permissions(entry.path, bits)
        return progress.completed

    def list(self, path: str) -> builtins.list[NamespaceEntry]:
        """List matches; a matched directory contributes its children."""
        listing: builtins.list[NamespaceEntry] = []
        for match in self._expand(path, "list"):
            if match.is_directory:
                listing.extend(self._client.list_children(match.path))
            else:
                listing.append(match)
        return listing

    def list_recursive(self, path: str) -> builtins.list[NamespaceEntry]:
        """List every descendant of each match, ordered by path segments."""
        listing: builtins.list[NamespaceEntry] = []
        for match in self._expand(path, "list_recursive"):
            if not match.is_directory:
                listing.append(match)
                continue
            subtree = self._subtree(match.path)[1:]
            listing.extend(sorted(subtree, key=lambda e: split_segments(e.path)))
        return listing

    def du(self, pattern: str) -> dict[str, int]:
        """Return the total file size below each match, keyed by match path."""
        usage: dict[str, int] = {}
        for match in self._expand(pattern, "du"):
            if match.is_directory:
                usage[match.path] = sum(
                    e.size for e in self._subtree(match.path) if e.is_file
                )
            else:
                usage[match.path] = match.size
        return usage

    def read_all(self, path: str) -> bytes:
        """Return the raw content of every matched file, concatenated."""
        chunks: builtins.list[bytes] = []
        for match in self._expand(path, "read_all"):
            with self._client.open(match.path) as stream:
                chunks.append(stream.read())
        return b"".join(chunks)

    def text(self, path: str, *, encoding: str = "utf-8") -> str:
        """Like :meth:`read_all`, decoding compressed files and the text."""
        return "".join(
            self._handle(match.path).read_bytes().decode(encoding)
            for match in self._expand(path, "text")
        )

    # --- Single-path operations ---

    def test(self, path: str, *, directory: bool = False, zero: bool = False) -> bool:
        """Shell ``test``: existence, or ``-d`` / ``-z`` with the flags.

        A path with wildcards is true when any match satisfies the test.

        Raises:
            ValueError: Both ``directory`` and ``zero`` were requested.
        """
        if directory and zero:
            msg = "test accepts at most one of directory or zero"
            raise ValueError(msg)
        qualified = self._qualify(path)
        if has_wildcards(path):
            candidates = self._resolver.expand(qualified)
        else:
            try:
                candidates = [self._client.stat(qualified)]
            except NotFoundError:
                return False
        if directory:
            return any(entry.is_directory for entry in candidates)
        if zero:
            return any(entry.is_file and entry.size == 0 for entry in candidates)
        return bool(candidates)

    def mkdir(self, path: str) -> NamespaceEntry:
        """Create ``path`` and any missing parents."""
        return self._client.mkdir(self._qualify(path))

    def touchz(self, path: str) -> NamespaceEntry:
        """Create an empty file; an existing non-empty file is an error."""
        qualified = self._qualify(path)
        try:
            existing = self._client.stat(qualified)
        except NotFoundError:
            existing = None
        if existing is not None and (existing.is_directory or existing.size):
            msg = f"Not a zero-length file: {qualified}"
            raise FileExistsError(msg)
        return self._client.create(qualified, b"")

    # --- Helpers ---

    def _qualify(self, path: str) -> str:
        return normalize_path(self._identity.qualify(path, self._principal))

    def _expand(self, pattern: str, operation: str) -> builtins.list[NamespaceEntry]:
        matches = self._resolver.expand(self._identity.qualify(pattern, self._principal))
        logger.debug(
            "Shell operation expanded.",
            event="shell.expand",
            context={
                "operation": operation,
                "pattern": pattern,
                "principal": self._principal,
                "matches": len(matches),
            },
        )
        if not matches:
            msg = f"{operation}: no such file or directory: {pattern}"
            raise NotFoundError(msg, location=pattern)
        return matches

    def _subtree(self, path: str) -> builtins.list[NamespaceEntry]:
        """Return ``path`` and its descendants, parents before children."""
        return self._resolver.expand(literal_pattern(path).with_trailing_double_star())

    def _targets(
        self, sources: Sequence[NamespaceEntry], dst: str
    ) -> builtins.list[tuple[NamespaceEntry, str]]:
        destination = self._qualify(dst)
        try:
            existing = self._client.stat(destination)
        except NotFoundError:
            existing = None
        if existing is not None and existing.is_directory:
            return [(s, join_path(destination, s.name)) for s in sources]
        if len(sources) > 1:
            if existing is None:
                msg = f"Destination directory does not exist: {destination}"
                raise NotFoundError(msg, location=dst)
            msg = f"Destination is not a directory: {destination}"
            raise NotADirectoryError(msg)
        return [(sources[0], destination)]

    def _handle(self, path: str) -> ResourceHandle:
        return ResourceHandle(path, self._client, use_codecs=self._use_codecs)
