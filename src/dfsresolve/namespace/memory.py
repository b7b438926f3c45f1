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

"""In-memory namespace backend.

This module provides an in-process implementation of the ``NamespaceClient``
protocol, used as the default backend and throughout the test suite.

Example usage::

    from dfsresolve.namespace import InMemoryNamespace

    ns = InMemoryNamespace()
    ns.create("/data/a.txt", b"alpha")
    ns.create("/data/b/b.txt", b"beta")

    assert [e.name for e in ns.list_children("/data")] == ["a.txt", "b"]

    alice = ns.impersonate("alice")
    assert alice.home_directory() == "/user/alice"
"""

from __future__ import annotations

import errno
import io
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import BinaryIO

from ..clock import SYSTEM_CLOCK, WallClock
from ._path import ROOT, is_path_under, join_path, normalize_path, parent_path
from ._types import (
    DEFAULT_DIRECTORY_PERMISSION,
    DEFAULT_FILE_PERMISSION,
    EntryKind,
    NamespaceEntry,
)

__all__ = ["DEFAULT_SUPERUSER", "InMemoryNamespace"]

DEFAULT_SUPERUSER = "hdfs"


@dataclass(slots=True)
class _Node:
    """Internal representation of one namespace entry."""

    kind: EntryKind
    modified_at: datetime
    permission: int
    owner: str
    content: bytes = b""


@dataclass(slots=True)
class _Tree:
    """State shared by every impersonated view of one namespace."""

    clock: WallClock
    superuser: str
    nodes: dict[str, _Node] = field(default_factory=dict[str, _Node])
    lock: threading.RLock = field(default_factory=threading.RLock)


class InMemoryNamespace:
    """Thread-safe in-memory implementation of ``NamespaceClient``.

    Every impersonated view returned by :meth:`impersonate` shares the same
    tree; only the acting principal differs. When ``enforce_permissions`` is
    set, mutations require the acting principal to own the target's parent
    directory (or the target itself for ``set_permissions``), unless the
    directory is world-writable or the principal is the superuser.
    """

    def __init__(
        self,
        *,
        principal: str = DEFAULT_SUPERUSER,
        clock: WallClock = SYSTEM_CLOCK,
        home_prefix: str = "/user",
        superuser: str = DEFAULT_SUPERUSER,
        enforce_permissions: bool = False,
        _tree: _Tree | None = None,
    ) -> None:
        if _tree is None:
            _tree = _Tree(clock=clock, superuser=superuser)
            _tree.nodes[ROOT] = _Node(
                kind=EntryKind.DIRECTORY,
                modified_at=clock.utcnow(),
                permission=DEFAULT_DIRECTORY_PERMISSION,
                owner=superuser,
            )
        self._tree = _tree
        self._principal = principal
        self._home_prefix = normalize_path(home_prefix)
        self._enforce_permissions = enforce_permissions

    @property
    def principal(self) -> str:
        return self._principal

    def impersonate(self, principal: str) -> InMemoryNamespace:
        return InMemoryNamespace(
            principal=principal,
            home_prefix=self._home_prefix,
            enforce_permissions=self._enforce_permissions,
            _tree=self._tree,
        )

    def home_directory(self) -> str:
        return join_path(self._home_prefix, self._principal)

    # --- Read operations ---

    def stat(self, path: str) -> NamespaceEntry:
        normalized = normalize_path(path)
        with self._tree.lock:
            node = self._tree.nodes.get(normalized)
            if node is None:
                raise FileNotFoundError(path)
            return self._entry(normalized, node)

    def list_children(self, path: str) -> Sequence[NamespaceEntry]:
        normalized = normalize_path(path)
        with self._tree.lock:
            node = self._tree.nodes.get(normalized)
            if node is None:
                raise FileNotFoundError(path)
            if node.kind is EntryKind.FILE:
                msg = f"Not a directory: {path}"
                raise NotADirectoryError(msg)
            children = [
                self._entry(child_path, child)
                for child_path, child in self._tree.nodes.items()
                if child_path != normalized and parent_path(child_path) == normalized
            ]
        children.sort(key=lambda entry: entry.name)
        return children

    def open(self, path: str) -> BinaryIO:
        normalized = normalize_path(path)
        with self._tree.lock:
            node = self._tree.nodes.get(normalized)
            if node is None:
                raise FileNotFoundError(path)
            if node.kind is EntryKind.DIRECTORY:
                msg = f"Is a directory: {path}"
                raise IsADirectoryError(msg)
            return io.BytesIO(node.content)

    # --- Write operations ---

    def create(
        self, path: str, content: bytes, *, overwrite: bool = True
    ) -> NamespaceEntry:
        normalized = normalize_path(path)
        with self._tree.lock:
            existing = self._tree.nodes.get(normalized)
            if existing is not None:
                if existing.kind is EntryKind.DIRECTORY:
                    msg = f"Is a directory: {path}"
                    raise IsADirectoryError(msg)
                if not overwrite:
                    msg = f"File exists: {path}"
                    raise FileExistsError(msg)
            parent = parent_path(normalized)
            self._ensure_directory(parent)
            self._check_writable(parent)
            now = self._tree.clock.utcnow()
            node = _Node(
                kind=EntryKind.FILE,
                modified_at=now,
                permission=existing.permission if existing else DEFAULT_FILE_PERMISSION,
                owner=existing.owner if existing else self._principal,
                content=bytes(content),
            )
            self._tree.nodes[normalized] = node
            self._touch(parent, now)
            return self._entry(normalized, node)

    def copy(self, source: str, destination: str) -> NamespaceEntry:
        with self._tree.lock:
            source_node = self._tree.nodes.get(normalize_path(source))
            if source_node is None:
                raise FileNotFoundError(source)
            if source_node.kind is EntryKind.DIRECTORY:
                msg = f"Is a directory: {source}"
                raise IsADirectoryError(msg)
            return self.create(destination, source_node.content)

    def delete(self, path: str) -> None:
        normalized = normalize_path(path)
        with self._tree.lock:
            node = self._tree.nodes.get(normalized)
            if node is None:
                raise FileNotFoundError(path)
            if normalized == ROOT:
                msg = "Cannot delete the namespace root"
                raise PermissionError(msg)
            if node.kind is EntryKind.DIRECTORY and self._has_children(normalized):
                raise OSError(errno.ENOTEMPTY, "Directory not empty", path)
            parent = parent_path(normalized)
            self._check_writable(parent)
            del self._tree.nodes[normalized]
            self._touch(parent, self._tree.clock.utcnow())

    def rename(self, source: str, destination: str) -> NamespaceEntry:
        source_path = normalize_path(source)
        destination_path = normalize_path(destination)
        with self._tree.lock:
            if source_path not in self._tree.nodes:
                raise FileNotFoundError(source)
            if destination_path in self._tree.nodes:
                msg = f"File exists: {destination}"
                raise FileExistsError(msg)
            if is_path_under(destination_path, source_path):
                raise OSError(errno.EINVAL, "Cannot move a directory under itself", source)
            destination_parent = parent_path(destination_path)
            self._ensure_directory(destination_parent)
            self._check_writable(parent_path(source_path))
            self._check_writable(destination_parent)
            moved = {
                path: node
                for path, node in self._tree.nodes.items()
                if is_path_under(path, source_path)
            }
            for path in moved:
                del self._tree.nodes[path]
            for path, node in moved.items():
                suffix = path[len(source_path) :]
                self._tree.nodes[destination_path + suffix] = node
            now = self._tree.clock.utcnow()
            self._touch(parent_path(source_path), now)
            self._touch(destination_parent, now)
            return self._entry(destination_path, self._tree.nodes[destination_path])

    def mkdir(self, path: str) -> NamespaceEntry:
        normalized = normalize_path(path)
        with self._tree.lock:
            self._ensure_directory(normalized)
            return self._entry(normalized, self._tree.nodes[normalized])

    def set_permissions(self, path: str, mode: int) -> NamespaceEntry:
        normalized = normalize_path(path)
        with self._tree.lock:
            node = self._tree.nodes.get(normalized)
            if node is None:
                raise FileNotFoundError(path)
            self._check_owner(normalized, node)
            updated = replace(node, permission=mode & 0o7777)
            self._tree.nodes[normalized] = updated
            return self._entry(normalized, updated)

    # --- Internal helpers (callers hold the tree lock) ---

    def _entry(self, path: str, node: _Node) -> NamespaceEntry:
        return NamespaceEntry(
            path=path,
            kind=node.kind,
            size=len(node.content),
            modified_at=node.modified_at,
            permission=node.permission,
            owner=node.owner,
        )

    def _has_children(self, path: str) -> bool:
        return any(
            other != path and is_path_under(other, path) for other in self._tree.nodes
        )

    def _ensure_directory(self, path: str) -> None:
        node = self._tree.nodes.get(path)
        if node is not None:
            if node.kind is EntryKind.FILE:
                msg = f"Not a directory: {path}"
                raise NotADirectoryError(msg)
            return
        parent = parent_path(path)
        self._ensure_directory(parent)
        self._check_writable(parent)
        now = self._tree.clock.utcnow()
        self._tree.nodes[path] = _Node(
            kind=EntryKind.DIRECTORY,
            modified_at=now,
            permission=DEFAULT_DIRECTORY_PERMISSION,
            owner=self._principal,
        )
        self._touch(parent, now)

    def _touch(self, path: str, when: datetime) -> None:
        node = self._tree.nodes.get(path)
        if node is not None:
            node.modified_at = when

    def _check_writable(self, directory: str) -> None:
        if not self._enforce_permissions or self._principal == self._tree.superuser:
            return
        node = self._tree.nodes[directory]
        if node.owner != self._principal and not node.permission & 0o002:
            msg = f"Permission denied: user={self._principal}, path={directory}"
            raise PermissionError(msg)

    def _check_owner(self, path: str, node: _Node) -> None:
        if not self._enforce_permissions or self._principal == self._tree.superuser:
            return
        if node.owner != self._principal:
            msg = f"Permission denied: user={self._principal}, path={path}"
            raise PermissionError(msg)
