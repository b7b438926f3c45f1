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

"""Namespace backed by a host directory.

Namespace path ``/a/b`` maps to ``<root>/a/b``. Operations run with the
credentials of the current process; :meth:`HostNamespace.impersonate` only
changes which home directory relative paths resolve to.
"""

from __future__ import annotations

import getpass
import os
import shutil
import stat as stat_module
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO

from ._path import ROOT, join_path, normalize_path
from ._types import EntryKind, NamespaceEntry

__all__ = ["HostNamespace"]


class HostNamespace:
    """``NamespaceClient`` over a directory on the local host."""

    def __init__(
        self,
        root: Path | str,
        *,
        principal: str | None = None,
        home_prefix: str = "/user",
    ) -> None:
        self._root = Path(root).resolve()
        if not self._root.is_dir():
            msg = f"Namespace root is not a directory: {root}"
            raise NotADirectoryError(msg)
        self._principal = principal or getpass.getuser()
        self._home_prefix = normalize_path(home_prefix)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def principal(self) -> str:
        return self._principal

    def impersonate(self, principal: str) -> HostNamespace:
        return HostNamespace(
            self._root, principal=principal, home_prefix=self._home_prefix
        )

    def home_directory(self) -> str:
        return join_path(self._home_prefix, self._principal)

    def _resolve(self, path: str) -> Path:
        normalized = normalize_path(path)
        if normalized == ROOT:
            return self._root
        return self._root / normalized.lstrip("/")

    def _entry(self, path: str, host_path: Path) -> NamespaceEntry:
        st = host_path.stat()
        is_dir = stat_module.S_ISDIR(st.st_mode)
        return NamespaceEntry(
            path=normalize_path(path),
            kind=EntryKind.DIRECTORY if is_dir else EntryKind.FILE,
            size=0 if is_dir else st.st_size,
            modified_at=datetime.fromtimestamp(st.st_mtime, tz=UTC),
            permission=stat_module.S_IMODE(st.st_mode),
            owner=_owner_of(host_path),
        )

    def stat(self, path: str) -> NamespaceEntry:
        host_path = self._resolve(path)
        if not host_path.exists():
            raise FileNotFoundError(path)
        return self._entry(path, host_path)

    def list_children(self, path: str) -> Sequence[NamespaceEntry]:
        host_path = self._resolve(path)
        if not host_path.exists():
            raise FileNotFoundError(path)
        if not host_path.is_dir():
            msg = f"Not a directory: {path}"
            raise NotADirectoryError(msg)
        base = normalize_path(path)
        entries = [
            self._entry(join_path(base, item.name), Path(item.path))
            for item in os.scandir(host_path)
        ]
        entries.sort(key=lambda entry: entry.name)
        return entries

    def open(self, path: str) -> BinaryIO:
        host_path = self._resolve(path)
        if host_path.is_dir():
            msg = f"Is a directory: {path}"
            raise IsADirectoryError(msg)
        return host_path.open("rb")

    def create(
        self, path: str, content: bytes, *, overwrite: bool = True
    ) -> NamespaceEntry:
        host_path = self._resolve(path)
        if host_path.is_dir():
            msg = f"Is a directory: {path}"
            raise IsADirectoryError(msg)
        host_path.parent.mkdir(parents=True, exist_ok=True)
        with host_path.open("wb" if overwrite else "xb") as handle:
            _ = handle.write(content)
        return self._entry(path, host_path)

    def copy(self, source: str, destination: str) -> NamespaceEntry:
        source_path = self._resolve(source)
        if not source_path.exists():
            raise FileNotFoundError(source)
        if source_path.is_dir():
            msg = f"Is a directory: {source}"
            raise IsADirectoryError(msg)
        destination_path = self._resolve(destination)
        destination_path.parent.mkdir(parents=True, exist_ok=True)
        _ = shutil.copy2(source_path, destination_path)
        return self._entry(destination, destination_path)

    def delete(self, path: str) -> None:
        host_path = self._resolve(path)
        if host_path == self._root:
            msg = "Cannot delete the namespace root"
            raise PermissionError(msg)
        if not host_path.exists():
            raise FileNotFoundError(path)
        if host_path.is_dir():
            host_path.rmdir()
        else:
            host_path.unlink()

    def rename(self, source: str, destination: str) -> NamespaceEntry:
        source_path = self._resolve(source)
        destination_path = self._resolve(destination)
        if not source_path.exists():
            raise FileNotFoundError(source)
        if destination_path.exists():
            msg = f"File exists: {destination}"
            raise FileExistsError(msg)
        destination_path.parent.mkdir(parents=True, exist_ok=True)
        _ = source_path.rename(destination_path)
        return self._entry(destination, destination_path)

    def mkdir(self, path: str) -> NamespaceEntry:
        host_path = self._resolve(path)
        host_path.mkdir(parents=True, exist_ok=True)
        return self._entry(path, host_path)

    def set_permissions(self, path: str, mode: int) -> NamespaceEntry:
        host_path = self._resolve(path)
        if not host_path.exists():
            raise FileNotFoundError(path)
        host_path.chmod(mode & 0o7777)
        return self._entry(path, host_path)


def _owner_of(host_path: Path) -> str | None:
    try:
        return host_path.owner()
    except (KeyError, NotImplementedError, OSError):
        return None
