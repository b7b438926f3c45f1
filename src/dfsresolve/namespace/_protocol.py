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

"""Namespace transport protocol.

``NamespaceClient`` is the only way the resolution core touches the remote
namespace. Implementations are blocking request/response transports that are
safe to call from several threads at once.

Implementations shipped with the package:

- ``InMemoryNamespace``: thread-safe in-process tree, the default backend
- ``HostNamespace``: namespace rooted at a host directory
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import BinaryIO, Protocol, runtime_checkable

from ._types import NamespaceEntry


@runtime_checkable
class NamespaceClient(Protocol):
    """Transport operations against one namespace instance.

    All paths are absolute and normalized. A client acts on behalf of a single
    principal; :meth:`impersonate` returns a client bound to another one.

    Errors follow builtin conventions so any transport can be plugged in:
    ``FileNotFoundError`` for missing paths and other ``OSError`` subclasses
    (``ConnectionError``, ``TimeoutError``, ``PermissionError``) for transport
    failures. The principal-scoped wrapper in :mod:`dfsresolve.identity`
    translates these into the library's error taxonomy.
    """

    @property
    def principal(self) -> str:
        """Principal whose credentials this client uses."""
        ...

    def impersonate(self, principal: str) -> NamespaceClient:
        """Return a client executing every operation as ``principal``."""
        ...

    def home_directory(self) -> str:
        """Home directory of this client's principal."""
        ...

    def stat(self, path: str) -> NamespaceEntry:
        """Return metadata for ``path``.

        Raises:
            FileNotFoundError: Path does not exist.
        """
        ...

    def list_children(self, path: str) -> Sequence[NamespaceEntry]:
        """List the direct children of a directory, sorted by name.

        Raises:
            FileNotFoundError: Path does not exist.
            NotADirectoryError: Path is a file.
        """
        ...

    def open(self, path: str) -> BinaryIO:
        """Open a file for reading. The caller owns and closes the stream.

        Raises:
            FileNotFoundError: Path does not exist.
            IsADirectoryError: Path is a directory.
        """
        ...

    def create(
        self, path: str, content: bytes, *, overwrite: bool = True
    ) -> NamespaceEntry:
        """Write ``content`` to ``path``, creating parent directories.

        Raises:
            FileExistsError: ``overwrite`` is False and the path exists.
            IsADirectoryError: Path is a directory.
        """
        ...

    def copy(self, source: str, destination: str) -> NamespaceEntry:
        """Copy a single file to ``destination`` (a file path, not a directory).

        Raises:
            FileNotFoundError: Source does not exist.
            IsADirectoryError: Source is a directory.
        """
        ...

    def delete(self, path: str) -> None:
        """Delete a file or an empty directory.

        Raises:
            FileNotFoundError: Path does not exist.
            OSError: Directory is not empty.
        """
        ...

    def rename(self, source: str, destination: str) -> NamespaceEntry:
        """Move ``source`` (file or directory) to ``destination``.

        Raises:
            FileNotFoundError: Source does not exist.
            FileExistsError: Destination already exists.
        """
        ...

    def mkdir(self, path: str) -> NamespaceEntry:
        """Create a directory and any missing parents; existing ones are kept."""
        ...

    def set_permissions(self, path: str, mode: int) -> NamespaceEntry:
        """Replace the permission bits of ``path``.

        Raises:
            FileNotFoundError: Path does not exist.
        """
        ...


__all__ = ["NamespaceClient"]
