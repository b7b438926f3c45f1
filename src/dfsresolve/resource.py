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

"""Addressable handles to resolved namespace resources.

A :class:`ResourceHandle` pairs a fully-qualified path with the scoped client
that resolved it. Content streams are opened lazily by :meth:`open` and are
owned by the caller, which must close them::

    handle = dispatcher.resolve("hdfs:/logs/2024-01-01.log.gz")
    with handle.open() as stream:  # transparently gunzipped
        first_line = stream.readline()
"""

from __future__ import annotations

import bz2
import gzip
import io
import lzma
from collections.abc import Callable, Mapping
from datetime import datetime
from types import MappingProxyType
from typing import BinaryIO, Final, Protocol, cast, runtime_checkable

from typing_extensions import override

from .identity import ScopedClient
from .namespace import NamespaceEntry, base_name, join_path, normalize_path, parent_path

__all__ = ["CODECS", "Resource", "ResourceHandle"]


def _gzip(raw: BinaryIO) -> BinaryIO:
    return cast(BinaryIO, gzip.GzipFile(fileobj=raw, mode="rb"))


def _bzip2(raw: BinaryIO) -> BinaryIO:
    return cast(BinaryIO, bz2.BZ2File(raw, mode="rb"))


def _xz(raw: BinaryIO) -> BinaryIO:
    return cast(BinaryIO, lzma.LZMAFile(raw, mode="rb"))


CODECS: Final[Mapping[str, Callable[[BinaryIO], BinaryIO]]] = MappingProxyType(
    {".gz": _gzip, ".bz2": _bzip2, ".xz": _xz}
)
"""Decompressors keyed by file suffix."""


@runtime_checkable
class Resource(Protocol):
    """Capabilities shared by every resolved resource, whatever its scheme."""

    @property
    def uri(self) -> str: ...

    @property
    def filename(self) -> str: ...

    def exists(self) -> bool: ...

    def open(self) -> BinaryIO: ...

    def read_bytes(self) -> bytes: ...

    def last_modified(self) -> datetime: ...


class _DecodedStream(io.BufferedIOBase):
    """Decompressing reader that also closes the transport stream."""

    def __init__(self, decoded: BinaryIO, raw: BinaryIO) -> None:
        super().__init__()
        self._decoded = decoded
        self._raw = raw

    @override
    def readable(self) -> bool:
        return True

    @override
    def read(self, size: int | None = -1) -> bytes:
        return self._decoded.read(-1 if size is None else size)

    @override
    def read1(self, size: int = -1) -> bytes:
        return self._decoded.read(size)

    @override
    def close(self) -> None:
        if self.closed:
            return
        try:
            self._decoded.close()
        finally:
            self._raw.close()
            super().close()


class ResourceHandle:
    """A resolved namespace resource.

    Handles compare equal by scheme and path. The ``entry`` attribute is the
    snapshot taken at resolution time; :meth:`stat` always queries again.
    """

    def __init__(
        self,
        path: str,
        client: ScopedClient,
        *,
        scheme: str = "hdfs",
        entry: NamespaceEntry | None = None,
        use_codecs: bool = True,
    ) -> None:
        self._path = normalize_path(path)
        self._client = client
        self._scheme = scheme
        self._entry = entry
        self._use_codecs = use_codecs

    @property
    def path(self) -> str:
        return self._path

    @property
    def principal(self) -> str:
        return self._client.principal

    @property
    def client(self) -> ScopedClient:
        return self._client

    @property
    def uri(self) -> str:
        return f"{self._scheme}:{self._path}"

    @property
    def filename(self) -> str:
        return base_name(self._path)

    @property
    def entry(self) -> NamespaceEntry | None:
        return self._entry

    def exists(self) -> bool:
        try:
            _ = self.stat()
        except FileNotFoundError:
            return False
        return True

    def stat(self) -> NamespaceEntry:
        """Query fresh metadata.

        Raises:
            NotFoundError: The resource no longer exists.
            NamespaceUnavailableError: The transport failed.
        """
        self._entry = self._client.stat(self._path)
        return self._entry

    def last_modified(self) -> datetime:
        return self.stat().modified_at

    def content_length(self) -> int:
        return self.stat().size

    def open(self) -> BinaryIO:
        """Open a fresh content stream; compressed suffixes are decoded."""
        raw = self._client.open(self._path)
        codec = self._codec()
        if codec is None:
            return raw
        return cast(BinaryIO, _DecodedStream(codec(raw), raw))

    def read_bytes(self) -> bytes:
        with self.open() as stream:
            return stream.read()

    def write_bytes(self, content: bytes, *, overwrite: bool = True) -> NamespaceEntry:
        self._entry = self._client.create(self._path, content, overwrite=overwrite)
        return self._entry

    def create_relative(self, relative: str) -> ResourceHandle:
        """Return a handle for ``relative`` resolved against this resource.

        Relative paths resolve against the parent directory, the way a
        relative link resolves against the document containing it.
        """
        if relative.startswith("/"):
            target = relative
        else:
            target = join_path(parent_path(self._path), relative)
        return ResourceHandle(
            target,
            self._client,
            scheme=self._scheme,
            use_codecs=self._use_codecs,
        )

    def _codec(self) -> Callable[[BinaryIO], BinaryIO] | None:
        if not self._use_codecs:
            return None
        for suffix, codec in CODECS.items():
            if self._path.endswith(suffix):
                return codec
        return None

    @override
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceHandle):
            return NotImplemented
        return (self._scheme, self._path) == (other._scheme, other._path)

    @override
    def __hash__(self) -> int:
        return hash((self._scheme, self._path))

    @override
    def __repr__(self) -> str:
        return f"ResourceHandle({self.uri!r}, principal={self.principal!r})"
