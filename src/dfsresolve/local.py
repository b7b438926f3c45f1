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

"""Delegate resolver for ``file:`` locations on the local host."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO

from typing_extensions import override

from .errors import NotFoundError
from .pattern import has_wildcards

__all__ = ["LocalResolver", "LocalResource"]


class LocalResource:
    """A file or directory on the local host."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    @property
    def uri(self) -> str:
        return self._path.as_uri()

    @property
    def filename(self) -> str:
        return self._path.name

    def exists(self) -> bool:
        return self._path.exists()

    def open(self) -> BinaryIO:
        return self._path.open("rb")

    def read_bytes(self) -> bytes:
        return self._path.read_bytes()

    def last_modified(self) -> datetime:
        return datetime.fromtimestamp(self._path.stat().st_mtime, tz=UTC)

    @override
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LocalResource):
            return NotImplemented
        return self._path == other._path

    @override
    def __hash__(self) -> int:
        return hash(self._path)

    @override
    def __repr__(self) -> str:
        return f"LocalResource({str(self._path)!r})"


class LocalResolver:
    """Resolve local paths and ``pathlib`` glob patterns.

    Relative locations resolve against ``base`` (the working directory by
    default). The principal argument is accepted for interface parity and
    ignored: local access always uses the process credentials.
    """

    def __init__(self, base: Path | None = None) -> None:
        self._base = base

    def _absolute(self, location: str) -> Path:
        path = Path(location).expanduser()
        if path.is_absolute():
            return path
        return (self._base or Path.cwd()) / path

    def resolve_one(self, location: str, principal: str | None = None) -> LocalResource:
        del principal
        path = self._absolute(location)
        if has_wildcards(location):
            matches = self.resolve_all(location)
            if not matches:
                msg = f"No local path matches '{location}'"
                raise NotFoundError(msg, location=location)
            return matches[0]
        if not path.exists():
            msg = f"No such local path: {location}"
            raise NotFoundError(msg, location=location)
        return LocalResource(path)

    def resolve_all(
        self, location: str, principal: str | None = None
    ) -> list[LocalResource]:
        del principal
        path = self._absolute(location)
        if not has_wildcards(location):
            return [LocalResource(path)] if path.exists() else []
        anchor = Path(path.anchor)
        relative = str(path.relative_to(anchor))
        return [LocalResource(match) for match in sorted(anchor.glob(relative))]
