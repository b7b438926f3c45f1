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

"""Namespace entry metadata.

``NamespaceEntry`` is an immutable snapshot of remote state taken when the
entry was listed or stat'ed. It may be stale by the time it is used; callers
that need fresh state must stat again.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Final

from ._path import base_name

DEFAULT_FILE_PERMISSION: Final[int] = 0o644
DEFAULT_DIRECTORY_PERMISSION: Final[int] = 0o755


class EntryKind(Enum):
    """Kind of a namespace entry."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass(slots=True, frozen=True)
class NamespaceEntry:
    """Metadata for a file or directory in the namespace.

    Attributes:
        path: Fully-qualified, normalized path (``/data/a.txt``).
        kind: ``EntryKind.FILE`` or ``EntryKind.DIRECTORY``.
        size: Content length in bytes (0 for directories).
        modified_at: Last modification time (UTC).
        permission: POSIX permission bits (``0o644``).
        owner: Principal owning the entry, when the transport reports one.

    Example::

        entry = client.stat("/data/a.txt")
        if entry.is_file and entry.size > 0:
            with client.open(entry.path) as stream:
                header = stream.read(16)
    """

    path: str
    kind: EntryKind
    size: int
    modified_at: datetime
    permission: int
    owner: str | None = None

    @property
    def name(self) -> str:
        return base_name(self.path)

    @property
    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


__all__ = [
    "DEFAULT_DIRECTORY_PERMISSION",
    "DEFAULT_FILE_PERMISSION",
    "EntryKind",
    "NamespaceEntry",
]
