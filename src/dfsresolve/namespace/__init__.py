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

"""Namespace transport protocol, entry types and reference backends.

Example usage::

    from dfsresolve.namespace import InMemoryNamespace, NamespaceClient

    def sizes(client: NamespaceClient, directory: str) -> dict[str, int]:
        return {e.name: e.size for e in client.list_children(directory)}
"""

from __future__ import annotations

from ._path import (
    ROOT,
    SEPARATOR,
    base_name,
    is_path_under,
    join_path,
    normalize_path,
    parent_path,
    split_segments,
)
from ._protocol import NamespaceClient
from ._types import (
    DEFAULT_DIRECTORY_PERMISSION,
    DEFAULT_FILE_PERMISSION,
    EntryKind,
    NamespaceEntry,
)
from .host import HostNamespace
from .memory import DEFAULT_SUPERUSER, InMemoryNamespace

__all__ = [
    "DEFAULT_DIRECTORY_PERMISSION",
    "DEFAULT_FILE_PERMISSION",
    "DEFAULT_SUPERUSER",
    "ROOT",
    "SEPARATOR",
    "EntryKind",
    "HostNamespace",
    "InMemoryNamespace",
    "NamespaceClient",
    "NamespaceEntry",
    "base_name",
    "is_path_under",
    "join_path",
    "normalize_path",
    "parent_path",
    "split_segments",
]
