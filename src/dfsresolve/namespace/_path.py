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

"""Namespace path utilities.

Namespace paths are absolute, ``/``-delimited strings. ``"/"`` is the root.
Unlike host paths they are never resolved against a working directory:
relative paths are qualified by ``IdentityContext`` before reaching these
helpers.

Functions:
    normalize_path: Collapse slashes and resolve ``.``/``..`` segments
    split_segments: Break a normalized path into its segments
    join_path: Append a child name or relative path to a parent
    parent_path: Parent directory of a path
    base_name: Final segment of a path
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

ROOT: Final[str] = "/"
SEPARATOR: Final[str] = "/"


def normalize_path(path: str) -> str:
    """Return the canonical absolute form of ``path``.

    - Empty segments and ``.`` entries are dropped
    - ``..`` pops the previous segment and is ignored at the root
    - The result always starts with ``/`` and never ends with one (except root)

    Examples:
        >>> normalize_path("/data//b/./c/")
        '/data/b/c'
        >>> normalize_path("/data/b/../a.txt")
        '/data/a.txt'
        >>> normalize_path("")
        '/'
    """
    result: list[str] = []
    for segment in path.strip().split(SEPARATOR):
        if not segment or segment == ".":
            continue
        if segment == "..":
            if result:
                _ = result.pop()
            continue
        result.append(segment)
    return ROOT + SEPARATOR.join(result)


def split_segments(path: str) -> list[str]:
    """Return the segments of a normalized path; the root has none."""

    stripped = path.strip(SEPARATOR)
    return stripped.split(SEPARATOR) if stripped else []


def join_path(parent: str, child: str | Sequence[str]) -> str:
    """Join ``child`` (a name, relative path or segment list) under ``parent``."""

    tail = child if isinstance(child, str) else SEPARATOR.join(child)
    if not tail:
        return parent
    if parent == ROOT:
        return normalize_path(ROOT + tail)
    return normalize_path(f"{parent}{SEPARATOR}{tail}")


def parent_path(path: str) -> str:
    """Return the parent of ``path``; the root is its own parent."""

    segments = split_segments(path)
    return ROOT + SEPARATOR.join(segments[:-1])


def base_name(path: str) -> str:
    """Return the final segment of ``path`` (empty for the root)."""

    segments = split_segments(path)
    return segments[-1] if segments else ""


def is_path_under(path: str, base: str) -> bool:
    """True if ``path`` equals ``base`` or is one of its descendants."""

    if base == ROOT:
        return True
    return path == base or path.startswith(base + SEPARATOR)


__all__ = [
    "ROOT",
    "SEPARATOR",
    "base_name",
    "is_path_under",
    "join_path",
    "normalize_path",
    "parent_path",
    "split_segments",
]
