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

"""Tests for the local-host delegate resolver."""

from __future__ import annotations

from pathlib import Path

import pytest

from dfsresolve.errors import NotFoundError
from dfsresolve.local import LocalResolver, LocalResource


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    (tmp_path / "logs" / "2024").mkdir(parents=True)
    _ = (tmp_path / "logs" / "a.log").write_bytes(b"a")
    _ = (tmp_path / "logs" / "2024" / "b.log").write_bytes(b"bb")
    _ = (tmp_path / "notes.txt").write_text("notes")
    return tmp_path


class TestResolveOne:
    def test_relative_to_base(self, tree: Path) -> None:
        resource = LocalResolver(tree).resolve_one("notes.txt")
        assert resource.path == tree / "notes.txt"
        assert resource.filename == "notes.txt"
        assert resource.read_bytes() == b"notes"

    def test_absolute(self, tree: Path) -> None:
        resource = LocalResolver().resolve_one(str(tree / "logs" / "a.log"))
        assert resource.exists()

    def test_relative_to_working_directory(
        self, tree: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tree)
        assert LocalResolver().resolve_one("notes.txt").path == tree / "notes.txt"

    def test_missing_raises(self, tree: Path) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            _ = LocalResolver(tree).resolve_one("missing.txt")
        assert exc_info.value.location == "missing.txt"

    def test_pattern_first_match(self, tree: Path) -> None:
        resource = LocalResolver(tree).resolve_one("logs/**/*.log")
        assert resource.filename == "b.log"

    def test_pattern_without_match(self, tree: Path) -> None:
        with pytest.raises(NotFoundError):
            _ = LocalResolver(tree).resolve_one("*.csv")

    def test_principal_is_ignored(self, tree: Path) -> None:
        resolver = LocalResolver(tree)
        assert resolver.resolve_one("notes.txt", "alice") == resolver.resolve_one(
            "notes.txt"
        )


class TestResolveAll:
    def test_recursive_glob(self, tree: Path) -> None:
        resources = LocalResolver(tree).resolve_all("logs/**/*.log")
        assert sorted(r.filename for r in resources) == ["a.log", "b.log"]

    def test_missing_concrete_is_empty(self, tree: Path) -> None:
        assert LocalResolver(tree).resolve_all("missing.txt") == []

    def test_concrete(self, tree: Path) -> None:
        assert LocalResolver(tree).resolve_all("notes.txt") == [
            LocalResource(tree / "notes.txt")
        ]


class TestLocalResource:
    def test_uri(self, tree: Path) -> None:
        resource = LocalResource(tree / "notes.txt")
        assert resource.uri == (tree / "notes.txt").as_uri()
        assert resource.uri.startswith("file://")

    def test_open(self, tree: Path) -> None:
        with LocalResource(tree / "logs" / "a.log").open() as stream:
            assert stream.read() == b"a"

    def test_last_modified_is_aware(self, tree: Path) -> None:
        assert LocalResource(tree / "notes.txt").last_modified().tzinfo is not None

    def test_hash_and_repr(self, tree: Path) -> None:
        resource = LocalResource(tree / "notes.txt")
        assert hash(resource) == hash(LocalResource(tree / "notes.txt"))
        assert "notes.txt" in repr(resource)
