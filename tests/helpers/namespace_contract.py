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

"""Generic validation suite for NamespaceClient implementations.

Subclass with a concrete ``ns`` fixture returning an empty namespace::

    class TestMyNamespace(NamespaceContractSuite):
        @pytest.fixture
        def ns(self) -> MyNamespace:
            return MyNamespace()

Backend-specific behavior (permission enforcement, host path mapping)
belongs in the backend's own test module.
"""

from __future__ import annotations

import errno
from abc import abstractmethod

import pytest

from dfsresolve.namespace import EntryKind, NamespaceClient


class NamespaceContractSuite:
    """Abstract test suite for ``NamespaceClient`` compliance."""

    @pytest.fixture
    @abstractmethod
    def ns(self) -> NamespaceClient:
        """Provide a fresh, empty namespace."""
        ...

    # -------------------------------------------------------------------------
    # Protocol
    # -------------------------------------------------------------------------

    def test_satisfies_protocol(self, ns: NamespaceClient) -> None:
        assert isinstance(ns, NamespaceClient)

    def test_impersonate_changes_home_directory(self, ns: NamespaceClient) -> None:
        alice = ns.impersonate("alice")
        assert alice.principal == "alice"
        assert alice.home_directory() == "/user/alice"

    # -------------------------------------------------------------------------
    # Stat
    # -------------------------------------------------------------------------

    def test_stat_root_is_directory(self, ns: NamespaceClient) -> None:
        entry = ns.stat("/")
        assert entry.path == "/"
        assert entry.kind is EntryKind.DIRECTORY

    def test_stat_missing_raises(self, ns: NamespaceClient) -> None:
        with pytest.raises(FileNotFoundError):
            _ = ns.stat("/missing.txt")

    def test_stat_file_reports_size(self, ns: NamespaceClient) -> None:
        _ = ns.create("/data/a.txt", b"alpha")
        entry = ns.stat("/data/a.txt")
        assert entry.is_file
        assert entry.size == 5
        assert entry.name == "a.txt"
        assert entry.modified_at.tzinfo is not None

    def test_stat_normalizes_path(self, ns: NamespaceClient) -> None:
        _ = ns.create("/data/a.txt", b"alpha")
        assert ns.stat("/data//./a.txt").path == "/data/a.txt"

    # -------------------------------------------------------------------------
    # List
    # -------------------------------------------------------------------------

    def test_list_children_sorted_by_name(self, ns: NamespaceClient) -> None:
        _ = ns.create("/data/c.txt", b"")
        _ = ns.create("/data/a.txt", b"")
        _ = ns.mkdir("/data/b")
        names = [entry.name for entry in ns.list_children("/data")]
        assert names == ["a.txt", "b", "c.txt"]

    def test_list_children_is_one_level(self, ns: NamespaceClient) -> None:
        _ = ns.create("/data/b/c/c.txt", b"")
        paths = [entry.path for entry in ns.list_children("/data")]
        assert paths == ["/data/b"]

    def test_list_missing_raises(self, ns: NamespaceClient) -> None:
        with pytest.raises(FileNotFoundError):
            _ = ns.list_children("/missing")

    def test_list_file_raises(self, ns: NamespaceClient) -> None:
        _ = ns.create("/a.txt", b"")
        with pytest.raises(NotADirectoryError):
            _ = ns.list_children("/a.txt")

    # -------------------------------------------------------------------------
    # Open / create
    # -------------------------------------------------------------------------

    def test_open_reads_content(self, ns: NamespaceClient) -> None:
        _ = ns.create("/a.txt", b"alpha")
        with ns.open("/a.txt") as stream:
            assert stream.read() == b"alpha"

    def test_open_missing_raises(self, ns: NamespaceClient) -> None:
        with pytest.raises(FileNotFoundError):
            _ = ns.open("/missing.txt")

    def test_open_directory_raises(self, ns: NamespaceClient) -> None:
        _ = ns.mkdir("/data")
        with pytest.raises(IsADirectoryError):
            _ = ns.open("/data")

    def test_create_creates_parents(self, ns: NamespaceClient) -> None:
        _ = ns.create("/x/y/z.txt", b"z")
        assert ns.stat("/x/y").is_directory

    def test_create_overwrites_by_default(self, ns: NamespaceClient) -> None:
        _ = ns.create("/a.txt", b"one")
        entry = ns.create("/a.txt", b"three")
        assert entry.size == 5

    def test_create_without_overwrite_raises(self, ns: NamespaceClient) -> None:
        _ = ns.create("/a.txt", b"one")
        with pytest.raises(FileExistsError):
            _ = ns.create("/a.txt", b"two", overwrite=False)

    def test_create_over_directory_raises(self, ns: NamespaceClient) -> None:
        _ = ns.mkdir("/data")
        with pytest.raises(IsADirectoryError):
            _ = ns.create("/data", b"")

    # -------------------------------------------------------------------------
    # Copy / rename / delete
    # -------------------------------------------------------------------------

    def test_copy_file(self, ns: NamespaceClient) -> None:
        _ = ns.create("/a.txt", b"alpha")
        entry = ns.copy("/a.txt", "/backup/a.txt")
        assert entry.path == "/backup/a.txt"
        with ns.open("/backup/a.txt") as stream:
            assert stream.read() == b"alpha"
        assert ns.stat("/a.txt").is_file

    def test_copy_directory_raises(self, ns: NamespaceClient) -> None:
        _ = ns.mkdir("/data")
        with pytest.raises(IsADirectoryError):
            _ = ns.copy("/data", "/other")

    def test_copy_missing_raises(self, ns: NamespaceClient) -> None:
        with pytest.raises(FileNotFoundError):
            _ = ns.copy("/missing", "/other")

    def test_rename_moves_subtree(self, ns: NamespaceClient) -> None:
        _ = ns.create("/data/b/b.txt", b"beta")
        entry = ns.rename("/data/b", "/archive/b")
        assert entry.is_directory
        assert ns.stat("/archive/b/b.txt").size == 4
        with pytest.raises(FileNotFoundError):
            _ = ns.stat("/data/b")

    def test_rename_onto_existing_raises(self, ns: NamespaceClient) -> None:
        _ = ns.create("/a.txt", b"")
        _ = ns.create("/b.txt", b"")
        with pytest.raises(FileExistsError):
            _ = ns.rename("/a.txt", "/b.txt")

    def test_delete_file(self, ns: NamespaceClient) -> None:
        _ = ns.create("/a.txt", b"")
        ns.delete("/a.txt")
        with pytest.raises(FileNotFoundError):
            _ = ns.stat("/a.txt")

    def test_delete_empty_directory(self, ns: NamespaceClient) -> None:
        _ = ns.mkdir("/data")
        ns.delete("/data")
        with pytest.raises(FileNotFoundError):
            _ = ns.stat("/data")

    def test_delete_non_empty_directory_raises(self, ns: NamespaceClient) -> None:
        _ = ns.create("/data/a.txt", b"")
        with pytest.raises(OSError) as exc_info:
            ns.delete("/data")
        assert exc_info.value.errno == errno.ENOTEMPTY

    def test_delete_missing_raises(self, ns: NamespaceClient) -> None:
        with pytest.raises(FileNotFoundError):
            ns.delete("/missing")

    def test_delete_root_raises(self, ns: NamespaceClient) -> None:
        with pytest.raises(PermissionError):
            ns.delete("/")

    # -------------------------------------------------------------------------
    # Mkdir / permissions
    # -------------------------------------------------------------------------

    def test_mkdir_creates_parents(self, ns: NamespaceClient) -> None:
        entry = ns.mkdir("/a/b/c")
        assert entry.is_directory
        assert ns.stat("/a/b").is_directory

    def test_mkdir_existing_is_noop(self, ns: NamespaceClient) -> None:
        _ = ns.mkdir("/a")
        assert ns.mkdir("/a").is_directory

    def test_set_permissions(self, ns: NamespaceClient) -> None:
        _ = ns.create("/a.txt", b"")
        entry = ns.set_permissions("/a.txt", 0o600)
        assert entry.permission == 0o600
        assert ns.stat("/a.txt").permission == 0o600

    def test_set_permissions_missing_raises(self, ns: NamespaceClient) -> None:
        with pytest.raises(FileNotFoundError):
            _ = ns.set_permissions("/missing", 0o600)
