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

"""Principal-aware path qualification and scoped namespace access.

``IdentityContext`` owns the mapping from principal to home directory and
hands out :class:`ScopedClient` instances that execute every operation under
one principal's credentials. Scoped clients also translate transport
exceptions into the library taxonomy:

- ``FileNotFoundError`` -> :class:`NotFoundError`
- ``OSError`` with a logical errno (not empty, exists, not a directory,
  is a directory, invalid argument) -> re-raised unchanged
- any other ``OSError`` (refused, timeout, permission denied) ->
  :class:`NamespaceUnavailableError`
"""

from __future__ import annotations

import errno
import getpass
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import BinaryIO, Final

from .config import ResolverConfig
from .errors import DfsResolveError, NamespaceUnavailableError, NotFoundError
from .logging import StructuredLogger, get_logger
from .namespace import ROOT, SEPARATOR, NamespaceClient, NamespaceEntry

__all__ = ["IdentityContext", "ScopedClient"]

logger: StructuredLogger = get_logger(__name__, context={"component": "identity"})

_LOGICAL_ERRNOS: Final = frozenset(
    {errno.ENOTEMPTY, errno.EEXIST, errno.ENOTDIR, errno.EISDIR, errno.EINVAL}
)
_LOGICAL_ERRORS: Final = (FileExistsError, NotADirectoryError, IsADirectoryError)


@contextmanager
def _transport_errors(operation: str, path: str, principal: str) -> Iterator[None]:
    try:
        yield
    except DfsResolveError:
        raise
    except FileNotFoundError as error:
        msg = f"No such path: {path}"
        raise NotFoundError(msg, location=path) from error
    except _LOGICAL_ERRORS:
        raise
    except OSError as error:
        if error.errno in _LOGICAL_ERRNOS:
            raise
        msg = f"{operation} of '{path}' as '{principal}' failed: {error}"
        raise NamespaceUnavailableError(msg, location=path) from error


class ScopedClient:
    """``NamespaceClient`` bound to one principal with normalized errors."""

    def __init__(self, delegate: NamespaceClient, principal: str) -> None:
        self._delegate = delegate.impersonate(principal)
        self._principal = principal

    @property
    def principal(self) -> str:
        return self._principal

    def impersonate(self, principal: str) -> ScopedClient:
        return ScopedClient(self._delegate, principal)

    def home_directory(self) -> str:
        with _transport_errors("home", ROOT, self._principal):
            return self._delegate.home_directory()

    def stat(self, path: str) -> NamespaceEntry:
        with _transport_errors("stat", path, self._principal):
            return self._delegate.stat(path)

    def list_children(self, path: str) -> Sequence[NamespaceEntry]:
        with _transport_errors("list", path, self._principal):
            return self._delegate.list_children(path)

    def open(self, path: str) -> BinaryIO:
        with _transport_errors("open", path, self._principal):
            return self._delegate.open(path)

    def create(
        self, path: str, content: bytes, *, overwrite: bool = True
    ) -> NamespaceEntry:
        with _transport_errors("create", path, self._principal):
            return self._delegate.create(path, content, overwrite=overwrite)

    def copy(self, source: str, destination: str) -> NamespaceEntry:
        with _transport_errors("copy", source, self._principal):
            return self._delegate.copy(source, destination)

    def delete(self, path: str) -> None:
        with _transport_errors("delete", path, self._principal):
            self._delegate.delete(path)

    def rename(self, source: str, destination: str) -> NamespaceEntry:
        with _transport_errors("rename", source, self._principal):
            return self._delegate.rename(source, destination)

    def mkdir(self, path: str) -> NamespaceEntry:
        with _transport_errors("mkdir", path, self._principal):
            return self._delegate.mkdir(path)

    def set_permissions(self, path: str, mode: int) -> NamespaceEntry:
        with _transport_errors("chmod", path, self._principal):
            return self._delegate.set_permissions(path, mode)


class IdentityContext:
    """Resolve principals to home directories and scoped clients.

    Home directories are looked up once per principal and cached for the
    lifetime of the context. Callers that pass no principal get the default
    one: the explicit ``default_principal``, else the configured one, else
    the current OS user.

    Example::

        identity = IdentityContext(client)
        identity.qualify("file.txt", "alice")  # "/user/alice/file.txt"
        identity.qualify("/tmp/x")  # "/tmp/x"
    """

    def __init__(
        self,
        client: NamespaceClient,
        *,
        default_principal: str | None = None,
        config: ResolverConfig | None = None,
    ) -> None:
        configured = config.default_principal if config is not None else None
        self._client = client
        self._default_principal = default_principal or configured or getpass.getuser()
        self._homes: dict[str, str] = {}
        self._clients: dict[str, ScopedClient] = {}
        self._lock = threading.Lock()

    @property
    def default_principal(self) -> str:
        return self._default_principal

    def principal(self, principal: str | None = None) -> str:
        """Return ``principal`` or the default principal."""
        return principal or self._default_principal

    def client_for(self, principal: str | None = None) -> ScopedClient:
        """Return the scoped client executing as ``principal``."""
        resolved = self.principal(principal)
        with self._lock:
            client = self._clients.get(resolved)
            if client is None:
                client = ScopedClient(self._client, resolved)
                self._clients[resolved] = client
            return client

    def home(self, principal: str | None = None) -> str:
        """Return the home directory of ``principal`` (cached)."""
        resolved = self.principal(principal)
        with self._lock:
            cached = self._homes.get(resolved)
        if cached is not None:
            return cached
        home = self.client_for(resolved).home_directory()
        with self._lock:
            home = self._homes.setdefault(resolved, home)
        logger.debug(
            "Resolved home directory.",
            event="identity.home",
            context={"principal": resolved, "home": home},
        )
        return home

    def qualify(self, path: str, principal: str | None = None) -> str:
        """Return ``path`` made absolute under the principal's home.

        Absolute paths are returned unchanged.
        """
        if path.startswith(SEPARATOR):
            return path
        home = self.home(principal)
        if not path:
            return home
        return f"{home.rstrip(SEPARATOR)}{SEPARATOR}{path}"
