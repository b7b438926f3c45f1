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

"""Prefix-based routing of location strings to resolvers.

A location is ``scheme:body`` or a bare body. The text before the first
``:`` is the scheme (case-sensitive); when it names a registered resolver the
prefix is stripped, otherwise the whole string is treated as unprefixed.
``scheme://authority/path`` is accepted and the authority is dropped.

Unprefixed locations go to the namespace resolver when
``handle_unprefixed`` is set; otherwise to the fallback resolver, or fail
with :class:`NoOwnerError` when there is none.

The scheme registry is fixed at construction. Adding a scheme means passing
another :class:`Resolver` to the constructor.

Example::

    dispatcher = build_dispatcher(load_config({"default_principal": "alice"}))
    handle = dispatcher.resolve("file.txt")  # hdfs:/user/alice/file.txt
    logs = dispatcher.resolve_all("hdfs:/logs/2024-*/part-*")
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Protocol, runtime_checkable

from .config import ResolverConfig
from .errors import ConfigError, NoOwnerError, NotFoundError
from .executor import Executor, executor_for
from .identity import IdentityContext
from .local import LocalResolver
from .logging import StructuredLogger, get_logger
from .namespace import (
    HostNamespace,
    InMemoryNamespace,
    NamespaceClient,
    NamespaceEntry,
    normalize_path,
)
from .pattern import has_wildcards, parse_pattern
from .resolver import PatternResolver
from .resource import Resource, ResourceHandle

__all__ = [
    "NamespaceResolver",
    "ResourceDispatcher",
    "Resolver",
    "build_dispatcher",
    "default_client",
]

logger: StructuredLogger = get_logger(__name__, context={"component": "dispatch"})


@runtime_checkable
class Resolver(Protocol):
    """Capability interface every scheme owner implements."""

    def resolve_one(self, location: str, principal: str | None = None) -> Resource:
        """Resolve a location body to exactly one resource.

        Raises:
            NotFoundError: Nothing exists at (or matches) the location.
        """
        ...

    def resolve_all(
        self, location: str, principal: str | None = None
    ) -> Sequence[Resource]:
        """Resolve a location body or pattern; zero matches is an empty list."""
        ...


class NamespaceResolver:
    """Resolver for namespace-owned locations.

    Relative bodies are qualified under the principal's home directory.
    Concrete paths cost one ``stat``; bodies with wildcards are expanded by a
    :class:`PatternResolver` running with the principal's scoped client.
    """

    def __init__(
        self,
        identity: IdentityContext,
        *,
        scheme: str = "hdfs",
        executor: Executor | None = None,
        use_codecs: bool = True,
    ) -> None:
        self._identity = identity
        self._scheme = scheme
        self._executor = executor
        self._use_codecs = use_codecs

    @property
    def identity(self) -> IdentityContext:
        return self._identity

    def pattern_resolver(self, principal: str | None = None) -> PatternResolver:
        return PatternResolver(
            self._identity.client_for(principal), executor=self._executor
        )

    def resolve_one(
        self, location: str, principal: str | None = None
    ) -> ResourceHandle:
        if has_wildcards(location):
            matches = self.resolve_all(location, principal)
            if not matches:
                msg = f"No namespace entry matches '{location}'"
                raise NotFoundError(msg, location=location)
            return matches[0]
        path = normalize_path(self._identity.qualify(location, principal))
        client = self._identity.client_for(principal)
        entry = client.stat(path)
        return self._handle(path, principal, entry=entry)

    def resolve_all(
        self, location: str, principal: str | None = None
    ) -> list[ResourceHandle]:
        if not has_wildcards(location):
            try:
                return [self.resolve_one(location, principal)]
            except NotFoundError:
                return []
        qualified = self._identity.qualify(location, principal)
        entries = self.pattern_resolver(principal).expand(parse_pattern(qualified))
        return [self._handle(e.path, principal, entry=e) for e in entries]

    def _handle(
        self, path: str, principal: str | None, *, entry: NamespaceEntry | None
    ) -> ResourceHandle:
        return ResourceHandle(
            path,
            self._identity.client_for(principal),
            scheme=self._scheme,
            entry=entry,
            use_codecs=self._use_codecs,
        )


class ResourceDispatcher:
    """Route locations to the resolver owning their scheme.

    ``resolve`` and ``resolve_all`` are the whole resolution contract. An
    ``executor`` passed here is owned by the dispatcher and shut down by
    :meth:`close` (or on leaving a ``with`` block)::

        with build_dispatcher(load_config({"max_workers": 8})) as dispatcher:
            handles = dispatcher.resolve_all("hdfs:/logs/**/*.gz")
    """

    def __init__(
        self,
        resolvers: Mapping[str, Resolver],
        *,
        default_scheme: str,
        handle_unprefixed: bool = True,
        fallback: Resolver | None = None,
        executor: Executor | None = None,
    ) -> None:
        if default_scheme not in resolvers:
            msg = f"No resolver registered for default scheme '{default_scheme}'"
            raise ValueError(msg)
        self._resolvers: Mapping[str, Resolver] = MappingProxyType(dict(resolvers))
        self._default_scheme = default_scheme
        self._handle_unprefixed = handle_unprefixed
        self._fallback = fallback
        self._executor = executor

    def close(self) -> None:
        """Shut down the owned listing executor, if any. Idempotent."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> ResourceDispatcher:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def schemes(self) -> frozenset[str]:
        return frozenset(self._resolvers)

    def resolve(self, location: str, principal: str | None = None) -> Resource:
        """Resolve ``location`` to a single resource.

        Raises:
            ValueError: ``location`` is empty.
            NotFoundError: Nothing exists at the location.
            NoOwnerError: Unprefixed location that no resolver owns.
        """
        resolver, body = self._route(location)
        return resolver.resolve_one(body, principal)

    def resolve_all(
        self, location_pattern: str, principal: str | None = None
    ) -> list[Resource]:
        """Resolve a location or pattern to every matching resource.

        Zero matches yields an empty list, never an error.
        """
        resolver, body = self._route(location_pattern)
        return list(resolver.resolve_all(body, principal))

    def _route(self, location: str) -> tuple[Resolver, str]:
        if not location:
            msg = "Location must not be empty"
            raise ValueError(msg)
        scheme, separator, body = location.partition(":")
        if separator and scheme in self._resolvers:
            body = _strip_authority(body)
            logger.debug(
                "Routing prefixed location.",
                event="dispatch.route",
                context={"location": location, "scheme": scheme},
            )
            return self._resolvers[scheme], body
        if self._handle_unprefixed:
            logger.debug(
                "Routing unprefixed location to the namespace.",
                event="dispatch.route",
                context={"location": location, "scheme": self._default_scheme},
            )
            return self._resolvers[self._default_scheme], location
        if self._fallback is not None:
            logger.debug(
                "Routing unprefixed location to the fallback resolver.",
                event="dispatch.fallback",
                context={"location": location},
            )
            return self._fallback, location
        msg = f"No resolver owns unprefixed location '{location}'"
        raise NoOwnerError(msg, location=location)


def _strip_authority(body: str) -> str:
    if not body.startswith("//"):
        return body
    remainder = body[2:]
    slash = remainder.find("/")
    return remainder[slash:] if slash >= 0 else "/"


def default_client(config: ResolverConfig) -> NamespaceClient:
    """Build the namespace client named by ``config.backend``."""

    if config.backend == "host":
        if config.host_root is None:
            msg = "The host backend requires host_root."
            raise ConfigError(msg)
        return HostNamespace(config.host_root, home_prefix=config.home_prefix)
    return InMemoryNamespace(home_prefix=config.home_prefix)


def build_dispatcher(
    config: ResolverConfig | None = None,
    *,
    client: NamespaceClient | None = None,
    identity: IdentityContext | None = None,
    executor: Executor | None = None,
    fallback: Resolver | None = None,
    extra_resolvers: Mapping[str, Resolver] | None = None,
) -> ResourceDispatcher:
    """Assemble a dispatcher from explicit collaborators or configuration.

    Collaborators passed in are used as-is; missing ones are built from
    ``config``: the namespace client from ``backend``, the identity context
    from ``default_principal``, the listing executor from ``max_workers``.
    The ``file`` scheme is registered with a :class:`LocalResolver` unless
    ``extra_resolvers`` overrides it. An executor built here is owned by the
    returned dispatcher; an injected one stays the caller's to shut down.
    """

    resolved_config = config or ResolverConfig()
    owned_executor: Executor | None = None
    if executor is None:
        owned_executor = executor_for(resolved_config.max_workers)
    if identity is None:
        identity = IdentityContext(
            client if client is not None else default_client(resolved_config),
            config=resolved_config,
        )
    namespace = NamespaceResolver(
        identity,
        scheme=resolved_config.scheme,
        executor=executor if executor is not None else owned_executor,
        use_codecs=resolved_config.use_codecs,
    )
    resolvers: dict[str, Resolver] = {"file": LocalResolver()}
    resolvers.update(extra_resolvers or {})
    resolvers[resolved_config.scheme] = namespace
    return ResourceDispatcher(
        resolvers,
        default_scheme=resolved_config.scheme,
        handle_unprefixed=resolved_config.handle_unprefixed,
        fallback=fallback,
        executor=owned_executor,
    )
