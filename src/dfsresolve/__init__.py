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

"""Resolve locations and glob patterns against a remote-backed namespace.

Example::

    from dfsresolve import build_dispatcher, load_config

    dispatcher = build_dispatcher(load_config("dfsresolve.toml"))
    for handle in dispatcher.resolve_all("hdfs:/logs/**/*.gz"):
        with handle.open() as stream:
            process(stream)
"""

from __future__ import annotations

from .cache import (
    BoundEvaluation,
    CacheEntry,
    EvaluationCache,
    EvaluationPolicy,
    dispatcher_probe,
)
from .clock import SYSTEM_CLOCK, FakeClock, SystemClock, WallClock
from .config import ResolverConfig, load_config
from .dispatch import (
    NamespaceResolver,
    Resolver,
    ResourceDispatcher,
    build_dispatcher,
    default_client,
)
from .errors import (
    ConfigError,
    DfsResolveError,
    MalformedPatternError,
    NamespaceUnavailableError,
    NoOwnerError,
    NotFoundError,
    PartialOperationFailure,
)
from .executor import Executor, InlineExecutor, SystemExecutor, executor_for
from .identity import IdentityContext, ScopedClient
from .local import LocalResolver, LocalResource
from .logging import StructuredLogger, configure_logging, get_logger
from .namespace import (
    EntryKind,
    HostNamespace,
    InMemoryNamespace,
    NamespaceClient,
    NamespaceEntry,
)
from .pattern import PathPattern, PatternSegment, SegmentKind, matches, parse_pattern
from .resolver import PatternResolver
from .resource import Resource, ResourceHandle
from .shell import ShellFacade

__all__ = [
    "SYSTEM_CLOCK",
    "BoundEvaluation",
    "CacheEntry",
    "ConfigError",
    "DfsResolveError",
    "EntryKind",
    "EvaluationCache",
    "EvaluationPolicy",
    "Executor",
    "FakeClock",
    "HostNamespace",
    "IdentityContext",
    "InMemoryNamespace",
    "InlineExecutor",
    "LocalResolver",
    "LocalResource",
    "MalformedPatternError",
    "NamespaceClient",
    "NamespaceEntry",
    "NamespaceResolver",
    "NamespaceUnavailableError",
    "NoOwnerError",
    "NotFoundError",
    "PartialOperationFailure",
    "PathPattern",
    "PatternResolver",
    "PatternSegment",
    "Resolver",
    "Resource",
    "ResourceDispatcher",
    "ResourceHandle",
    "ResolverConfig",
    "ScopedClient",
    "SegmentKind",
    "ShellFacade",
    "StructuredLogger",
    "SystemClock",
    "SystemExecutor",
    "WallClock",
    "build_dispatcher",
    "configure_logging",
    "default_client",
    "dispatcher_probe",
    "executor_for",
    "get_logger",
    "load_config",
    "matches",
    "parse_pattern",
]
