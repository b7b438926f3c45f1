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

"""Staleness-aware memoization of namespace-dependent computations.

An :class:`EvaluationCache` wraps expensive, side-effecting units of work
whose result depends on a backing resource. Each call names the resource's
location and an :class:`EvaluationPolicy`:

ALWAYS
    Compute on every call. The latest result is recorded for inspection
    only and never reused; it does not replace a result memoized by the
    other policies.
ONCE
    Compute on the first call for the location; every later call returns
    the memoized result without probing the namespace.
IF_MODIFIED
    Probe the resource's modification time on every call and compute only
    when there is no prior result or the observed time is strictly newer
    than the recorded one.

ONCE and IF_MODIFIED calls for one location are serialized by a
per-location lock, so concurrent callers share a single computation per
modification generation. When the IF_MODIFIED probe fails with
:class:`NamespaceUnavailableError` and a result exists, the stale result is
returned and a ``cache.stale_result`` warning is logged.

Usage::

    cache = EvaluationCache(dispatcher_probe(dispatcher))
    report = cache.get(
        "hdfs:/data/input.csv",
        EvaluationPolicy.IF_MODIFIED,
        lambda: build_report(dispatcher.resolve("hdfs:/data/input.csv")),
    )
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeAlias, TypeVar, cast

from .errors import NamespaceUnavailableError
from .logging import StructuredLogger, get_logger

if TYPE_CHECKING:
    from .dispatch import ResourceDispatcher

__all__ = [
    "BoundEvaluation",
    "CacheEntry",
    "EvaluationCache",
    "EvaluationPolicy",
    "ModificationProbe",
    "dispatcher_probe",
]

R = TypeVar("R")

logger: StructuredLogger = get_logger(__name__, context={"component": "cache"})

ModificationProbe: TypeAlias = Callable[[str], datetime]
"""Return the modification time of the resource at a location."""


class EvaluationPolicy(Enum):
    """When a cached evaluation is recomputed."""

    ALWAYS = "always"
    IF_MODIFIED = "if_modified"
    ONCE = "once"


@dataclass(slots=True)
class CacheEntry:
    """Mutable record of the last evaluation for one location.

    Attributes:
        location: Location of the backing resource.
        policy: Policy of the most recent call.
        result: Last computed result (meaningful only when ``has_result``).
        modified_at: Modification time observed before the last IF_MODIFIED
            computation, or ``None`` when no probe has been recorded.
        has_result: True once a computation completed.
        reusable: True when ``result`` came from a memoizing policy (ONCE or
            IF_MODIFIED). ALWAYS results are kept for inspection only.
        evaluations: Number of completed computations.
    """

    location: str
    policy: EvaluationPolicy
    result: object = None
    modified_at: datetime | None = None
    has_result: bool = False
    reusable: bool = False
    evaluations: int = 0

    def record(
        self, result: object, modified_at: datetime | None, *, reusable: bool
    ) -> None:
        self.result = result
        self.modified_at = modified_at
        self.has_result = True
        self.reusable = reusable
        self.evaluations += 1


@dataclass(slots=True, frozen=True)
class BoundEvaluation(Generic[R]):
    """Evaluation with its location, policy and computation fixed."""

    cache: EvaluationCache
    location: str
    policy: EvaluationPolicy
    compute: Callable[[], R]

    def __call__(self) -> R:
        return self.cache.get(self.location, self.policy, self.compute)


class EvaluationCache:
    """Process-lifetime cache of evaluation results keyed by location.

    Entries are created on first use and never evicted. Entries for
    different locations are fully independent.
    """

    def __init__(self, probe: ModificationProbe) -> None:
        self._probe = probe
        self._entries: dict[str, CacheEntry] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def get(
        self, location: str, policy: EvaluationPolicy, compute: Callable[[], R]
    ) -> R:
        """Return the result for ``location`` under ``policy``.

        Exceptions raised by ``compute`` propagate and leave the entry
        unchanged.

        Raises:
            NamespaceUnavailableError: The IF_MODIFIED probe failed and no
                prior result exists.
            NotFoundError: The backing resource does not exist.
        """
        if policy is EvaluationPolicy.ALWAYS:
            return self._always(location, compute)
        with self._location_lock(location):
            entry = self._entry(location, policy)
            if policy is EvaluationPolicy.ONCE:
                return self._once(entry, compute)
            return self._if_modified(entry, compute)

    def register(
        self, location: str, policy: EvaluationPolicy, compute: Callable[[], R]
    ) -> BoundEvaluation[R]:
        """Fix ``policy`` and ``compute`` for ``location`` and return a callable."""
        return BoundEvaluation(self, location, policy, compute)

    def entry(self, location: str) -> CacheEntry | None:
        """Return the entry recorded for ``location``, if any."""
        with self._lock:
            return self._entries.get(location)

    def _always(self, location: str, compute: Callable[[], R]) -> R:
        result = compute()
        with self._lock:
            entry = self._entries.setdefault(
                location, CacheEntry(location, EvaluationPolicy.ALWAYS)
            )
            entry.policy = EvaluationPolicy.ALWAYS
            if entry.reusable:
                # A memoized result stays authoritative for ONCE/IF_MODIFIED.
                entry.evaluations += 1
            else:
                entry.record(result, entry.modified_at, reusable=False)
        self._log_evaluated(location, EvaluationPolicy.ALWAYS)
        return result

    def _once(self, entry: CacheEntry, compute: Callable[[], R]) -> R:
        if entry.reusable:
            self._log_reused(entry)
            return cast(R, entry.result)
        result = compute()
        entry.record(result, entry.modified_at, reusable=True)
        self._log_evaluated(entry.location, entry.policy)
        return result

    def _if_modified(self, entry: CacheEntry, compute: Callable[[], R]) -> R:
        try:
            observed = self._probe(entry.location)
        except NamespaceUnavailableError as error:
            if not entry.reusable:
                raise
            logger.warning(
                "Namespace unavailable; serving stale result.",
                event="cache.stale_result",
                context={
                    "location": entry.location,
                    "modified_at": _isoformat(entry.modified_at),
                    "error": str(error),
                },
            )
            return cast(R, entry.result)
        recorded = entry.modified_at
        if entry.reusable and recorded is not None and observed <= recorded:
            self._log_reused(entry)
            return cast(R, entry.result)
        result = compute()
        entry.record(result, observed, reusable=True)
        self._log_evaluated(entry.location, entry.policy, observed)
        return result

    def _location_lock(self, location: str) -> threading.Lock:
        with self._lock:
            lock = self._locks.get(location)
            if lock is None:
                lock = threading.Lock()
                self._locks[location] = lock
            return lock

    def _entry(self, location: str, policy: EvaluationPolicy) -> CacheEntry:
        with self._lock:
            entry = self._entries.get(location)
            if entry is None:
                entry = CacheEntry(location, policy)
                self._entries[location] = entry
            entry.policy = policy
            return entry

    @staticmethod
    def _log_evaluated(
        location: str, policy: EvaluationPolicy, modified_at: datetime | None = None
    ) -> None:
        logger.debug(
            "Evaluation computed.",
            event="cache.evaluate",
            context={
                "location": location,
                "policy": policy.value,
                "modified_at": _isoformat(modified_at),
            },
        )

    @staticmethod
    def _log_reused(entry: CacheEntry) -> None:
        logger.debug(
            "Evaluation reused.",
            event="cache.reuse",
            context={"location": entry.location, "policy": entry.policy.value},
        )


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def dispatcher_probe(
    dispatcher: ResourceDispatcher, principal: str | None = None
) -> ModificationProbe:
    """Probe modification times by resolving locations through ``dispatcher``."""

    def probe(location: str) -> datetime:
        return dispatcher.resolve(location, principal).last_modified()

    return probe
