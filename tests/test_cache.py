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

"""Tests for staleness-aware evaluation caching."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from datetime import datetime

import pytest

from dfsresolve.cache import (
    BoundEvaluation,
    EvaluationCache,
    EvaluationPolicy,
    dispatcher_probe,
)
from dfsresolve.clock import FakeClock
from dfsresolve.config import ResolverConfig
from dfsresolve.dispatch import build_dispatcher
from dfsresolve.errors import NamespaceUnavailableError, NotFoundError
from dfsresolve.identity import ScopedClient
from dfsresolve.namespace import InMemoryNamespace
from tests.helpers.namespace import FailingNamespace

_LOCATION = "/data/a.txt"


class _Counter:
    """Compute function returning ``prefix-N`` on its N-th invocation."""

    def __init__(self, prefix: str = "result", *, delay: float = 0.0) -> None:
        self.prefix = prefix
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            self.calls += 1
            call = self.calls
        if self.delay:
            time.sleep(self.delay)
        return f"{self.prefix}-{call}"


def _probe_for(ns: InMemoryNamespace) -> Callable[[str], datetime]:
    client = ScopedClient(ns, "bob")
    return lambda location: client.stat(location).modified_at


def _no_probe(location: str) -> datetime:
    raise AssertionError(f"probe called for {location}")


@pytest.fixture
def cache(namespace: InMemoryNamespace) -> EvaluationCache:
    return EvaluationCache(_probe_for(namespace))


def _run_concurrently(count: int, call: Callable[[], str]) -> list[str]:
    barrier = threading.Barrier(count)
    results: list[str] = []
    lock = threading.Lock()

    def worker() -> None:
        _ = barrier.wait(timeout=5)
        value = call()
        with lock:
            results.append(value)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    return results


class TestIfModified:
    """IF_MODIFIED recomputes only for strictly newer modification times."""

    def test_reuses_until_modified(
        self,
        cache: EvaluationCache,
        namespace: InMemoryNamespace,
        clock: FakeClock,
    ) -> None:
        compute = _Counter()

        assert cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute) == "result-1"
        assert cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute) == "result-1"

        clock.advance(1)
        _ = namespace.create(_LOCATION, b"alpha v2")

        assert cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute) == "result-2"
        assert cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute) == "result-2"
        assert compute.calls == 2

    def test_equal_timestamp_is_not_newer(
        self, cache: EvaluationCache, namespace: InMemoryNamespace
    ) -> None:
        compute = _Counter()
        _ = cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute)
        _ = namespace.create(_LOCATION, b"rewritten without clock movement")
        _ = cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute)
        assert compute.calls == 1

    def test_older_timestamp_is_not_newer(
        self, cache: EvaluationCache, namespace: InMemoryNamespace, clock: FakeClock
    ) -> None:
        compute = _Counter()
        _ = cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute)
        clock.set_wall(datetime.fromisoformat("2023-06-01T00:00:00+00:00"))
        _ = namespace.create(_LOCATION, b"backdated")
        _ = cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute)
        assert compute.calls == 1

    def test_entry_records_timestamp(
        self, cache: EvaluationCache, namespace: InMemoryNamespace
    ) -> None:
        _ = cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, _Counter())
        entry = cache.entry(_LOCATION)
        assert entry is not None
        assert entry.modified_at == namespace.stat(_LOCATION).modified_at
        assert entry.policy is EvaluationPolicy.IF_MODIFIED
        assert entry.has_result
        assert entry.evaluations == 1

    def test_missing_resource_propagates(self, cache: EvaluationCache) -> None:
        with pytest.raises(NotFoundError):
            _ = cache.get("/missing", EvaluationPolicy.IF_MODIFIED, _Counter())

    def test_concurrent_calls_compute_once(self, cache: EvaluationCache) -> None:
        compute = _Counter(delay=0.05)
        results = _run_concurrently(
            8, lambda: cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute)
        )
        assert compute.calls == 1
        assert results == ["result-1"] * 8


class TestStaleFallback:
    @pytest.fixture
    def failing(self, namespace: InMemoryNamespace) -> FailingNamespace:
        return FailingNamespace(namespace)

    @pytest.fixture
    def failing_cache(self, failing: FailingNamespace) -> EvaluationCache:
        client = ScopedClient(failing, "bob")
        return EvaluationCache(lambda location: client.stat(location).modified_at)

    def test_serves_stale_result_with_warning(
        self,
        failing_cache: EvaluationCache,
        failing: FailingNamespace,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        compute = _Counter()
        _ = failing_cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute)
        failing.fail("stat", _LOCATION, ConnectionError("namenode down"))

        with caplog.at_level(logging.WARNING, logger="dfsresolve.cache"):
            result = failing_cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute)

        assert result == "result-1"
        assert compute.calls == 1
        stale = [r for r in caplog.records if getattr(r, "event", None) == "cache.stale_result"]
        assert len(stale) == 1
        assert stale[0].levelno == logging.WARNING
        assert stale[0].context["location"] == _LOCATION  # type: ignore[attr-defined]

    def test_cold_failure_propagates(
        self, failing_cache: EvaluationCache, failing: FailingNamespace
    ) -> None:
        failing.fail("stat", _LOCATION, TimeoutError("timed out"))
        compute = _Counter()
        with pytest.raises(NamespaceUnavailableError) as exc_info:
            _ = failing_cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute)
        assert exc_info.value.location == _LOCATION
        assert compute.calls == 0
        entry = failing_cache.entry(_LOCATION)
        assert entry is not None
        assert not entry.has_result

    def test_recovers_after_outage(
        self,
        failing_cache: EvaluationCache,
        failing: FailingNamespace,
        namespace: InMemoryNamespace,
        clock: FakeClock,
    ) -> None:
        compute = _Counter()
        _ = failing_cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute)
        failing.fail("stat", _LOCATION, ConnectionError("down"))
        clock.advance(1)
        _ = namespace.create(_LOCATION, b"new")
        assert failing_cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute) == "result-1"
        failing.heal()
        assert failing_cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute) == "result-2"

    def test_always_result_is_not_served_stale(
        self, failing_cache: EvaluationCache, failing: FailingNamespace
    ) -> None:
        compute = _Counter()
        _ = failing_cache.get(_LOCATION, EvaluationPolicy.ALWAYS, compute)
        failing.fail("stat", _LOCATION, ConnectionError("down"))
        with pytest.raises(NamespaceUnavailableError):
            _ = failing_cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute)
        assert compute.calls == 1


class TestOnce:
    def test_computes_once_without_probing(self) -> None:
        cache = EvaluationCache(_no_probe)
        compute = _Counter()
        results = [cache.get(_LOCATION, EvaluationPolicy.ONCE, compute) for _ in range(3)]
        assert results == ["result-1"] * 3
        assert compute.calls == 1

    def test_concurrent_calls_compute_once(self) -> None:
        cache = EvaluationCache(_no_probe)
        compute = _Counter(delay=0.05)
        results = _run_concurrently(
            10, lambda: cache.get(_LOCATION, EvaluationPolicy.ONCE, compute)
        )
        assert compute.calls == 1
        assert results == ["result-1"] * 10

    def test_failed_compute_is_not_recorded(self) -> None:
        cache = EvaluationCache(_no_probe)
        attempts: list[int] = []

        def flaky() -> str:
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("boom")
            return "ok"

        with pytest.raises(RuntimeError):
            _ = cache.get(_LOCATION, EvaluationPolicy.ONCE, flaky)
        assert cache.get(_LOCATION, EvaluationPolicy.ONCE, flaky) == "ok"
        assert len(attempts) == 2


class TestAlways:
    def test_computes_every_call(self) -> None:
        cache = EvaluationCache(_no_probe)
        compute = _Counter()
        assert cache.get(_LOCATION, EvaluationPolicy.ALWAYS, compute) == "result-1"
        assert cache.get(_LOCATION, EvaluationPolicy.ALWAYS, compute) == "result-2"
        entry = cache.entry(_LOCATION)
        assert entry is not None
        assert entry.result == "result-2"
        assert entry.evaluations == 2

    def test_concurrent_calls_are_not_serialized(self) -> None:
        cache = EvaluationCache(_no_probe)
        inside = threading.Barrier(2)

        def compute() -> str:
            _ = inside.wait(timeout=5)
            return "done"

        results = _run_concurrently(
            2, lambda: cache.get(_LOCATION, EvaluationPolicy.ALWAYS, compute)
        )
        assert results == ["done", "done"]
        assert not inside.broken


class TestMixedPolicies:
    def test_once_after_always_computes(self) -> None:
        cache = EvaluationCache(_no_probe)
        compute = _Counter()
        assert cache.get(_LOCATION, EvaluationPolicy.ALWAYS, compute) == "result-1"
        assert cache.get(_LOCATION, EvaluationPolicy.ONCE, compute) == "result-2"
        assert cache.get(_LOCATION, EvaluationPolicy.ONCE, compute) == "result-2"
        assert compute.calls == 2

    def test_if_modified_after_always_computes(self, cache: EvaluationCache) -> None:
        compute = _Counter()
        _ = cache.get(_LOCATION, EvaluationPolicy.ALWAYS, compute)
        assert cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute) == "result-2"
        assert cache.get(_LOCATION, EvaluationPolicy.IF_MODIFIED, compute) == "result-2"
        assert compute.calls == 2

    def test_always_keeps_memoized_result(self) -> None:
        cache = EvaluationCache(_no_probe)
        compute = _Counter()
        assert cache.get(_LOCATION, EvaluationPolicy.ONCE, compute) == "result-1"
        assert cache.get(_LOCATION, EvaluationPolicy.ALWAYS, compute) == "result-2"
        assert cache.get(_LOCATION, EvaluationPolicy.ONCE, compute) == "result-1"
        assert compute.calls == 2
        entry = cache.entry(_LOCATION)
        assert entry is not None
        assert entry.result == "result-1"
        assert entry.evaluations == 2


class TestEntries:
    def test_unknown_location(self, cache: EvaluationCache) -> None:
        assert cache.entry("/nowhere") is None

    def test_locations_are_independent(self, cache: EvaluationCache) -> None:
        first = _Counter("a")
        second = _Counter("b")
        assert cache.get("/data/a.txt", EvaluationPolicy.ONCE, first) == "a-1"
        assert cache.get("/data/b/b.txt", EvaluationPolicy.ONCE, second) == "b-1"
        assert cache.get("/data/a.txt", EvaluationPolicy.ONCE, second) == "a-1"
        assert second.calls == 1

    def test_register_fixes_policy(self, cache: EvaluationCache) -> None:
        compute = _Counter()
        bound = cache.register(_LOCATION, EvaluationPolicy.ONCE, compute)
        assert isinstance(bound, BoundEvaluation)
        assert bound.location == _LOCATION
        assert bound() == bound() == "result-1"
        assert compute.calls == 1


class TestDispatcherProbe:
    def test_probe_resolves_through_dispatcher(
        self, namespace: InMemoryNamespace, clock: FakeClock
    ) -> None:
        dispatcher = build_dispatcher(
            ResolverConfig(default_principal="bob"), client=namespace
        )
        cache = EvaluationCache(dispatcher_probe(dispatcher))
        compute = _Counter()

        _ = cache.get("hdfs:/data/a.txt", EvaluationPolicy.IF_MODIFIED, compute)
        _ = cache.get("hdfs:/data/a.txt", EvaluationPolicy.IF_MODIFIED, compute)
        clock.advance(2)
        _ = namespace.create("/data/a.txt", b"changed")
        _ = cache.get("hdfs:/data/a.txt", EvaluationPolicy.IF_MODIFIED, compute)

        assert compute.calls == 2

    def test_probe_uses_principal(self, namespace: InMemoryNamespace) -> None:
        _ = namespace.create("/user/alice/job.conf", b"")
        dispatcher = build_dispatcher(
            ResolverConfig(default_principal="bob"), client=namespace
        )
        probe = dispatcher_probe(dispatcher, principal="alice")
        assert probe("job.conf") == namespace.stat("/user/alice/job.conf").modified_at
