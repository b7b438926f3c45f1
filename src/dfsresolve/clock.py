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

"""Wall-clock abstraction used to stamp namespace modification times.

Namespace backends record ``modified_at`` from an injected clock so tests can
advance modification generations deterministically.

Example (testing)::

    from dfsresolve.clock import FakeClock
    from dfsresolve.namespace import InMemoryNamespace

    clock = FakeClock()
    ns = InMemoryNamespace(clock=clock)
    ns.create("/data/a.txt", b"v1")
    clock.advance(1)
    ns.create("/data/a.txt", b"v2")  # strictly newer modified_at
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Final, Protocol, runtime_checkable


@runtime_checkable
class WallClock(Protocol):
    """Protocol for wall-clock time measurement."""

    def utcnow(self) -> datetime:
        """Return current UTC datetime (timezone-aware)."""
        ...


@dataclass(frozen=True, slots=True)
class SystemClock:
    """Production clock delegating to ``datetime.now(UTC)``."""

    def utcnow(self) -> datetime:
        return datetime.now(UTC)


SYSTEM_CLOCK: Final[WallClock] = SystemClock()


@dataclass
class FakeClock:
    """Controllable clock for deterministic tests.

    Time only moves when :meth:`advance` or :meth:`set_wall` is called, so two
    writes without an intervening ``advance`` share a modification timestamp.
    """

    _wall: datetime = field(default_factory=lambda: datetime(2024, 1, 1, tzinfo=UTC))
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def utcnow(self) -> datetime:
        with self._lock:
            return self._wall

    def advance(self, seconds: float) -> None:
        """Move the clock forward by ``seconds``.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            msg = "Cannot advance time by negative seconds"
            raise ValueError(msg)
        with self._lock:
            self._wall += timedelta(seconds=seconds)

    def set_wall(self, value: datetime) -> None:
        if value.tzinfo is None:
            msg = "Wall clock time must be timezone-aware"
            raise ValueError(msg)
        with self._lock:
            self._wall = value


__all__ = [
    "SYSTEM_CLOCK",
    "FakeClock",
    "SystemClock",
    "WallClock",
]
