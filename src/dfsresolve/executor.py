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

"""Injectable executors for parallel directory listing.

``PatternResolver`` submits one listing per directory through an
:class:`Executor`. Production code uses :class:`SystemExecutor` (a lazily
created thread pool); tests and single-threaded callers use
:class:`InlineExecutor`, which runs work in the calling thread.

Example::

    with SystemExecutor(max_workers=8) as executor:
        resolver = PatternResolver(client, executor=executor)
        entries = resolver.expand(parse_pattern("/logs/**/*.gz"))
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class Future(Protocol[T_co]):
    """Minimal future interface for submitted work."""

    def result(self, timeout: float | None = None) -> T_co:
        """Wait for and return the result, re-raising the task's exception."""
        ...

    def done(self) -> bool:
        """Return True if the task has completed."""
        ...


@runtime_checkable
class Executor(Protocol):
    """Protocol for submitting zero-argument work items."""

    def submit(self, fn: Callable[[], T]) -> Future[T]:
        """Schedule ``fn`` and return a future for its result."""
        ...

    def shutdown(self, *, wait: bool = True) -> None:
        """Release worker resources."""
        ...


@dataclass
class CompletedFuture(Generic[T]):
    """A future that already holds a value or an exception."""

    _value: T | None = None
    _exception: BaseException | None = None

    def result(self, timeout: float | None = None) -> T:
        del timeout
        if self._exception is not None:
            raise self._exception
        return self._value  # type: ignore[return-value]

    def done(self) -> bool:
        return True


@dataclass
class InlineExecutor:
    """Executor running each submission immediately in the calling thread.

    Exceptions are captured in the returned future rather than raised from
    ``submit`` so callers observe the same failure point as with a pool.
    """

    submitted: int = 0

    def submit(self, fn: Callable[[], T]) -> Future[T]:
        self.submitted += 1
        try:
            return CompletedFuture[T](_value=fn())
        except Exception as error:  # noqa: BLE001 - delivered through the future
            return CompletedFuture[T](_exception=error)

    def shutdown(self, *, wait: bool = True) -> None:
        del wait


@dataclass
class SystemExecutor:
    """Thread pool executor created on first submission."""

    max_workers: int | None = None
    thread_name_prefix: str = "dfsresolve-list"
    _pool: ThreadPoolExecutor | None = field(default=None, repr=False)

    def submit(self, fn: Callable[[], T]) -> Future[T]:
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix=self.thread_name_prefix,
            )
        return self._pool.submit(fn)

    def shutdown(self, *, wait: bool = True) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=wait)
            self._pool = None

    def __enter__(self) -> SystemExecutor:
        return self

    def __exit__(self, *args: object) -> None:
        self.shutdown(wait=True)


def executor_for(max_workers: int | None) -> Executor:
    """Return an inline executor for ``None``/``1`` workers, else a pool."""

    if max_workers is None or max_workers <= 1:
        return InlineExecutor()
    return SystemExecutor(max_workers=max_workers)


__all__ = [
    "CompletedFuture",
    "Executor",
    "Future",
    "InlineExecutor",
    "SystemExecutor",
    "executor_for",
]
