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

"""Base exception hierarchy for :mod:`dfsresolve`."""

from __future__ import annotations

from collections.abc import Sequence


class DfsResolveError(Exception):
    """Base class for all dfsresolve exceptions.

    Every error raised by the library carries the offending location (a path,
    a pattern or a full location string) so failures can be traced back to the
    request that produced them.

    Example:
        Catch any library error with a single handler::

            try:
                handle = dispatcher.resolve("hdfs:/data/part-0000")
            except DfsResolveError as e:
                logger.error("Resolution failed for %s: %s", e.location, e)

    Note:
        Subclasses also inherit from a matching builtin (``FileNotFoundError``,
        ``OSError``, ``ValueError``...) so generic handlers keep working.
    """

    def __init__(self, message: str, *, location: str | None = None) -> None:
        super().__init__(message)
        self.location = location


class NotFoundError(DfsResolveError, FileNotFoundError):
    """Raised when a single, concrete location resolves to no entry.

    Pattern expansion never raises this for zero matches; it is reserved for
    operations that need exactly one resource (``resolve``, ``stat``,
    ``open``).
    """


class NamespaceUnavailableError(DfsResolveError, OSError):
    """Raised when the namespace transport fails.

    Covers timeouts, refused connections and permission denials reported by
    the transport layer. Pattern expansion aborts on the first occurrence and
    never returns partial matches alongside this error.
    """


class MalformedPatternError(DfsResolveError, ValueError):
    """Raised when a glob pattern cannot be parsed.

    The only structural rule is that ``**`` must stand alone as a segment;
    ``a**`` or ``**.txt`` are rejected.
    """


class NoOwnerError(DfsResolveError, LookupError):
    """Raised when no resolver owns a location.

    Happens for unprefixed locations when unprefixed handling is disabled and
    no fallback resolver was configured. Callers are expected to apply their
    own fallback.
    """


class ConfigError(DfsResolveError, ValueError):
    """Raised when resolver configuration values are invalid."""


class PartialOperationFailure(DfsResolveError, RuntimeError):
    """Raised when a multi-entry shell operation fails partway through.

    Completed work is never rolled back. The exception records exactly which
    entries were processed before the failure so callers can clean up.

    Attributes:
        operation: Name of the shell operation (``remove``, ``copy``...).
        completed: Paths processed successfully, in processing order.
        failed_path: Path whose operation raised.
        cause: The underlying exception (also chained as ``__cause__``).

    Example::

        try:
            shell.remove("/data/tmp-*", recursive=True)
        except PartialOperationFailure as e:
            logger.warning("removed %d before failing on %s", len(e.completed), e.failed_path)
    """

    def __init__(
        self,
        *,
        operation: str,
        pattern: str,
        completed: Sequence[str],
        failed_path: str,
        cause: BaseException,
    ) -> None:
        message = (
            f"{operation} of '{pattern}' failed at '{failed_path}' after "
            f"{len(completed)} completed entries: {cause}"
        )
        super().__init__(message, location=pattern)
        self.operation = operation
        self.completed: tuple[str, ...] = tuple(completed)
        self.failed_path = failed_path
        self.cause = cause


__all__ = [
    "ConfigError",
    "DfsResolveError",
    "MalformedPatternError",
    "NamespaceUnavailableError",
    "NoOwnerError",
    "NotFoundError",
    "PartialOperationFailure",
]
