"""Diagnostics sinks — where page failures are reported.

The render pipeline never shows failure details to clients.  Instead it
hands one :class:`~perch.errors.RenderFailure` per failed render to a
sink.  The default sink writes to the ``perch.pages`` logger; tests use
:class:`RecordingSink` to count and inspect entries.
"""

import logging
import threading
from typing import Protocol, runtime_checkable

from perch.errors import RenderFailure

logger = logging.getLogger("perch.pages")


@runtime_checkable
class DiagnosticsSink(Protocol):
    """Receives failures caught at the render pipeline boundary."""

    def report(self, failure: RenderFailure, *, path: str, method: str) -> None: ...


class LoggingSink:
    """Report failures through the standard logging module."""

    __slots__ = ("_logger",)

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._logger = log or logger

    def report(self, failure: RenderFailure, *, path: str, method: str) -> None:
        cause = failure.cause
        self._logger.error(
            "500 %s %s: %s failed",
            method,
            path,
            failure.template_id or "<page>",
            exc_info=(type(cause), cause, cause.__traceback__),
        )


class RecordingSink:
    """Keep reported failures in memory.

    Thread-safe so it can be shared by concurrent test requests.
    """

    __slots__ = ("_entries", "_lock")

    def __init__(self) -> None:
        self._entries: list[tuple[RenderFailure, str, str]] = []
        self._lock = threading.Lock()

    def report(self, failure: RenderFailure, *, path: str, method: str) -> None:
        with self._lock:
            self._entries.append((failure, path, method))

    @property
    def failures(self) -> list[RenderFailure]:
        with self._lock:
            return [entry[0] for entry in self._entries]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
