"""Tracks outstanding commands and matches replies to them.

Owns:
- correlation id generation
- one :class:`PendingCommand` per outstanding command
- engine-owned timeout timers
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pyfarmbot.exceptions import FarmbotTimeoutError

_logger = logging.getLogger(__name__)


class CommandState(StrEnum):
    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"


@dataclass(slots=True)
class PendingCommand:
    """Bookkeeping for one command until it reaches a terminal state."""

    correlation_id: str
    future: asyncio.Future[Any]
    timeout: float | None = None
    submitted_at: float = field(default_factory=time.monotonic)
    state: CommandState = CommandState.PENDING
    timer: asyncio.TimerHandle | None = None

    @property
    def age(self) -> float:
        return time.monotonic() - self.submitted_at


def _retrieve_exception(future: asyncio.Future[Any]) -> None:
    # A caller may abandon its future; mark the exception as retrieved so
    # asyncio does not report it at garbage collection.
    if not future.cancelled():
        future.exception()


class Correlator:
    """Registry of outstanding commands keyed by correlation id.

    All methods must be called from the engine's event loop.
    """

    def __init__(self, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._pending: dict[str, PendingCommand] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, correlation_id: object) -> bool:
        return correlation_id in self._pending

    def get(self, correlation_id: str) -> PendingCommand | None:
        return self._pending.get(correlation_id)

    def pending_ids(self) -> list[str]:
        return list(self._pending)

    def new_id(self) -> str:
        """Return a fresh id that collides with no outstanding command."""
        while True:
            candidate = secrets.token_hex(16)
            if candidate not in self._pending:
                return candidate

    def register(self, correlation_id: str, *, timeout: float | None = None) -> asyncio.Future[Any]:
        """Create a pending entry and return the future its caller awaits.

        When *timeout* is given, an engine-owned timer calls :meth:`expire`
        so the entry is cleaned up even if nobody awaits the future.
        """
        if not correlation_id:
            raise ValueError("correlation_id must be non-empty")
        if correlation_id in self._pending:
            raise ValueError(f"correlation id {correlation_id!r} is already outstanding")
        if timeout is not None and timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        loop = self._loop or asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()
        future.add_done_callback(_retrieve_exception)
        entry = PendingCommand(correlation_id=correlation_id, future=future, timeout=timeout)
        if timeout is not None:
            entry.timer = loop.call_later(timeout, self.expire, correlation_id)
        self._pending[correlation_id] = entry
        return future

    def resolve(self, correlation_id: str, result: Any) -> bool:
        """Deliver *result*. Unknown or finished ids are a logged no-op."""
        entry = self._finish(correlation_id, CommandState.RESOLVED)
        if entry is None:
            return False
        if not entry.future.done():
            entry.future.set_result(result)
        return True

    def reject(self, correlation_id: str, error: BaseException) -> bool:
        """Deliver *error*. Unknown or finished ids are a logged no-op."""
        entry = self._finish(correlation_id, CommandState.REJECTED)
        if entry is None:
            return False
        if not entry.future.done():
            entry.future.set_exception(error)
        return True

    def expire(self, correlation_id: str) -> bool:
        """Fail the entry with :class:`FarmbotTimeoutError` and drop it."""
        entry = self._finish(correlation_id, CommandState.TIMED_OUT)
        if entry is None:
            return False
        _logger.warning("Command %s timed out after %.3fs", correlation_id, entry.age)
        if not entry.future.done():
            entry.future.set_exception(
                FarmbotTimeoutError(
                    f"No reply to command {correlation_id} within {entry.timeout}s",
                    correlation_id=correlation_id,
                    timeout=entry.timeout,
                )
            )
        return True

    def fail_all(self, make_error: Callable[[str], BaseException]) -> int:
        """Reject every outstanding entry; returns how many were failed."""
        ids = list(self._pending)
        for correlation_id in ids:
            self.reject(correlation_id, make_error(correlation_id))
        if ids:
            _logger.debug("Failed %d pending command(s)", len(ids))
        return len(ids)

    def _finish(self, correlation_id: str, state: CommandState) -> PendingCommand | None:
        entry = self._pending.pop(correlation_id, None)
        if entry is None:
            _logger.debug("No pending command %s (duplicate or late reply); ignoring %s", correlation_id, state)
            return None
        entry.state = state
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None
        return entry
