"""Connection lifecycle and readiness.

Owns:
- the readiness state machine (disconnected / connecting / ready)
- subscribing the device topics on every (re)connect
- requesting and applying the baseline snapshot for each connection epoch
- failing pending commands when the connection drops
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pyfarmbot._client.correlator import Correlator
from pyfarmbot._client.dispatcher import Dispatcher
from pyfarmbot._constants import Topics
from pyfarmbot._transport import MessageHandler, Subscription, Transport
from pyfarmbot.commands import read_status
from pyfarmbot.exceptions import (
    FarmbotConnectionLostError,
    FarmbotError,
    FarmbotTimeoutError,
    FarmbotTransportError,
)
from pyfarmbot.models.state import StateTree
from pyfarmbot.state.store import StateStore

_logger = logging.getLogger(__name__)


class Readiness(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"


_TRANSITIONS: dict[Readiness, frozenset[Readiness]] = {
    Readiness.DISCONNECTED: frozenset({Readiness.CONNECTING}),
    Readiness.CONNECTING: frozenset({Readiness.READY, Readiness.DISCONNECTED}),
    Readiness.READY: frozenset({Readiness.DISCONNECTED}),
}

ReadinessListener = Callable[[Readiness], None]


def _connection_lost(correlation_id: str) -> FarmbotConnectionLostError:
    return FarmbotConnectionLostError(f"Connection lost before a reply to command {correlation_id}")


class LifecycleManager:
    """Drives readiness from transport events.

    Must be used from the engine's event loop; the transport delivers its
    connect/disconnect callbacks there.
    """

    def __init__(
        self,
        *,
        transport: Transport,
        store: StateStore,
        correlator: Correlator,
        dispatcher: Dispatcher,
        topics: Topics,
        on_message: MessageHandler,
        snapshot_timeout: float,
    ) -> None:
        self._transport = transport
        self._store = store
        self._correlator = correlator
        self._dispatcher = dispatcher
        self._topics = topics
        self._on_message = on_message
        self._snapshot_timeout = snapshot_timeout

        self._readiness = Readiness.DISCONNECTED
        # Set when the current connection attempt is READY or has failed.
        self._settled = asyncio.Event()
        self._failure: FarmbotError | None = None
        self._teardown: asyncio.Task[None] | None = None
        self._awaiting_baseline = False
        self._closing = False
        self._subscriptions: list[Subscription] = []
        self._listeners: list[ReadinessListener] = []

        transport.on_connect(self._on_transport_connect)
        transport.on_disconnect(self._on_transport_disconnect)

    @property
    def readiness(self) -> Readiness:
        return self._readiness

    @property
    def awaiting_baseline(self) -> bool:
        return self._awaiting_baseline

    def subscribe(self, listener: ReadinessListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _unsubscribe

    async def connect(self, *, wait_ready: bool = True) -> None:
        """Start the transport and, optionally, wait for the first snapshot.

        Raises
        ------
        FarmbotTransportError
            The transport could not be started, or the device topics could
            not be subscribed.
        FarmbotTimeoutError
            *wait_ready* was set and no snapshot arrived within
            ``snapshot_timeout``. The snapshot is requested once per
            connection; a full status the device publishes later still
            completes readiness.
        """
        await self._finish_teardown()
        self._closing = False
        if self._readiness is Readiness.DISCONNECTED:
            self._transition(Readiness.CONNECTING)
            try:
                await self._transport.connect()
            except FarmbotTransportError:
                self._transition(Readiness.DISCONNECTED)
                raise
            except Exception as exc:
                self._transition(Readiness.DISCONNECTED)
                raise FarmbotTransportError(f"Transport connect failed: {exc}") from exc
        if wait_ready:
            try:
                await self.wait_ready(self._snapshot_timeout)
            except FarmbotTransportError:
                await self._finish_teardown()
                raise

    async def wait_ready(self, timeout: float | None = None) -> None:
        """Wait until READY; re-raise the error that aborted the connection, if any."""
        try:
            await asyncio.wait_for(self._settled.wait(), timeout)
        except TimeoutError as exc:
            raise FarmbotTimeoutError(f"No full state snapshot within {timeout}s", timeout=timeout) from exc
        if self._failure is not None:
            raise self._failure

    async def disconnect(self) -> None:
        """Graceful shutdown: unsubscribe, stop the transport, fail pending commands."""
        await self._finish_teardown()
        self._closing = True
        self._unsubscribe_all()
        try:
            await self._transport.disconnect()
        finally:
            self._on_transport_disconnect()

    def apply_full_snapshot(self, tree: StateTree) -> None:
        """Re-baseline once per connection epoch; later full trees are merged."""
        if self._awaiting_baseline:
            self._awaiting_baseline = False
            self._store.replace_all(tree)
            if self._readiness is Readiness.CONNECTING:
                self._transition(Readiness.READY)
            return
        self._store.merge(tree)

    def _on_transport_connect(self) -> None:
        if self._closing:
            _logger.debug("Ignoring transport connect during shutdown")
            return
        if self._teardown is not None and not self._teardown.done():
            _logger.debug("Ignoring transport connect while the failed connection is torn down")
            return
        if self._readiness is Readiness.READY:
            _logger.debug("Ignoring duplicate transport connect")
            return
        if self._readiness is Readiness.DISCONNECTED:
            # Transport reconnected on its own.
            self._transition(Readiness.CONNECTING)

        self._subscriptions.clear()
        try:
            for topic_filter in self._topics.subscriptions():
                self._subscriptions.append(self._transport.subscribe(topic_filter, self._on_message))
        except FarmbotError as exc:
            _logger.warning("Subscribing device topics failed: %s", exc)
            self._abort_connection(exc)
            return

        self._awaiting_baseline = True
        future = self._dispatcher.dispatch(read_status(), timeout=self._snapshot_timeout)
        future.add_done_callback(self._on_snapshot_request_done)

    def _on_snapshot_request_done(self, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is None:
            return
        if isinstance(error, FarmbotConnectionLostError):
            _logger.debug("Snapshot request abandoned: %s", error)
        else:
            _logger.warning("Snapshot request failed: %s", error)

    def _on_transport_disconnect(self) -> None:
        self._subscriptions.clear()
        self._awaiting_baseline = False
        if self._readiness is not Readiness.DISCONNECTED:
            self._transition(Readiness.DISCONNECTED)
        self._correlator.fail_all(_connection_lost)

    def _abort_connection(self, error: FarmbotError) -> None:
        """Roll back a half-set-up connection and stop the transport."""
        self._unsubscribe_all()
        self._awaiting_baseline = False
        self._transition(Readiness.DISCONNECTED)
        self._correlator.fail_all(_connection_lost)
        self._failure = error
        self._settled.set()
        if self._teardown is None or self._teardown.done():
            self._teardown = asyncio.get_running_loop().create_task(self._stop_transport())

    async def _stop_transport(self) -> None:
        try:
            await self._transport.disconnect()
        except Exception:
            _logger.warning("Stopping transport after failed connect raised", exc_info=True)

    async def _finish_teardown(self) -> None:
        teardown = self._teardown
        self._teardown = None
        if teardown is not None:
            await teardown

    def _unsubscribe_all(self) -> None:
        for subscription in self._subscriptions:
            try:
                subscription.unsubscribe()
            except FarmbotError:
                _logger.debug("Unsubscribe failed", exc_info=True)
        self._subscriptions.clear()

    def _transition(self, target: Readiness) -> bool:
        current = self._readiness
        if target not in _TRANSITIONS[current]:
            _logger.debug("Ignoring readiness transition %s -> %s", current, target)
            return False
        self._readiness = target
        if target is Readiness.READY:
            self._settled.set()
        else:
            if target is Readiness.CONNECTING:
                self._failure = None
            self._settled.clear()
        _logger.info("Device %s readiness %s -> %s", self._topics.device_id, current, target)
        for listener in list(self._listeners):
            try:
                listener(target)
            except Exception:
                _logger.warning("Readiness listener %r failed", listener, exc_info=True)
        return True
