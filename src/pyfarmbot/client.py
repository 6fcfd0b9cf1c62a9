"""High-level async client for a FarmBot device."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
from collections.abc import Callable, Sequence
from typing import Any

from pyfarmbot._client.correlator import Correlator
from pyfarmbot._client.dispatcher import Dispatcher
from pyfarmbot._client.lifecycle import LifecycleManager, Readiness, ReadinessListener
from pyfarmbot._constants import DEFAULT_RPC_PRIORITY, Topics
from pyfarmbot._mqtt import MqttTransport
from pyfarmbot._transport import Codec, Transport
from pyfarmbot.codec import JsonCodec
from pyfarmbot.config import ConnectionInfoProvider, FarmbotConfig
from pyfarmbot.exceptions import FarmbotConnectionLostError, FarmbotError
from pyfarmbot.ingestion.router import IngressRouter, LogListener
from pyfarmbot.models.messages import Command, RpcReply
from pyfarmbot.models.state import StateTree
from pyfarmbot.state.store import StateObserver, StateStore

_logger = logging.getLogger(__name__)


class FarmbotClient:
    """Async client that mirrors one device's state and sends it commands.

    Usage::

        async with FarmbotClient(config) as bot:
            print(bot.current_state().location_data.position)
            await bot.send(commands.move_relative(x=100))

    All engine work (merges, reply matching, timeouts) runs on the event
    loop that called :meth:`connect`. :meth:`current_state` is safe from any
    thread; other threads submit commands with :meth:`send_threadsafe`.
    """

    def __init__(
        self,
        config: FarmbotConfig,
        *,
        transport: Transport | None = None,
        codec: Codec | None = None,
        connection_info: ConnectionInfoProvider | None = None,
    ) -> None:
        self._config = config
        self._topics = Topics(config.device_id)
        self._codec: Codec = codec if codec is not None else JsonCodec(self._topics)
        if transport is None:
            provider = connection_info if connection_info is not None else config
            transport = MqttTransport(provider.connection_info(), keepalive=config.mqtt_keepalive)
        self._transport = transport
        self._loop: asyncio.AbstractEventLoop | None = None

        self._store = StateStore(accept_legacy_manifests=config.legacy_farmware_manifests)
        self._correlator = Correlator()
        self._dispatcher = Dispatcher(
            transport=self._transport,
            codec=self._codec,
            correlator=self._correlator,
            topics=self._topics,
            default_timeout=config.command_timeout,
        )
        self._lifecycle = LifecycleManager(
            transport=self._transport,
            store=self._store,
            correlator=self._correlator,
            dispatcher=self._dispatcher,
            topics=self._topics,
            on_message=self._on_transport_message,
            snapshot_timeout=config.snapshot_timeout,
        )
        self._router = IngressRouter(
            codec=self._codec,
            store=self._store,
            correlator=self._correlator,
            on_snapshot=self._lifecycle.apply_full_snapshot,
        )

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FarmbotClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.disconnect()

    async def connect(self, *, wait_ready: bool = True) -> None:
        """Connect and, by default, wait until the first full snapshot is applied."""
        self._loop = asyncio.get_running_loop()
        _logger.debug("Connecting %r", self._config)
        await self._lifecycle.connect(wait_ready=wait_ready)

    async def disconnect(self) -> None:
        """Disconnect; every pending command fails with ``FarmbotConnectionLostError``."""
        await self._lifecycle.disconnect()

    @property
    def readiness(self) -> Readiness:
        return self._lifecycle.readiness

    @property
    def config(self) -> FarmbotConfig:
        return self._config

    @property
    def topics(self) -> Topics:
        return self._topics

    @property
    def pending_commands(self) -> int:
        return len(self._correlator)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def current_state(self) -> StateTree:
        """Return an independent snapshot of the mirrored state."""
        return self._store.snapshot()

    @property
    def state_version(self) -> int:
        return self._store.version

    def on_state_change(self, callback: StateObserver) -> Callable[[], None]:
        """Observe merges and re-baselines. Returns an unsubscribe function."""
        return self._store.subscribe(callback)

    def on_log(self, callback: LogListener) -> Callable[[], None]:
        """Observe device log lines. Returns an unsubscribe function."""
        return self._router.subscribe_logs(callback)

    def on_readiness_change(self, callback: ReadinessListener) -> Callable[[], None]:
        return self._lifecycle.subscribe(callback)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def send(
        self,
        command: Command | Sequence[Command],
        *,
        timeout: float | None = None,
        correlation_id: str | None = None,
        priority: int = DEFAULT_RPC_PRIORITY,
    ) -> RpcReply:
        """Send a command and wait for the device's ``rpc_ok``.

        Raises
        ------
        FarmbotTransportError
            The command could not be published.
        FarmbotDeviceError
            The device answered with ``rpc_error``.
        FarmbotTimeoutError
            No reply within *timeout* (``config.command_timeout`` by default).
        FarmbotConnectionLostError
            The client is disconnected, or the connection dropped before
            the reply arrived.
        """
        if self._lifecycle.readiness is Readiness.DISCONNECTED:
            raise FarmbotConnectionLostError("Not connected")
        return await self._dispatcher.send(
            command,
            timeout=timeout,
            correlation_id=correlation_id,
            priority=priority,
        )

    def send_threadsafe(
        self,
        command: Command | Sequence[Command],
        *,
        timeout: float | None = None,
        correlation_id: str | None = None,
        priority: int = DEFAULT_RPC_PRIORITY,
    ) -> concurrent.futures.Future[RpcReply]:
        """Submit :meth:`send` to the client's loop from another thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            raise FarmbotError("Client not connected. Call 'await client.connect()' first.")
        return asyncio.run_coroutine_threadsafe(
            self.send(command, timeout=timeout, correlation_id=correlation_id, priority=priority),
            loop,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _on_transport_message(self, topic: str, payload: bytes) -> None:
        self._router.handle(topic, payload)
