"""paho-mqtt transport.

Runs paho's threaded network loop and hands every callback to the engine's
asyncio loop with ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import threading
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from pyfarmbot._transport import MessageHandler
from pyfarmbot.config import ConnectionInfo
from pyfarmbot.exceptions import FarmbotTransportError


class MqttSubscription:
    def __init__(self, transport: MqttTransport, topic_filter: str) -> None:
        self._transport = transport
        self.topic_filter = topic_filter

    def unsubscribe(self) -> None:
        self._transport._unsubscribe(self.topic_filter)


class MqttTransport:
    """Threaded paho-mqtt transport that emits callbacks onto an asyncio loop."""

    def __init__(
        self,
        info: ConnectionInfo,
        *,
        keepalive: int = 60,
        qos: int = 1,
        logger: logging.Logger | None = None,
    ) -> None:
        self._info = info
        self._keepalive = keepalive
        self._qos = qos
        self._logger = logger or logging.getLogger(__name__)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._client: mqtt.Client | None = None
        self._running = False
        self._handlers: dict[str, MessageHandler] = {}
        self._handlers_lock = threading.Lock()
        self._connect_callbacks: list[Callable[[], None]] = []
        self._disconnect_callbacks: list[Callable[[], None]] = []

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is running."""
        return self._running

    def on_connect(self, callback: Callable[[], None]) -> None:
        self._connect_callbacks.append(callback)

    def on_disconnect(self, callback: Callable[[], None]) -> None:
        self._disconnect_callbacks.append(callback)

    async def connect(self) -> None:
        """Connect and start the network loop (blocking parts run in an executor)."""
        self._loop = asyncio.get_running_loop()
        await self._loop.run_in_executor(None, self._start)

    async def disconnect(self) -> None:
        loop = self._loop or asyncio.get_running_loop()
        await loop.run_in_executor(None, self._stop)

    def publish(self, topic: str, payload: bytes) -> None:
        client = self._require_client(topic)
        info = client.publish(topic, payload, qos=self._qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise FarmbotTransportError(
                f"Publish failed: {mqtt.error_string(info.rc)}",
                topic=topic,
            )

    def subscribe(self, topic_filter: str, on_message: MessageHandler) -> MqttSubscription:
        client = self._require_client(topic_filter)
        with self._handlers_lock:
            self._handlers[topic_filter] = on_message
        result, _mid = client.subscribe(topic_filter, qos=self._qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            with self._handlers_lock:
                self._handlers.pop(topic_filter, None)
            raise FarmbotTransportError(
                f"Subscribe failed: {mqtt.error_string(result)}",
                topic=topic_filter,
            )
        self._logger.debug("MQTT subscribed topic=%s", topic_filter)
        return MqttSubscription(self, topic_filter)

    def _unsubscribe(self, topic_filter: str) -> None:
        with self._handlers_lock:
            self._handlers.pop(topic_filter, None)
        client = self._client
        if client is not None:
            client.unsubscribe(topic_filter)

    def _require_client(self, topic: str) -> mqtt.Client:
        client = self._client
        if client is None or not self._running:
            raise FarmbotTransportError("MQTT transport is not running", topic=topic)
        return client

    def _call_soon(self, callback: Callable[..., None], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(callback, *args)

    def _start(self) -> None:
        self._stop()
        info = self._info
        self._logger.debug("MQTT transport start requested %r", info)

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=f"pyfarmbot-{secrets.token_hex(6)}",
            protocol=mqtt.MQTTv311,
        )
        client.enable_logger(self._logger)
        client.username_pw_set(info.device_id, info.token)
        client.reconnect_delay_set(min_delay=1, max_delay=30)
        if info.tls:
            client.tls_set()

        def on_connect(
            _client: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected reason=%s", reason_code)
            for callback in list(self._connect_callbacks):
                self._call_soon(callback)

        def on_message(_client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            with self._handlers_lock:
                handlers = [
                    handler
                    for topic_filter, handler in self._handlers.items()
                    if mqtt.topic_matches_sub(topic_filter, msg.topic)
                ]
            if not handlers:
                self._logger.debug("MQTT message without handler topic=%s", msg.topic)
                return
            payload = bytes(msg.payload)
            for handler in handlers:
                self._call_soon(handler, msg.topic, payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            self._logger.debug("MQTT disconnected: %s", reason_code)
            # paho forgets subscriptions with a clean session; the engine
            # re-subscribes on the next connect.
            with self._handlers_lock:
                self._handlers.clear()
            for callback in list(self._disconnect_callbacks):
                self._call_soon(callback)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        try:
            client.connect(info.host, info.port, keepalive=self._keepalive)
        except (OSError, ValueError) as exc:
            raise FarmbotTransportError(f"MQTT connect to {info.host}:{info.port} failed: {exc}") from exc

        # Connect callbacks may subscribe as soon as the network loop runs.
        self._client = client
        self._running = True
        try:
            client.loop_start()
        except Exception:
            self._client = None
            self._running = False
            raise
        self._logger.debug("MQTT network loop started")

    def _stop(self) -> None:
        """Stop and disconnect the current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        with self._handlers_lock:
            self._handlers.clear()

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
