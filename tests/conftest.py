"""Shared test doubles for the transport collaborator."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import paho.mqtt.client as mqtt
import pytest

from pyfarmbot._constants import Topics
from pyfarmbot.config import FarmbotConfig

DEVICE_ID = "device_42"

MessageHandler = Callable[[str, bytes], None]


class FakeSubscription:
    def __init__(self, transport: FakeTransport, topic_filter: str) -> None:
        self._transport = transport
        self.topic_filter = topic_filter

    def unsubscribe(self) -> None:
        self._transport.handlers.pop(self.topic_filter, None)
        self._transport.unsubscribed.append(self.topic_filter)


class FakeTransport:
    """In-memory transport. Callbacks run synchronously on the caller's loop.

    ``device`` (if set) is called after every publish with the decoded
    request and may deliver replies synchronously, like a very fast device.
    """

    def __init__(self, device_id: str = DEVICE_ID) -> None:
        self.topics = Topics(device_id)
        self.published: list[tuple[str, bytes]] = []
        self.handlers: dict[str, MessageHandler] = {}
        self.unsubscribed: list[str] = []
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.auto_connect = True
        self.publish_error: Exception | None = None
        self.subscribe_errors: dict[str, Exception] = {}
        self.device: Callable[[FakeTransport, dict[str, Any]], None] | None = None
        self._connect_callbacks: list[Callable[[], None]] = []
        self._disconnect_callbacks: list[Callable[[], None]] = []

    # Transport protocol ------------------------------------------------

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.auto_connect:
            self.fire_connect()

    async def disconnect(self) -> None:
        self.disconnect_calls += 1

    def publish(self, topic: str, payload: bytes) -> None:
        if self.publish_error is not None:
            raise self.publish_error
        self.published.append((topic, payload))
        if self.device is not None:
            self.device(self, json.loads(payload))

    def subscribe(self, topic_filter: str, on_message: MessageHandler) -> FakeSubscription:
        error = self.subscribe_errors.get(topic_filter)
        if error is not None:
            raise error
        self.handlers[topic_filter] = on_message
        return FakeSubscription(self, topic_filter)

    def on_connect(self, callback: Callable[[], None]) -> None:
        self._connect_callbacks.append(callback)

    def on_disconnect(self, callback: Callable[[], None]) -> None:
        self._disconnect_callbacks.append(callback)

    # Test helpers ------------------------------------------------------

    def fire_connect(self) -> None:
        for callback in list(self._connect_callbacks):
            callback()

    def fire_disconnect(self) -> None:
        self.handlers.clear()
        for callback in list(self._disconnect_callbacks):
            callback()

    def deliver(self, topic: str, payload: bytes | dict[str, Any] | Any) -> None:
        raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        for topic_filter, handler in list(self.handlers.items()):
            if mqtt.topic_matches_sub(topic_filter, topic):
                handler(topic, raw)

    def reply_ok(self, label: str) -> None:
        self.deliver(self.topics.from_device, {"kind": "rpc_ok", "args": {"label": label}})

    def reply_error(self, label: str, *messages: str) -> None:
        self.deliver(
            self.topics.from_device,
            {
                "kind": "rpc_error",
                "args": {"label": label},
                "body": [{"kind": "explanation", "args": {"message": m}} for m in messages],
            },
        )

    def publish_status(self, tree: dict[str, Any]) -> None:
        self.deliver(self.topics.status, tree)

    def requests(self) -> list[dict[str, Any]]:
        return [json.loads(payload) for topic, payload in self.published if topic == self.topics.from_clients]


def _answering_device(status: dict[str, Any]) -> Callable[[FakeTransport, dict[str, Any]], None]:
    """A device that acks every request and answers ``read_status`` with *status*."""

    def _device(transport: FakeTransport, request: dict[str, Any]) -> None:
        label = request["args"]["label"]
        transport.reply_ok(label)
        if any(node["kind"] == "read_status" for node in request["body"]):
            transport.publish_status(status)

    return _device


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def topics() -> Topics:
    return Topics(DEVICE_ID)


@pytest.fixture
def config() -> FarmbotConfig:
    return FarmbotConfig(
        device_id=DEVICE_ID,
        token="secret-token",
        command_timeout=1.0,
        snapshot_timeout=0.5,
    )


@pytest.fixture
def answering_device() -> Callable[[dict[str, Any]], Callable[[FakeTransport, dict[str, Any]], None]]:
    return _answering_device
