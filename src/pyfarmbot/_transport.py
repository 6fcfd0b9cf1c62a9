"""Collaborator interfaces consumed by the engine.

Production implementations are :class:`~pyfarmbot._mqtt.MqttTransport` and
:class:`~pyfarmbot.codec.JsonCodec`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from pyfarmbot.models.messages import InboundMessage, RpcRequest

MessageHandler = Callable[[str, bytes], None]
"""Called with ``(topic, payload)`` for every delivery matching a subscription."""


class Subscription(Protocol):
    def unsubscribe(self) -> None: ...


class Transport(Protocol):
    """Publish/subscribe transport.

    Implementations must deliver every callback (messages, connect,
    disconnect) on the engine's event loop.
    """

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    def publish(self, topic: str, payload: bytes) -> None:
        """Hand *payload* to the transport. Raises ``FarmbotTransportError``."""
        ...

    def subscribe(self, topic_filter: str, on_message: MessageHandler) -> Subscription: ...

    def on_connect(self, callback: Callable[[], None]) -> None: ...

    def on_disconnect(self, callback: Callable[[], None]) -> None: ...


class Codec(Protocol):
    def encode(self, request: RpcRequest) -> bytes: ...

    def decode(self, topic: str, payload: bytes) -> InboundMessage:
        """Classify and parse a delivery. Raises ``FarmbotMalformedMessageError``."""
        ...
