"""Outbound command dispatch.

Builds ``rpc_request`` envelopes, registers them with the correlator and
hands them to the transport. Commands are never retried automatically;
callers that want a retry send a new command, which gets a new id.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from pyfarmbot._client.correlator import Correlator
from pyfarmbot._constants import DEFAULT_COMMAND_TIMEOUT, DEFAULT_RPC_PRIORITY, Topics
from pyfarmbot._redact import redact_for_log
from pyfarmbot._transport import Codec, Transport
from pyfarmbot.exceptions import FarmbotTransportError
from pyfarmbot.models.messages import Command, RpcReply, RpcRequest, RpcRequestArgs

_logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(
        self,
        *,
        transport: Transport,
        codec: Codec,
        correlator: Correlator,
        topics: Topics,
        default_timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        self._transport = transport
        self._codec = codec
        self._correlator = correlator
        self._topics = topics
        self._default_timeout = default_timeout

    def dispatch(
        self,
        command: Command | Sequence[Command],
        *,
        timeout: float | None = None,
        correlation_id: str | None = None,
        priority: int = DEFAULT_RPC_PRIORITY,
    ) -> asyncio.Future[RpcReply]:
        """Register, publish and return the future for one ``rpc_request``.

        Registration happens before publication, in the same synchronous
        call, so a reply delivered during ``publish`` still finds its entry.
        A publish failure rejects the future at once with
        :class:`FarmbotTransportError`.
        """
        body = [command] if isinstance(command, Command) else list(command)
        if not body:
            raise ValueError("at least one command is required")

        label = correlation_id or self._correlator.new_id()
        request = RpcRequest(args=RpcRequestArgs(label=label, priority=priority), body=body)
        payload = self._codec.encode(request)
        effective_timeout = timeout if timeout is not None else self._default_timeout

        future = self._correlator.register(label, timeout=effective_timeout)
        topic = self._topics.from_clients
        _logger.debug("Publishing rpc_request label=%s body=%s", label, redact_for_log(request.to_wire()["body"]))
        try:
            self._transport.publish(topic, payload)
        except FarmbotTransportError as exc:
            _logger.warning("Publish failed for command %s: %s", label, exc)
            self._correlator.reject(label, exc)
        except Exception as exc:
            _logger.warning("Publish failed for command %s", label, exc_info=True)
            error = FarmbotTransportError(f"Publish failed: {exc}", topic=topic)
            error.__cause__ = exc
            self._correlator.reject(label, error)
        return future

    async def send(
        self,
        command: Command | Sequence[Command],
        *,
        timeout: float | None = None,
        correlation_id: str | None = None,
        priority: int = DEFAULT_RPC_PRIORITY,
    ) -> RpcReply:
        """Dispatch and await the reply.

        Cancelling the awaiting task does not cancel the pending command: it
        stays registered until its reply, timeout or a disconnect.
        """
        future = self.dispatch(command, timeout=timeout, correlation_id=correlation_id, priority=priority)
        return await asyncio.shield(future)
