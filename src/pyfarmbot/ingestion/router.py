"""Ingress routing.

Every transport delivery enters the engine here, once. The router decodes
it, classifies it and turns it into exactly one of:

- a state-store merge (deltas, job progress)
- a full-snapshot hand-off (re-baseline or merge, decided by the caller)
- a correlator resolution (command replies)
- a log event for listeners

Nothing raised while doing so escapes :meth:`IngressRouter.handle`.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable

from pydantic import ValidationError

from pyfarmbot._client.correlator import Correlator
from pyfarmbot._redact import redact_for_log
from pyfarmbot._transport import Codec
from pyfarmbot.exceptions import FarmbotDeviceError, FarmbotMalformedMessageError
from pyfarmbot.models.messages import DeviceLog, InboundMessage, MessageKind, RpcReply
from pyfarmbot.models.state import StateTree
from pyfarmbot.state.store import StateStore

_logger = logging.getLogger(__name__)

LogListener = Callable[[DeviceLog], None]


class IngressRouter:
    def __init__(
        self,
        *,
        codec: Codec,
        store: StateStore,
        correlator: Correlator,
        on_snapshot: Callable[[StateTree], None] | None = None,
    ) -> None:
        self._codec = codec
        self._store = store
        self._correlator = correlator
        self._on_snapshot = on_snapshot or store.replace_all
        self._log_listeners: list[LogListener] = []

    def subscribe_logs(self, listener: LogListener) -> Callable[[], None]:
        self._log_listeners.append(listener)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._log_listeners.remove(listener)

        return _unsubscribe

    def handle(self, topic: str, payload: bytes) -> None:
        """Decode and route one raw delivery."""
        try:
            message = self._codec.decode(topic, payload)
        except FarmbotMalformedMessageError as exc:
            _logger.warning("Dropping malformed message topic=%s: %s", topic, exc)
            return
        except Exception:
            _logger.warning("Dropping undecodable message topic=%s", topic, exc_info=True)
            return
        self.handle_message(message)

    def handle_message(self, message: InboundMessage) -> None:
        """Route an already-decoded message."""
        _logger.debug(
            "Routing %s topic=%s payload=%s",
            message.kind,
            message.topic,
            redact_for_log(message.payload, max_string=128, max_items=10),
        )
        try:
            self._route(message)
        except (ValidationError, FarmbotMalformedMessageError) as exc:
            _logger.warning("Dropping invalid %s message topic=%s: %s", message.kind, message.topic, exc)
        except Exception:
            _logger.warning("Failed to route %s message topic=%s", message.kind, message.topic, exc_info=True)

    def _route(self, message: InboundMessage) -> None:
        kind = message.kind
        if kind == MessageKind.STATUS:
            self._on_snapshot(StateTree.model_validate(message.payload))
            return
        if kind in (MessageKind.STATUS_DELTA, MessageKind.JOB_PROGRESS):
            self._store.merge(message.payload)
            return
        if kind in (MessageKind.RPC_OK, MessageKind.RPC_ERROR):
            self._route_reply(message)
            return
        if kind == MessageKind.LOG:
            self._emit_log(DeviceLog.model_validate(message.payload))
            return
        raise FarmbotMalformedMessageError(f"Unhandled message kind {kind}", topic=message.topic)

    def _route_reply(self, message: InboundMessage) -> None:
        reply = RpcReply.from_payload(message.payload)
        label = message.correlation_id or reply.label
        if reply.ok:
            self._correlator.resolve(label, reply)
            return
        detail = "; ".join(reply.explanations) or "no explanation given"
        self._correlator.reject(
            label,
            FarmbotDeviceError(
                f"Device rejected command {label}: {detail}",
                correlation_id=label,
                explanations=reply.explanations,
            ),
        )

    def _emit_log(self, log: DeviceLog) -> None:
        for listener in list(self._log_listeners):
            try:
                listener(log)
            except Exception:
                _logger.warning("Log listener %r failed", listener, exc_info=True)
