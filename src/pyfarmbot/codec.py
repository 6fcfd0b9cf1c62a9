"""JSON wire codec for the FarmBot MQTT topics."""

from __future__ import annotations

import json

from pyfarmbot._constants import Topics
from pyfarmbot.exceptions import FarmbotMalformedMessageError
from pyfarmbot.ingestion.normalize import expand_path, load_json, load_json_object, split_path
from pyfarmbot.models.messages import InboundMessage, MessageKind, RpcRequest

_REPLY_KINDS: dict[str, MessageKind] = {
    "rpc_ok": MessageKind.RPC_OK,
    "rpc_error": MessageKind.RPC_ERROR,
}


class JsonCodec:
    """Encode ``rpc_request`` envelopes and classify inbound deliveries by topic.

    Classification never looks at payload content alone: the topic decides
    the kind, the payload only has to match it.
    """

    def __init__(self, topics: Topics) -> None:
        self._topics = topics

    @property
    def topics(self) -> Topics:
        return self._topics

    def encode(self, request: RpcRequest) -> bytes:
        return json.dumps(request.to_wire(), separators=(",", ":")).encode("utf-8")

    def decode(self, topic: str, payload: bytes) -> InboundMessage:
        topics = self._topics

        if topic == topics.status:
            return InboundMessage(
                kind=MessageKind.STATUS,
                topic=topic,
                payload=load_json_object(payload, topic=topic),
            )

        if topic.startswith(topics.status_upsert_prefix):
            path = topic[len(topics.status_upsert_prefix) :]
            partial = expand_path(path, load_json(payload, topic=topic), topic=topic)
            kind = MessageKind.JOB_PROGRESS if split_path(path)[:1] == ["jobs"] else MessageKind.STATUS_DELTA
            return InboundMessage(kind=kind, topic=topic, payload=partial)

        if topic == topics.from_device:
            body = load_json_object(payload, topic=topic)
            kind = _REPLY_KINDS.get(str(body.get("kind")))
            if kind is None:
                raise FarmbotMalformedMessageError(f"Unexpected reply kind {body.get('kind')!r}", topic=topic)
            args = body.get("args")
            label = args.get("label") if isinstance(args, dict) else None
            if not isinstance(label, str) or not label:
                raise FarmbotMalformedMessageError("Reply carries no correlation label", topic=topic)
            return InboundMessage(kind=kind, topic=topic, payload=body, correlation_id=label)

        if topic == topics.logs:
            return InboundMessage(
                kind=MessageKind.LOG,
                topic=topic,
                payload=load_json_object(payload, topic=topic),
            )

        raise FarmbotMalformedMessageError("Unrecognized topic", topic=topic)
