"""Wire-level message models.

Outbound commands are CeleryScript nodes wrapped in an ``rpc_request`` whose
``args.label`` is the correlation id. The device echoes that label in its
``rpc_ok`` / ``rpc_error`` reply.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import ConfigDict, Field

from pyfarmbot._constants import DEFAULT_RPC_PRIORITY
from pyfarmbot.models._base import FarmbotBaseModel


class MessageKind(enum.StrEnum):
    """Classification of an inbound transport delivery."""

    STATUS = "status"
    STATUS_DELTA = "status_delta"
    JOB_PROGRESS = "job_progress"
    LOG = "log"
    RPC_OK = "rpc_ok"
    RPC_ERROR = "rpc_error"


class Command(FarmbotBaseModel):
    """A CeleryScript node, e.g. ``{"kind": "move_relative", "args": {...}}``."""

    kind: str
    args: dict[str, Any] = Field(default_factory=dict)
    body: list[Command] | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class RpcRequestArgs(FarmbotBaseModel):
    label: str
    priority: int = DEFAULT_RPC_PRIORITY


class RpcRequest(FarmbotBaseModel):
    """Envelope published to ``bot/<id>/from_clients``."""

    kind: Literal["rpc_request"] = "rpc_request"
    args: RpcRequestArgs
    body: list[Command] = Field(default_factory=list)

    @property
    def label(self) -> str:
        return self.args.label

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class RpcReply(FarmbotBaseModel):
    """Device acknowledgement of an ``rpc_request``."""

    kind: Literal["rpc_ok", "rpc_error"]
    label: str
    explanations: tuple[str, ...] = ()
    raw: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.kind == "rpc_ok"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> RpcReply:
        """Parse ``{"kind": "rpc_error", "args": {"label": ...}, "body": [...]}``.

        Explanations are the ``args.message`` of every ``explanation`` node
        in the body.
        """
        args = payload.get("args")
        label = args.get("label") if isinstance(args, Mapping) else None
        explanations: list[str] = []
        body = payload.get("body")
        if isinstance(body, list):
            for node in body:
                if not isinstance(node, Mapping) or node.get("kind") != "explanation":
                    continue
                node_args = node.get("args")
                message = node_args.get("message") if isinstance(node_args, Mapping) else None
                if isinstance(message, str) and message:
                    explanations.append(message)
        return cls.model_validate(
            {
                "kind": payload.get("kind"),
                "label": label,
                "explanations": tuple(explanations),
                "raw": dict(payload),
            }
        )


class DeviceLog(FarmbotBaseModel):
    """A log line published by FarmBot OS on ``bot/<id>/logs``."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    message: str
    type: str = "info"
    verbosity: int | None = None
    channels: list[str] = Field(default_factory=list)
    x: float | None = None
    y: float | None = None
    z: float | None = None
    created_at: float | None = None
    major_version: int | None = None
    minor_version: int | None = None


class InboundMessage(FarmbotBaseModel):
    """A decoded, classified transport delivery.

    ``payload`` is always a JSON object. For ``STATUS_DELTA`` and
    ``JOB_PROGRESS`` it is already expanded into a partial state tree.
    """

    kind: MessageKind
    topic: str
    payload: dict[str, Any] = Field(default_factory=dict)
    correlation_id: str | None = None
