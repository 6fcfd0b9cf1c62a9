"""Custom exception hierarchy for pyfarmbot."""

from __future__ import annotations

from collections.abc import Sequence


class FarmbotError(Exception):
    """Base exception for all pyfarmbot errors."""


class FarmbotConfigError(FarmbotError):
    """Invalid or missing configuration."""


class FarmbotTransportError(FarmbotError):
    """Publish/subscribe failure reported by the transport.

    Surfaced immediately to the caller of ``send``; never retried.
    """

    def __init__(self, message: str, *, topic: str = "") -> None:
        self.topic = topic
        super().__init__(message)


class FarmbotTimeoutError(FarmbotError, TimeoutError):
    """No reply arrived for a command within its deadline."""

    def __init__(self, message: str, *, correlation_id: str = "", timeout: float | None = None) -> None:
        self.correlation_id = correlation_id
        self.timeout = timeout
        super().__init__(message)


class FarmbotDeviceError(FarmbotError):
    """The device explicitly reported failure for a command (``rpc_error``)."""

    def __init__(
        self,
        message: str,
        *,
        correlation_id: str = "",
        explanations: Sequence[str] = (),
    ) -> None:
        self.correlation_id = correlation_id
        self.explanations = tuple(explanations)
        super().__init__(message)


class FarmbotConnectionLostError(FarmbotError):
    """The connection dropped while a command was outstanding.

    Delivery of the command cannot be assumed.
    """


class FarmbotMalformedMessageError(FarmbotError):
    """An inbound message could not be decoded or classified.

    Raised by the codec and contained by the ingress router: it is logged
    and dropped, never surfaced to callers.
    """

    def __init__(self, message: str, *, topic: str = "") -> None:
        self.topic = topic
        super().__init__(message)
