"""Wire messages exchanged over the frame channel.

Three message kinds share one channel with arbitrary foreign traffic::

    Request:  {correlationId, kind: "request", method, args, target}
    Response: {correlationId, kind: "response", result}
    Error:    {correlationId, kind: "error", message, details?}

Messages are plain JSON-compatible dicts on the channel. ``parse_message``
is the filter: anything that does not look like one of the three kinds is
not RPC traffic and yields ``None``.
"""

from __future__ import annotations

import itertools
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final, Literal, Union

KIND_REQUEST: Final[str] = "request"
KIND_RESPONSE: Final[str] = "response"
KIND_ERROR: Final[str] = "error"

_id_counter = itertools.count(1)


def new_correlation_id() -> str:
    """Return a fresh correlation id: ``rpc-<epoch ms>-<counter>``."""
    return f"rpc-{int(time.time() * 1000)}-{next(_id_counter)}"


@dataclass(frozen=True, slots=True)
class RpcRequest:
    """A call of ``method`` with ``args`` on the handler group ``target``.

    An empty target means the call is resolved by the receiver's local
    cascade only.
    """

    correlation_id: str
    method: str
    args: list[Any] = field(default_factory=list)
    target: str = ""
    kind: Literal["request"] = KIND_REQUEST

    def to_json(self) -> dict[str, Any]:
        return {
            "correlationId": self.correlation_id,
            "kind": self.kind,
            "method": self.method,
            "args": list(self.args),
            "target": self.target,
        }

    @staticmethod
    def from_json(data: Mapping[str, Any]) -> RpcRequest:
        method = data.get("method")
        if not isinstance(method, str) or not method:
            msg = f"Request method must be a non-empty string, got {method!r}"
            raise ValueError(msg)
        args = data.get("args")
        if args is None:
            args = []
        if not isinstance(args, list):
            msg = f"Request args must be a list, got {type(args).__name__}"
            raise ValueError(msg)
        target = data.get("target") or ""
        if not isinstance(target, str):
            msg = f"Request target must be a string, got {type(target).__name__}"
            raise ValueError(msg)
        return RpcRequest(data["correlationId"], method, args, target)


@dataclass(frozen=True, slots=True)
class RpcResponse:
    """Successful outcome of a request."""

    correlation_id: str
    result: Any = None
    kind: Literal["response"] = KIND_RESPONSE

    def to_json(self) -> dict[str, Any]:
        return {
            "correlationId": self.correlation_id,
            "kind": self.kind,
            "result": self.result,
        }

    @staticmethod
    def from_json(data: Mapping[str, Any]) -> RpcResponse:
        return RpcResponse(data["correlationId"], data.get("result"))


@dataclass(frozen=True, slots=True)
class RpcErrorMessage:
    """Failed outcome of a request."""

    correlation_id: str
    message: str
    details: Any | None = None
    kind: Literal["error"] = KIND_ERROR

    def to_json(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "correlationId": self.correlation_id,
            "kind": self.kind,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result

    @staticmethod
    def from_json(data: Mapping[str, Any]) -> RpcErrorMessage:
        message = data.get("message")
        if not isinstance(message, str):
            msg = f"Error message must be a string, got {type(message).__name__}"
            raise ValueError(msg)
        return RpcErrorMessage(data["correlationId"], message, data.get("details"))


RpcMessage = Union[RpcRequest, RpcResponse, RpcErrorMessage]
RpcReply = Union[RpcResponse, RpcErrorMessage]

_PARSERS: Final = {
    KIND_REQUEST: RpcRequest.from_json,
    KIND_RESPONSE: RpcResponse.from_json,
    KIND_ERROR: RpcErrorMessage.from_json,
}


def parse_message(data: Any) -> RpcMessage | None:
    """Parse channel data into an RPC message, or ``None`` for foreign traffic.

    Never raises: a malformed message on a shared channel belongs to someone
    else.
    """
    if not isinstance(data, Mapping):
        return None
    correlation_id = data.get("correlationId")
    if not isinstance(correlation_id, str) or not correlation_id:
        return None
    kind = data.get("kind")
    parser = _PARSERS.get(kind) if isinstance(kind, str) else None
    if parser is None:
        return None
    try:
        return parser(data)
    except (KeyError, ValueError):
        return None
