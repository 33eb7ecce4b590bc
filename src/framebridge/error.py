"""Error types for the frame bridge.

Every failure of a single call surfaces to the caller as an ``RpcError``
(or one of its subclasses). Errors cross the channel as an error message
whose ``details`` carry the error code, so the caller can rebuild an error
of the same kind.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Error codes carried in the ``details.code`` field of error replies."""

    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    INTERNAL = "internal"
    TIMEOUT = "timeout"
    CANCELED = "canceled"


class RpcError(Exception):
    """An RPC failure with a code, a message and optional structured data."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        data: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.value!r}, {self.message!r})"

    @classmethod
    def bad_request(cls, message: str, data: Any | None = None) -> RpcError:
        return cls(ErrorCode.BAD_REQUEST, message, data)

    @classmethod
    def not_found(cls, message: str, data: Any | None = None) -> RpcError:
        return cls(ErrorCode.NOT_FOUND, message, data)

    @classmethod
    def permission_denied(cls, message: str, data: Any | None = None) -> RpcError:
        return cls(ErrorCode.PERMISSION_DENIED, message, data)

    @classmethod
    def internal(cls, message: str, data: Any | None = None) -> RpcError:
        return cls(ErrorCode.INTERNAL, message, data)

    def to_details(self) -> dict[str, Any]:
        """Build the ``details`` payload for an error reply."""
        details: dict[str, Any] = {"code": self.code.value, "type": type(self).__name__}
        if self.data is not None:
            details["data"] = self.data
        return details

    @staticmethod
    def from_exception(error: BaseException) -> RpcError:
        """Wrap an arbitrary exception, keeping RpcErrors unchanged."""
        if isinstance(error, RpcError):
            return error
        return RpcError(
            ErrorCode.INTERNAL,
            str(error) or type(error).__name__,
            {"type": type(error).__name__},
        )

    @staticmethod
    def from_wire(message: str, details: Any | None = None) -> RpcError:
        """Rebuild an error from the ``message``/``details`` of an error reply.

        Unknown or missing codes fall back to ``internal``.
        """
        code = ErrorCode.INTERNAL
        data = None
        if isinstance(details, dict):
            try:
                code = ErrorCode(details.get("code"))
            except ValueError:
                pass
            data = details.get("data")
        if code is ErrorCode.TIMEOUT:
            return RpcTimeoutError(message, data)
        return RpcError(code, message, data)


class RpcTimeoutError(RpcError, TimeoutError):
    """No reply arrived within the call's timeout window."""

    def __init__(self, message: str, data: Any | None = None) -> None:
        RpcError.__init__(self, ErrorCode.TIMEOUT, message, data)


class TransportClosedError(RpcError):
    """The message transport was disposed or never had a destination."""

    def __init__(self, message: str = "Transport is not available") -> None:
        super().__init__(ErrorCode.CANCELED, message)


class BridgeDisposedError(RpcError):
    """The bridge was disposed while the call was still pending."""

    def __init__(self, message: str = "Bridge disposed") -> None:
        super().__init__(ErrorCode.CANCELED, message)
