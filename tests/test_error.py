"""Tests for the error taxonomy and its wire form."""

import asyncio

from framebridge import (
    BridgeDisposedError,
    ErrorCode,
    RpcError,
    RpcTimeoutError,
    TransportClosedError,
)


class TestRpcError:
    def test_factories(self) -> None:
        assert RpcError.bad_request("x").code == ErrorCode.BAD_REQUEST
        assert RpcError.not_found("x").code == ErrorCode.NOT_FOUND
        assert RpcError.permission_denied("x").code == ErrorCode.PERMISSION_DENIED
        assert RpcError.internal("x").code == ErrorCode.INTERNAL

    def test_to_details(self) -> None:
        error = RpcError.not_found("gone", {"method": "m"})
        assert error.to_details() == {
            "code": "not_found",
            "type": "RpcError",
            "data": {"method": "m"},
        }
        assert "data" not in RpcError.internal("x").to_details()

    def test_from_exception(self) -> None:
        wrapped = RpcError.from_exception(KeyError("k"))
        assert wrapped.code == ErrorCode.INTERNAL
        assert wrapped.data == {"type": "KeyError"}

        original = RpcError.bad_request("bad")
        assert RpcError.from_exception(original) is original

    def test_from_exception_empty_message(self) -> None:
        assert RpcError.from_exception(RuntimeError()).message == "RuntimeError"

    def test_from_wire(self) -> None:
        error = RpcError.from_wire("no", {"code": "permission_denied", "data": 1})
        assert error.code == ErrorCode.PERMISSION_DENIED
        assert error.message == "no"
        assert error.data == 1

    def test_from_wire_unknown_code(self) -> None:
        assert RpcError.from_wire("?", {"code": "weird"}).code == ErrorCode.INTERNAL
        assert RpcError.from_wire("?", None).code == ErrorCode.INTERNAL
        assert RpcError.from_wire("?", "details").code == ErrorCode.INTERNAL

    def test_from_wire_timeout(self) -> None:
        error = RpcError.from_wire("late", {"code": "timeout"})
        assert isinstance(error, RpcTimeoutError)


class TestSubclasses:
    def test_timeout_is_builtin_timeout(self) -> None:
        error = RpcTimeoutError("RPC timeout for method: add")
        assert isinstance(error, TimeoutError)
        assert isinstance(error, asyncio.TimeoutError)
        assert error.code == ErrorCode.TIMEOUT

    def test_cancellation_errors(self) -> None:
        assert TransportClosedError().code == ErrorCode.CANCELED
        assert str(TransportClosedError()) == "Transport is not available"
        assert str(BridgeDisposedError()) == "Bridge disposed"
        assert isinstance(BridgeDisposedError(), RpcError)
