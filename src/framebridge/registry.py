"""Pending-call registry: the caller-side table of in-flight calls.

Each entry is removed exactly once, either by its reply or by its timer,
and removal and settlement happen in the same loop step. A reply for an id
that is no longer registered (late, duplicate or stray) is ignored.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from framebridge.error import RpcError, RpcTimeoutError
from framebridge.wire import RpcErrorMessage, RpcReply, RpcResponse

logger = logging.getLogger(__name__)


class PendingCall:
    """An in-flight call waiting for its reply."""
    __slots__ = ('correlation_id', 'future', 'timer', 'method')

    def __init__(
        self,
        correlation_id: str,
        future: asyncio.Future[Any],
        timer: asyncio.TimerHandle,
        method: str = "",
    ) -> None:
        self.correlation_id = correlation_id
        self.future = future
        self.timer = timer
        self.method = method


class PendingCallRegistry:
    """Tracks pending calls by correlation id and enforces their timeouts."""

    def __init__(self) -> None:
        self._pending: dict[str, PendingCall] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, correlation_id: object) -> bool:
        return correlation_id in self._pending

    def register(
        self,
        correlation_id: str,
        future: asyncio.Future[Any],
        timeout: float,
        method: str = "",
    ) -> None:
        """Track ``future`` under ``correlation_id`` and start its timer.

        Raises:
            ValueError: If the id is already pending
        """
        if correlation_id in self._pending:
            raise ValueError(f"Correlation id already pending: {correlation_id}")

        loop = asyncio.get_running_loop()
        timer = loop.call_later(timeout, self._expire, correlation_id)
        self._pending[correlation_id] = PendingCall(correlation_id, future, timer, method)

    def settle(self, correlation_id: str, reply: RpcReply) -> bool:
        """Settle the call ``correlation_id`` with ``reply``.

        Returns:
            True if a pending call was settled, False if none was registered
        """
        entry = self._pending.pop(correlation_id, None)
        if entry is None:
            return False
        entry.timer.cancel()

        if isinstance(reply, RpcResponse):
            _set_result(entry.future, reply.result)
        elif isinstance(reply, RpcErrorMessage):
            _set_exception(entry.future, RpcError.from_wire(reply.message, reply.details))
        else:
            _set_exception(
                entry.future,
                RpcError.internal(f"Unexpected reply type: {type(reply).__name__}"),
            )
        return True

    def reject(self, correlation_id: str, error: BaseException) -> bool:
        """Fail the call ``correlation_id`` locally (e.g. a send failure)."""
        entry = self._pending.pop(correlation_id, None)
        if entry is None:
            return False
        entry.timer.cancel()
        _set_exception(entry.future, error)
        return True

    def reject_all(self, error: BaseException) -> int:
        """Fail every pending call; returns how many were rejected."""
        pending = list(self._pending.values())
        self._pending.clear()
        for entry in pending:
            entry.timer.cancel()
            _set_exception(entry.future, error)
        return len(pending)

    def _expire(self, correlation_id: str) -> None:
        entry = self._pending.pop(correlation_id, None)
        if entry is None:
            return
        logger.debug("RPC %s timed out (%s)", correlation_id, entry.method)
        _set_exception(entry.future, RpcTimeoutError(f"RPC timeout for method: {entry.method}"))


def _set_result(future: asyncio.Future[Any], value: Any) -> None:
    # The caller may have cancelled the future to abandon the call.
    if not future.done():
        future.set_result(value)


def _set_exception(future: asyncio.Future[Any], error: BaseException) -> None:
    if not future.done():
        future.set_exception(error)
