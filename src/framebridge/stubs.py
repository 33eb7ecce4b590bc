"""Caller-side stubs.

An ``RpcStub`` turns attribute access into remote calls::

    editor = bridge.get_stub("EditorModule")
    text = await editor.get_text(3)

Calling a stub method sends the request right away and returns an
``asyncio.Future``. Nothing raises at the call site: every failure,
including an unavailable transport, arrives through the future.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from framebridge.registry import PendingCallRegistry
from framebridge.transport import MessageTransport
from framebridge.wire import RpcRequest, new_correlation_id
from framebridge.windows import MessageTarget

logger = logging.getLogger(__name__)


class StubFactory:
    """Creates and caches stubs, and issues the correlated calls behind them."""

    def __init__(
        self,
        transport: MessageTransport,
        registry: PendingCallRegistry,
        destination: Callable[[], MessageTarget | None],
        default_timeout: float = 5.0,
    ) -> None:
        """Initialize the factory.

        Args:
            transport: Transport used to send requests
            registry: Registry tracking the pending calls
            destination: Returns the context calls are posted to; looked up
                on every call so a replaced endpoint is picked up
            default_timeout: Timeout in seconds for stubs without an override
        """
        self.transport = transport
        self.registry = registry
        self.destination = destination
        self.default_timeout = default_timeout
        self._stubs: dict[tuple[str, float | None], RpcStub] = {}

    def get_stub(self, target: str = "", timeout: float | None = None) -> RpcStub:
        """Return the stub for ``target``, creating it on first use."""
        key = (target, timeout)
        stub = self._stubs.get(key)
        if stub is None:
            stub = RpcStub(self, target, timeout)
            self._stubs[key] = stub
        return stub

    def clear(self) -> None:
        self._stubs.clear()

    def invoke(
        self,
        target: str,
        method: str,
        args: list[Any] | tuple[Any, ...] = (),
        timeout: float | None = None,
    ) -> asyncio.Future[Any]:
        """Call ``method`` on ``target`` and return a future for the result.

        Must be called from within a running event loop.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        request = RpcRequest(
            correlation_id=new_correlation_id(),
            method=method,
            args=list(args),
            target=target,
        )
        try:
            self.registry.register(
                request.correlation_id,
                future,
                timeout if timeout is not None else self.default_timeout,
                method,
            )
        except Exception as e:
            future.set_exception(e)
            return future

        try:
            self.transport.send(self.destination(), request)
        except Exception as e:
            logger.debug("Failed to send %s (%s): %s", request.correlation_id, method, e)
            self.registry.reject(request.correlation_id, e)
        return future


class RpcStub:
    """Proxy for a remote handler group.

    Any public attribute is a ``RemoteMethod``; private names raise
    ``AttributeError`` so Python protocol lookups never hit the wire.

    ``invoke`` is reserved for calling by name, so a remote method that is
    itself called ``invoke`` is reached as ``stub.invoke("invoke", ...)``.
    """
    __slots__ = ('_factory', '_target', '_timeout')

    def __init__(
        self,
        factory: StubFactory,
        target: str = "",
        timeout: float | None = None,
    ) -> None:
        object.__setattr__(self, "_factory", factory)
        object.__setattr__(self, "_target", target)
        object.__setattr__(self, "_timeout", timeout)

    def __getattr__(self, name: str) -> RemoteMethod:
        if name.startswith("_"):
            msg = f"'{type(self).__name__}' object has no attribute '{name}'"
            raise AttributeError(msg)
        return RemoteMethod(self._factory, self._target, name, self._timeout)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"'{type(self).__name__}' object is read-only")

    def invoke(self, method: str, *args: Any) -> asyncio.Future[Any]:
        """Call ``method`` by name; useful when the name is not an identifier."""
        return self._factory.invoke(self._target, method, args, self._timeout)

    def __repr__(self) -> str:
        return f"RpcStub(target={self._target!r})"


class RemoteMethod:
    """A bound remote method; calling it issues one RPC."""
    __slots__ = ('_factory', 'target', 'method', 'timeout')

    def __init__(
        self,
        factory: StubFactory,
        target: str,
        method: str,
        timeout: float | None = None,
    ) -> None:
        self._factory = factory
        self.target = target
        self.method = method
        self.timeout = timeout

    def __call__(self, *args: Any, **kwargs: Any) -> asyncio.Future[Any]:
        if kwargs:
            future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
            future.set_exception(
                NotImplementedError("Keyword arguments are not supported in RPC calls")
            )
            return future
        return self._factory.invoke(self.target, self.method, args, self.timeout)

    def __repr__(self) -> str:
        return f"RemoteMethod({self.target!r}, {self.method!r})"
