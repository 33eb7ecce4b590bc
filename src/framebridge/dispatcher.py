"""Receiver side: resolve incoming requests through the handler cascade.

Tiers are tried in a fixed order and the first tier that has the method
runs it:

1. the handler registered for the sender's frame identity
2. the global handler
3. the local capability object
4. the remote module proxy named by the request's target (if any)

Every request gets exactly one reply: a response with the result, or an
error when the method raised or no tier has it.
"""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Mapping
from typing import Any, Callable, Protocol

from framebridge.capabilities import NOT_HANDLED, LocalCapabilities
from framebridge.config import DEFAULT_FRAME_ID
from framebridge.error import RpcError
from framebridge.identity import SourceIdentityResolver
from framebridge.transport import MessageTransport
from framebridge.wire import RpcErrorMessage, RpcReply, RpcRequest, RpcResponse
from framebridge.windows import MessageEvent

logger = logging.getLogger(__name__)


class RemoteProxyFactory(Protocol):
    """Source of remote module proxies (see ``RemoteModuleClient``)."""

    def get_proxy(self, module: str) -> Any:
        ...


def find_method(handler: Any, method: str) -> Callable[..., Any] | None:
    """Return ``handler``'s callable ``method``, or None.

    Private names are never exposed. Mappings of name to callable count as
    handlers too.
    """
    if handler is None or not method or method.startswith("_"):
        return None
    if isinstance(handler, Mapping):
        func = handler.get(method)
    else:
        try:
            func = getattr(handler, method, None)
        except Exception:
            logger.debug("Attribute lookup %r failed on %r", method, handler, exc_info=True)
            return None
    return func if callable(func) else None


async def _call(func: Callable[..., Any], args: list[Any]) -> Any:
    try:
        result = func(*args)
    except TypeError as e:
        # Convert argument errors to RPC errors
        raise RpcError.bad_request(str(e)) from e
    if inspect.isawaitable(result):
        result = await result
    return result


class CascadingDispatcher:
    """Resolves and executes requests, replying through the transport."""

    def __init__(
        self,
        transport: MessageTransport,
        resolver: SourceIdentityResolver,
        capabilities: LocalCapabilities | None = None,
        remote: RemoteProxyFactory | None = None,
        default_identity: str = DEFAULT_FRAME_ID,
        on_send_error: Callable[[Exception], Exception | None] | None = None,
    ) -> None:
        self.transport = transport
        self.resolver = resolver
        self.capabilities = capabilities
        self.remote = remote
        self.default_identity = default_identity
        self._on_send_error = on_send_error
        self._frame_handlers: dict[str, Any] = {}
        self._global_handler: Any = None
        self._remote_proxies: dict[str, Any] = {}

    # -------------------------------------------------------------------------
    # Handler registration
    # -------------------------------------------------------------------------

    def register_handler(self, handler: Any, identity: str | None = None) -> None:
        """Register ``handler`` for the frame ``identity``."""
        self._frame_handlers[identity or self.default_identity] = handler

    def register_global_handler(self, handler: Any) -> None:
        """Register the handler used for senders without a frame handler."""
        self._global_handler = handler

    def unregister(self, identity: str) -> None:
        self._frame_handlers.pop(identity, None)

    def unregister_global_handler(self) -> None:
        self._global_handler = None

    def get_handlers(self) -> dict[str, Any]:
        """Return the registered handlers, for debugging."""
        return {
            "global": self._global_handler,
            "frames": dict(self._frame_handlers),
        }

    def clear(self) -> None:
        self._frame_handlers.clear()
        self._global_handler = None
        self._remote_proxies.clear()

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def _remote_proxy(self, target: str) -> Any:
        proxy = self._remote_proxies.get(target)
        if proxy is None and self.remote is not None:
            proxy = self.remote.get_proxy(target)
            self._remote_proxies[target] = proxy
        return proxy

    async def resolve(self, request: RpcRequest, identity: str | None) -> Any:
        """Run ``request`` on the first tier that has its method.

        Raises:
            RpcError: ``not_found`` if no tier has the method; otherwise
                whatever the handler raised
        """
        method = request.method
        args = request.args

        if identity is not None:
            func = find_method(self._frame_handlers.get(identity), method)
            if func is not None:
                return await _call(func, args)

        func = find_method(self._global_handler, method)
        if func is not None:
            return await _call(func, args)

        if self.capabilities is not None and self.capabilities.supports(method):
            try:
                result = await self.capabilities.invoke(method, args)
            except TypeError as e:
                raise RpcError.bad_request(str(e)) from e
            if result is not NOT_HANDLED:
                return result

        if request.target:
            func = find_method(self._remote_proxy(request.target), method)
            if func is not None:
                return await _call(func, args)

        logger.warning("RPC method not found in any handler: %s", method)
        raise RpcError.not_found(
            f"RPC method not found in any handler: {method}",
            {"method": method, "target": request.target},
        )

    async def dispatch(self, request: RpcRequest, event: MessageEvent) -> RpcReply:
        """Resolve ``request`` and send exactly one reply to its sender."""
        identity = self.resolver.resolve(event)
        if identity is None:
            logger.debug(
                "No frame identity for sender of %s (%s); skipping frame handlers",
                request.correlation_id, request.method,
            )

        reply: RpcReply
        try:
            result = await self.resolve(request, identity)
        except Exception as e:
            reply = self._error_reply(request, e)
        else:
            try:
                json.dumps(result)
            except (TypeError, ValueError) as e:
                reply = self._error_reply(request, RpcError.internal(
                    f"Result of {request.method} is not serializable: {e}"
                ))
            else:
                reply = RpcResponse(request.correlation_id, result)

        self.transport.reply(event, reply)
        return reply

    def _error_reply(self, request: RpcRequest, error: Exception) -> RpcErrorMessage:
        if self._on_send_error is not None:
            try:
                error = self._on_send_error(error) or error
            except Exception:
                logger.exception("on_send_error callback failed")
        if not isinstance(error, RpcError):
            logger.debug("Handler for %s raised", request.method, exc_info=error)
        rpc_error = RpcError.from_exception(error)
        details = rpc_error.to_details()
        try:
            json.dumps(details)
        except (TypeError, ValueError):
            # Keep code and message; the data only survives as text
            details["data"] = repr(rpc_error.data)
        return RpcErrorMessage(request.correlation_id, rpc_error.message, details)
