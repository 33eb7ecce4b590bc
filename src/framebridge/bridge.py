"""The Bridge: one owned RPC endpoint on a messaging context.

A Bridge bundles both halves of the RPC bridge for one context:

- caller side: stubs whose calls go to ``parent`` (a guest's host, by
  default ``window.parent``), with a pending-call registry
- receiver side: a dispatcher that answers requests posted to ``window``

All state belongs to the instance; ``dispose()`` removes the listener and
fails anything still pending.

Example (host and guest in one process):
    ```python
    host_window = LocalWindow("host")
    guest_window = host_window.open_frame("editor")

    async with Bridge(host_window, capabilities=HostCapabilities()) as host, \\
               Bridge(guest_window) as guest:
        host.register_handler(EditorApi(), "editor")
        host.attach_frame("editor", guest_window)

        api = guest.get_stub()
        print(await api.get_text())
    ```
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Self

from framebridge.capabilities import LocalCapabilities
from framebridge.config import BridgeConfig
from framebridge.dispatcher import CascadingDispatcher, RemoteProxyFactory
from framebridge.error import BridgeDisposedError
from framebridge.identity import EndpointRegistry, SourceIdentityResolver
from framebridge.registry import PendingCallRegistry
from framebridge.stubs import RpcStub, StubFactory
from framebridge.transport import MessageTransport
from framebridge.wire import RpcReply, RpcRequest
from framebridge.windows import MessageContext, MessageEvent, MessageTarget

logger = logging.getLogger(__name__)


class Bridge:
    """Bidirectional RPC over one messaging context."""

    def __init__(
        self,
        window: MessageContext,
        config: BridgeConfig | None = None,
        *,
        parent: MessageTarget | None = None,
        endpoints: EndpointRegistry | None = None,
        capabilities: LocalCapabilities | None = None,
        remote: RemoteProxyFactory | None = None,
    ) -> None:
        """Initialize the bridge.

        Args:
            window: The context this bridge listens on
            config: Optional bridge configuration
            parent: Destination for calls; defaults to ``window.parent``
            endpoints: Known frames, used to identify request senders
            capabilities: Local capability object (third dispatch tier)
            remote: Factory for remote module proxies (fourth dispatch tier)
        """
        self.window = window
        self.config = config or BridgeConfig()
        self.endpoints = endpoints if endpoints is not None else EndpointRegistry()

        self._parent = parent
        self._transport = MessageTransport(window)
        self._registry = PendingCallRegistry()
        self._stubs = StubFactory(
            self._transport,
            self._registry,
            self._parent_destination,
            self.config.default_timeout,
        )
        self._frame_stubs: dict[str, StubFactory] = {}
        self._dispatcher = CascadingDispatcher(
            self._transport,
            SourceIdentityResolver(self.endpoints, own_window=window),
            capabilities=capabilities,
            remote=remote,
            default_identity=self.config.default_frame_id,
            on_send_error=self.config.on_send_error,
        )
        self._dispatch_tasks: set[asyncio.Task[RpcReply | None]] = set()
        self._disposed = False

    def _parent_destination(self) -> MessageTarget | None:
        if self._parent is not None:
            return self._parent
        return getattr(self.window, "parent", None)

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        self.dispose()

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def dispatcher(self) -> CascadingDispatcher:
        return self._dispatcher

    @property
    def registry(self) -> PendingCallRegistry:
        return self._registry

    def start(self) -> None:
        """Start listening on the window. Safe to call more than once."""
        if self._disposed:
            raise BridgeDisposedError("Cannot start a disposed bridge")
        self._transport.install(self._on_request, self._on_reply)

    def dispose(self) -> None:
        """Stop listening and fail all pending calls."""
        if self._disposed:
            return
        self._disposed = True
        self._transport.dispose()
        rejected = self._registry.reject_all(BridgeDisposedError())
        for task in list(self._dispatch_tasks):
            task.cancel()
        self._dispatch_tasks.clear()
        self._stubs.clear()
        self._frame_stubs.clear()
        self._dispatcher.clear()
        logger.debug("Bridge disposed (%d pending calls rejected)", rejected)

    async def drain(self) -> None:
        """Wait for requests currently being dispatched to finish."""
        if self._dispatch_tasks:
            await asyncio.gather(*self._dispatch_tasks, return_exceptions=True)

    def get_stats(self) -> dict[str, int]:
        handlers = self._dispatcher.get_handlers()
        return {
            "pending": len(self._registry),
            "dispatching": len(self._dispatch_tasks),
            "handlers": len(handlers["frames"]) + (handlers["global"] is not None),
        }

    # -------------------------------------------------------------------------
    # Caller side
    # -------------------------------------------------------------------------

    def get_stub(self, target: str = "", timeout: float | None = None) -> RpcStub:
        """Return the (cached) stub for ``target``.

        Args:
            target: Remote module name; empty resolves through the
                receiver's local tiers only
            timeout: Per-stub timeout override in seconds
        """
        return self._stubs.get_stub(target, timeout)

    def get_frame_stub(
        self,
        identity: str,
        target: str = "",
        timeout: float | None = None,
    ) -> RpcStub:
        """Return a stub whose calls go to the attached frame ``identity``.

        The frame is looked up on every call; calls to a detached frame fail.
        """
        factory = self._frame_stubs.get(identity)
        if factory is None:
            factory = StubFactory(
                self._transport,
                self._registry,
                lambda: self.endpoints.get(identity),
                self.config.default_timeout,
            )
            self._frame_stubs[identity] = factory
        return factory.get_stub(target, timeout)

    def invoke(
        self,
        method: str,
        args: list[Any] | tuple[Any, ...] = (),
        target: str = "",
        timeout: float | None = None,
    ) -> asyncio.Future[Any]:
        """Call ``method`` with ``args`` on ``target``."""
        return self._stubs.invoke(target, method, args, timeout)

    # -------------------------------------------------------------------------
    # Receiver side
    # -------------------------------------------------------------------------

    def register_handler(self, handler: Any, identity: str | None = None) -> None:
        self._dispatcher.register_handler(handler, identity)

    def register_global_handler(self, handler: Any) -> None:
        self._dispatcher.register_global_handler(handler)

    def unregister(self, identity: str) -> None:
        self._dispatcher.unregister(identity)

    def unregister_global_handler(self) -> None:
        self._dispatcher.unregister_global_handler()

    def get_handlers(self) -> dict[str, Any]:
        return self._dispatcher.get_handlers()

    def attach_frame(self, identity: str, endpoint: MessageTarget) -> None:
        """Make requests from ``endpoint`` resolve to ``identity``."""
        self.endpoints.register(identity, endpoint)

    def detach_frame(self, identity: str) -> None:
        self.endpoints.unregister(identity)

    # -------------------------------------------------------------------------
    # Transport callbacks
    # -------------------------------------------------------------------------

    def _on_reply(self, reply: RpcReply) -> None:
        if not self._registry.settle(reply.correlation_id, reply):
            logger.debug("Ignoring reply for unknown call %s", reply.correlation_id)

    def _on_request(self, request: RpcRequest, event: MessageEvent) -> None:
        task = asyncio.create_task(self._dispatch_safe(request, event))
        self._dispatch_tasks.add(task)
        task.add_done_callback(self._dispatch_tasks.discard)

    async def _dispatch_safe(self, request: RpcRequest, event: MessageEvent) -> RpcReply | None:
        try:
            return await self._dispatcher.dispatch(request, event)
        except Exception:
            logger.exception("Error dispatching %s (%s)", request.correlation_id, request.method)
            return None
