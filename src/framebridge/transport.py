"""Message transport adapter: the only code that touches the channel.

One listener per transport receives everything posted to the local context,
drops foreign traffic, and routes RPC messages by kind: requests to the
dispatcher side, responses and errors to the caller side.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from framebridge.error import TransportClosedError
from framebridge.wire import RpcMessage, RpcReply, RpcRequest, parse_message
from framebridge.windows import MessageContext, MessageEvent, MessageTarget

logger = logging.getLogger(__name__)

RequestHandler = Callable[[RpcRequest, MessageEvent], None]
ReplyHandler = Callable[[RpcReply], None]


class MessageTransport:
    """Sends RPC messages from, and receives them on, one messaging context."""
    __slots__ = ('window', '_on_request', '_on_reply', '_installed', '_disposed')

    def __init__(self, window: MessageContext) -> None:
        self.window = window
        self._on_request: RequestHandler | None = None
        self._on_reply: ReplyHandler | None = None
        self._installed = False
        self._disposed = False

    @property
    def available(self) -> bool:
        """True while the transport can send."""
        return not self._disposed

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self, on_request: RequestHandler, on_reply: ReplyHandler) -> bool:
        """Install the channel listener.

        Calling this again is a no-op, so listeners never stack.

        Returns:
            True if the listener was installed by this call
        """
        if self._disposed:
            raise TransportClosedError("Transport was disposed")
        if self._installed:
            return False
        self._on_request = on_request
        self._on_reply = on_reply
        self.window.add_listener(self._listener)
        self._installed = True
        return True

    def dispose(self) -> None:
        """Remove the listener. Further sends fail."""
        if self._installed:
            self.window.remove_listener(self._listener)
            self._installed = False
        self._disposed = True
        self._on_request = None
        self._on_reply = None

    def send(self, destination: MessageTarget | None, message: RpcMessage) -> None:
        """Post ``message`` to ``destination``. No delivery acknowledgement.

        Raises:
            TransportClosedError: If the transport is disposed or there is
                no destination
            TypeError: If the message is not JSON-serializable
        """
        if self._disposed:
            raise TransportClosedError("Transport was disposed")
        if destination is None:
            raise TransportClosedError("No destination to send to")
        destination.post_message(message.to_json(), source=self.window)

    def reply(self, event: MessageEvent, message: RpcReply) -> bool:
        """Send ``message`` back to the sender of ``event`` only."""
        if event.source is None:
            logger.warning(
                "Dropping reply %s: request had no source", message.correlation_id
            )
            return False
        self.send(event.source, message)
        return True

    def _listener(self, event: MessageEvent) -> None:
        message = parse_message(event.data)
        if message is None:
            logger.debug("Ignoring non-RPC message: %r", _preview(event.data))
            return
        try:
            if isinstance(message, RpcRequest):
                if self._on_request is not None:
                    self._on_request(message, event)
            elif self._on_reply is not None:
                self._on_reply(message)
        except Exception:
            logger.exception("Error handling RPC message %s", message.correlation_id)


def _preview(data: Any, limit: int = 80) -> str:
    text = repr(data)
    return text if len(text) <= limit else text[:limit] + "..."
