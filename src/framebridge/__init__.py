"""framebridge - RPC between a host and its sandboxed frames.

Code in a host context and code in guest frames call each other's methods
as async functions over a cross-context message channel. Calls the host
cannot resolve locally can be forwarded to a remote HTTP module.
"""

from framebridge.bridge import Bridge
from framebridge.capabilities import NOT_HANDLED, HostCapabilities, LocalCapabilities
from framebridge.config import (
    BridgeConfig,
    RemoteClientConfig,
    WebSocketChannelConfig,
)
from framebridge.dispatcher import CascadingDispatcher
from framebridge.error import (
    BridgeDisposedError,
    ErrorCode,
    RpcError,
    RpcTimeoutError,
    TransportClosedError,
)
from framebridge.identity import EndpointRegistry, SourceIdentityResolver
from framebridge.registry import PendingCall, PendingCallRegistry
from framebridge.remote import RemoteModuleClient, RemoteModuleProxy
from framebridge.stubs import RemoteMethod, RpcStub, StubFactory
from framebridge.transport import MessageTransport
from framebridge.wire import (
    RpcErrorMessage,
    RpcMessage,
    RpcRequest,
    RpcResponse,
    new_correlation_id,
    parse_message,
)
from framebridge.windows import LocalWindow, MessageEvent
from framebridge.ws_channel import (
    WebSocketEndpoint,
    WebSocketGuestChannel,
    WebSocketHostChannel,
)

__version__ = "0.1.0"

__all__ = [
    # Bridge
    "Bridge",
    "BridgeConfig",
    # Caller side
    "RpcStub",
    "RemoteMethod",
    "StubFactory",
    "PendingCall",
    "PendingCallRegistry",
    # Receiver side
    "CascadingDispatcher",
    "EndpointRegistry",
    "SourceIdentityResolver",
    "LocalCapabilities",
    "HostCapabilities",
    "NOT_HANDLED",
    # Remote modules
    "RemoteModuleClient",
    "RemoteModuleProxy",
    "RemoteClientConfig",
    # Channels
    "LocalWindow",
    "MessageEvent",
    "MessageTransport",
    "WebSocketEndpoint",
    "WebSocketHostChannel",
    "WebSocketGuestChannel",
    "WebSocketChannelConfig",
    # Wire format
    "RpcRequest",
    "RpcResponse",
    "RpcErrorMessage",
    "RpcMessage",
    "parse_message",
    "new_correlation_id",
    # Errors
    "RpcError",
    "ErrorCode",
    "RpcTimeoutError",
    "TransportClosedError",
    "BridgeDisposedError",
]
