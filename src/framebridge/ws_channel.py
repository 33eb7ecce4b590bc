"""WebSocket channel: frames in other processes joining a host.

The host runs an aiohttp server. Each guest connects to
``ws://<host>:<port><path>/<frame_id>``; the connection becomes an
endpoint registered under ``frame_id`` for as long as it is open, and is
the source of every message it delivers. Messages are JSON text frames
carrying the same dicts a ``LocalWindow`` would deliver.

Example:
    ```python
    # host process
    channel = WebSocketHostChannel(WebSocketChannelConfig(port=8765))
    await channel.start()
    host = Bridge(channel, endpoints=channel.endpoints)
    host.start()

    # guest process
    async with WebSocketGuestChannel("ws://localhost:8765/bridge/editor") as channel:
        async with Bridge(channel) as guest:
            print(await guest.get_stub().get_host_info())
    ```
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Self

import aiohttp
from aiohttp import web

from framebridge.config import WebSocketChannelConfig
from framebridge.identity import EndpointRegistry
from framebridge.windows import Listener, ListenerList, MessageEvent

logger = logging.getLogger(__name__)


class WebSocketEndpoint:
    """One WebSocket connection, usable as a message destination."""
    __slots__ = ('_ws', 'name', '_closed', '_send_tasks')

    def __init__(
        self,
        ws: web.WebSocketResponse | aiohttp.ClientWebSocketResponse,
        name: str = "",
    ) -> None:
        self._ws = ws
        self.name = name
        self._closed = False
        self._send_tasks: set[asyncio.Task[None]] = set()

    @property
    def closed(self) -> bool:
        return self._closed or self._ws.closed

    def post_message(self, data: Any, source: Any | None = None) -> None:
        """Queue ``data`` as a JSON text frame.

        Raises:
            ConnectionError: If the connection is closed
            TypeError: If ``data`` is not JSON-serializable
        """
        if self.closed:
            raise ConnectionError(f"WebSocket {self.name!r} is closed")
        text = json.dumps(data)
        task = asyncio.create_task(self._send(text))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    async def _send(self, text: str) -> None:
        try:
            await self._ws.send_str(text)
        except Exception as e:
            logger.debug("Send on WebSocket %r failed: %s", self.name, e)
            self._closed = True

    def mark_closed(self) -> None:
        self._closed = True

    async def close(self) -> None:
        self._closed = True
        try:
            await self._ws.close()
        except Exception:
            pass

    def __repr__(self) -> str:
        return f"WebSocketEndpoint({self.name!r})"


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        logger.debug("Ignoring non-JSON WebSocket frame")
        return None


async def _read_frames(
    ws: web.WebSocketResponse | aiohttp.ClientWebSocketResponse,
    endpoint: WebSocketEndpoint,
    listeners: ListenerList,
) -> None:
    """Deliver text frames from ``ws`` until it closes."""
    while True:
        msg = await ws.receive()

        if msg.type == aiohttp.WSMsgType.TEXT:
            data = msg.data
        elif msg.type == aiohttp.WSMsgType.BINARY:
            data = msg.data.decode("utf-8", errors="replace")
        elif msg.type in (
            aiohttp.WSMsgType.CLOSE,
            aiohttp.WSMsgType.CLOSING,
            aiohttp.WSMsgType.CLOSED,
        ):
            break
        elif msg.type == aiohttp.WSMsgType.ERROR:
            logger.debug("WebSocket %r error: %s", endpoint.name, ws.exception())
            break
        else:
            continue

        decoded = _decode(data)
        if decoded is not None:
            listeners.emit(MessageEvent(decoded, endpoint))
    endpoint.mark_closed()


class WebSocketHostChannel:
    """Host-side messaging context fed by guest WebSocket connections."""

    def __init__(
        self,
        config: WebSocketChannelConfig | None = None,
        endpoints: EndpointRegistry | None = None,
    ) -> None:
        self.config = config or WebSocketChannelConfig()
        self.endpoints = endpoints if endpoints is not None else EndpointRegistry()
        self._listeners = ListenerList("WebSocket host channel")
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self._connections: set[WebSocketEndpoint] = set()

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.stop()

    @property
    def parent(self) -> None:
        return None

    @property
    def port(self) -> int:
        """The bound port (useful when configured with port 0)."""
        if self._runner is None or not self._runner.addresses:
            raise RuntimeError("Channel is not started")
        return self._runner.addresses[0][1]

    def url_for(self, frame_id: str) -> str:
        return f"ws://{self.config.host}:{self.port}{self._route_prefix()}/{frame_id}"

    def _route_prefix(self) -> str:
        return self.config.path.rstrip("/")

    async def start(self) -> None:
        """Start the server."""
        self._app = web.Application()
        self._app.router.add_get(f"{self._route_prefix()}/{{frame_id}}", self._handle_ws)

        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await self._site.start()

        logger.info("WebSocket bridge channel started on %s", self.url_for("{frame_id}"))

    async def stop(self) -> None:
        """Close every connection and stop the server."""
        for endpoint in list(self._connections):
            await endpoint.close()
        self._connections.clear()

        if self._site:
            await self._site.stop()
            self._site = None
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        self._app = None
        self._listeners.clear()

    def add_listener(self, listener: Listener) -> None:
        self._listeners.add(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def post_message(self, data: Any, source: Any | None = None) -> None:
        """Deliver ``data`` to this channel's own listeners."""
        event = MessageEvent(json.loads(json.dumps(data)), source)
        asyncio.get_running_loop().call_soon(self._listeners.emit, event)

    async def _handle_ws(self, request: web.Request) -> web.WebSocketResponse:
        frame_id = request.match_info["frame_id"]
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        endpoint = WebSocketEndpoint(ws, frame_id)
        self._connections.add(endpoint)
        self.endpoints.register(frame_id, endpoint)
        logger.debug("Frame %r connected", frame_id)

        try:
            await _read_frames(ws, endpoint, self._listeners)
        except Exception as e:
            logger.debug("WebSocket session %r ended: %s", frame_id, e)
        finally:
            self._connections.discard(endpoint)
            # A reconnect may already have replaced this endpoint
            if self.endpoints.get(frame_id) is endpoint:
                self.endpoints.unregister(frame_id)
            logger.debug("Frame %r disconnected", frame_id)

        return ws


class WebSocketGuestChannel:
    """Guest-side messaging context: one connection to the host."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._listeners = ListenerList(f"WebSocket guest channel {url}")
        self._http_session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._endpoint: WebSocketEndpoint | None = None
        self._read_task: asyncio.Task[None] | None = None

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    @property
    def parent(self) -> WebSocketEndpoint | None:
        """The host connection, or None before ``connect()``."""
        return self._endpoint

    async def connect(self) -> None:
        """Connect to the host and start delivering its messages."""
        self._http_session = aiohttp.ClientSession()
        try:
            self._ws = await self._http_session.ws_connect(self.url)
        except Exception:
            await self._http_session.close()
            self._http_session = None
            raise
        self._endpoint = WebSocketEndpoint(self._ws, "parent")
        self._read_task = asyncio.create_task(
            _read_frames(self._ws, self._endpoint, self._listeners)
        )

    async def close(self) -> None:
        """Close the connection."""
        if self._endpoint:
            await self._endpoint.close()
        if self._read_task:
            self._read_task.cancel()
            try:
                await self._read_task
            except asyncio.CancelledError:
                pass
            self._read_task = None
        if self._http_session:
            await self._http_session.close()
            self._http_session = None
        self._ws = None
        self._listeners.clear()

    def add_listener(self, listener: Listener) -> None:
        self._listeners.add(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def post_message(self, data: Any, source: Any | None = None) -> None:
        """Deliver ``data`` to this channel's own listeners."""
        event = MessageEvent(json.loads(json.dumps(data)), source)
        asyncio.get_running_loop().call_soon(self._listeners.emit, event)
