"""Host process for the editor demo.

Serves the bridge over WebSocket, answers the editor frame's calls and
calls back into the frame once it connects.

Run:
    uv run python examples/editor/host.py
"""

import asyncio
import logging

from framebridge import (
    Bridge,
    HostCapabilities,
    RpcError,
    WebSocketChannelConfig,
    WebSocketHostChannel,
)


class EditorApi:
    """Frame handler for the "editor" frame."""

    def __init__(self) -> None:
        self.documents: dict[str, str] = {"readme.md": "# Hello"}

    def list_documents(self) -> list[str]:
        return sorted(self.documents)

    def open_document(self, name: str) -> str:
        if name not in self.documents:
            raise RpcError.not_found(f"No such document: {name}")
        return self.documents[name]

    async def save_document(self, name: str, text: str) -> int:
        await asyncio.sleep(0.01)
        self.documents[name] = text
        return len(text)


async def main() -> None:
    """Run the host."""
    logging.basicConfig(level=logging.INFO)

    channel = WebSocketHostChannel(WebSocketChannelConfig(host="127.0.0.1", port=8765))
    await channel.start()

    host = Bridge(
        channel,
        endpoints=channel.endpoints,
        capabilities=HostCapabilities(name="editor-demo", location="ws://127.0.0.1:8765"),
    )
    host.register_handler(EditorApi(), "editor")
    host.start()

    print("🖥  Host running on", channel.url_for("editor"))
    print("Run the guest with: uv run python examples/editor/guest.py")
    print("Press Ctrl+C to stop")

    try:
        while "editor" not in channel.endpoints:
            await asyncio.sleep(0.1)
        editor = host.get_frame_stub("editor")
        print("Editor frame reports:", await editor.get_status())
        await asyncio.Event().wait()
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        host.dispose()
        await channel.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
