"""Editor frame for the editor demo.

Run (after starting the host):
    uv run python examples/editor/guest.py
"""

import asyncio

from framebridge import Bridge, RpcError, WebSocketGuestChannel


class EditorFrame:
    """What the host may call on this frame."""

    def __init__(self) -> None:
        self.opened: list[str] = []

    def get_status(self) -> dict:
        return {"opened": self.opened}


async def main() -> None:
    """Run the editor frame."""
    print("📝 Editor frame")
    print("=" * 40)

    frame = EditorFrame()
    async with WebSocketGuestChannel("ws://127.0.0.1:8765/bridge/editor") as channel:
        async with Bridge(channel) as bridge:
            bridge.register_global_handler(frame)
            host = bridge.get_stub()

            documents = await host.list_documents()
            print(f"\nDocuments: {documents}")

            for name in documents:
                text = await host.open_document(name)
                frame.opened.append(name)
                print(f"  {name}: {text!r}")

            saved = await host.save_document("notes.md", "remember the milk")
            print(f"\nSaved notes.md ({saved} chars)")

            # Served by the host's capabilities
            prefs = await host.get_user_preferences()
            print(f"Preferences: {prefs}")
            await host.show_notification("Editor ready", "success")

            try:
                await host.open_document("missing.md")
            except RpcError as e:
                print(f"\nExpected error: {e} ({e.code.value})")

            # Give the host time to call back into this frame
            await asyncio.sleep(0.5)

    print("\n" + "=" * 40)
    print("✅ Done!")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
