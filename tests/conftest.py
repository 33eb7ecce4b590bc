"""Pytest configuration and shared helpers for framebridge tests."""

from __future__ import annotations

import asyncio
from typing import Any

from framebridge import Bridge, BridgeConfig, LocalWindow


class Calculator:
    """Frame handler used across tests."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def add(self, a: int, b: int) -> int:
        self.calls.append("add")
        return a + b

    async def slow_add(self, a: int, b: int, delay: float = 0.05) -> int:
        self.calls.append("slow_add")
        await asyncio.sleep(delay)
        return a + b

    def fail(self, message: str = "boom") -> None:
        raise ValueError(message)

    def _secret(self) -> str:
        return "hidden"


class Gate:
    """Handler whose ``wait`` calls block until the test opens the gate."""

    def __init__(self) -> None:
        self._events: dict[str, asyncio.Event] = {}
        self.finished: list[str] = []

    def _event(self, name: str) -> asyncio.Event:
        if name not in self._events:
            self._events[name] = asyncio.Event()
        return self._events[name]

    def open(self, name: str) -> None:
        self._event(name).set()

    async def wait(self, name: str) -> str:
        await self._event(name).wait()
        self.finished.append(name)
        return name


class HostGuestPair:
    """A host window with one guest frame, each with a started bridge."""

    def __init__(
        self,
        frame: str = "editor",
        guest_config: BridgeConfig | None = None,
        **host_kwargs: Any,
    ) -> None:
        self.host_window = LocalWindow("host")
        self.guest_window = self.host_window.open_frame(frame)
        self.host = Bridge(self.host_window, **host_kwargs)
        self.guest = Bridge(self.guest_window, guest_config)
        self.host.start()
        self.guest.start()

    def close(self) -> None:
        self.guest.dispose()
        self.host.dispose()


async def settle_loop(rounds: int = 5) -> None:
    """Let scheduled deliveries and dispatch tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_for(predicate: Any, timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("Condition not met in time")
        await asyncio.sleep(0.01)
