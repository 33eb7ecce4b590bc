"""Messaging contexts: the cross-window postMessage model on asyncio.

A context accepts listeners and can be posted to. Posting never delivers
synchronously: the event is scheduled on the running loop, so a listener
never runs inside the sender's call stack.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MessageEvent:
    """A delivered message and the context that posted it."""

    data: Any
    source: MessageTarget | None = None


Listener = Callable[[MessageEvent], None]


class MessageTarget(Protocol):
    """Anything that can be posted to."""

    def post_message(self, data: Any, source: Any | None = None) -> None:
        """Queue ``data`` for delivery; ``source`` becomes the event source."""
        ...


class MessageContext(MessageTarget, Protocol):
    """A context that delivers inbound messages to its listeners."""

    @property
    def parent(self) -> MessageTarget | None:
        """Default destination for calls made from this context."""
        ...

    def add_listener(self, listener: Listener) -> None:
        ...

    def remove_listener(self, listener: Listener) -> None:
        ...


class ListenerList:
    """Listeners of one context; a failing listener does not stop the others."""
    __slots__ = ('_listeners', '_owner')

    def __init__(self, owner: str) -> None:
        self._listeners: list[Listener] = []
        self._owner = owner

    def __len__(self) -> int:
        return len(self._listeners)

    def add(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def clear(self) -> None:
        self._listeners.clear()

    def emit(self, event: MessageEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Message listener failed in %s", self._owner)


def clone_message(data: Any) -> Any:
    """Copy ``data`` the way the channel does, rejecting non-JSON values."""
    return json.loads(json.dumps(data))


class LocalWindow:
    """An in-process messaging context.

    Windows form a tree: ``open_frame()`` creates a child whose ``parent``
    is the opener, and the opener keeps its live frames in ``frames``.

    Example:
        ```python
        host = LocalWindow("host")
        guest = host.open_frame("editor")
        guest.parent is host  # True
        ```
    """

    def __init__(self, name: str = "window", parent: LocalWindow | None = None) -> None:
        self.name = name
        self._parent = parent
        self._listeners = ListenerList(f"window {name!r}")
        self._frames: dict[str, LocalWindow] = {}
        self._closed = False

    @property
    def parent(self) -> LocalWindow | None:
        return self._parent

    @property
    def frames(self) -> dict[str, LocalWindow]:
        """Live mapping of frame name to child window."""
        return self._frames

    @property
    def closed(self) -> bool:
        return self._closed

    def open_frame(self, name: str) -> LocalWindow:
        """Create a child window, replacing any frame with the same name."""
        old = self._frames.get(name)
        if old is not None:
            old.close()
        frame = LocalWindow(name, parent=self)
        self._frames[name] = frame
        return frame

    def remove_frame(self, name: str) -> None:
        frame = self._frames.pop(name, None)
        if frame is not None:
            frame.close()

    def close(self) -> None:
        """Stop delivering messages to this window and its frames."""
        self._closed = True
        self._listeners.clear()
        for frame in list(self._frames.values()):
            frame.close()
        self._frames.clear()

    def add_listener(self, listener: Listener) -> None:
        self._listeners.add(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def post_message(self, data: Any, source: Any | None = None) -> None:
        """Schedule delivery of a copy of ``data`` to this window's listeners.

        Raises:
            TypeError: If ``data`` is not JSON-serializable
            RuntimeError: If no event loop is running
        """
        event = MessageEvent(clone_message(data), source)
        asyncio.get_running_loop().call_soon(self._deliver, event)

    def _deliver(self, event: MessageEvent) -> None:
        if not self._closed:
            self._listeners.emit(event)

    def __repr__(self) -> str:
        return f"LocalWindow({self.name!r})"
