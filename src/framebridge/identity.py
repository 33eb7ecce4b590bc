"""Mapping inbound message senders to logical frame identities."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from framebridge.windows import MessageEvent, MessageTarget


class EndpointRegistry:
    """Live table of known endpoints (guest frames, connections) by identity.

    Endpoints can be attached, replaced and detached at any time; lookups
    always see the current table.
    """

    def __init__(self) -> None:
        self._endpoints: dict[str, MessageTarget] = {}

    def register(self, identity: str, endpoint: MessageTarget) -> None:
        if not identity:
            raise ValueError("Endpoint identity cannot be empty")
        self._endpoints[identity] = endpoint

    def unregister(self, identity: str) -> MessageTarget | None:
        return self._endpoints.pop(identity, None)

    def get(self, identity: str) -> MessageTarget | None:
        return self._endpoints.get(identity)

    def identities(self) -> list[str]:
        return list(self._endpoints)

    def items(self) -> Iterator[tuple[str, MessageTarget]]:
        return iter(list(self._endpoints.items()))

    def __len__(self) -> int:
        return len(self._endpoints)

    def __contains__(self, identity: object) -> bool:
        return identity in self._endpoints


class SourceIdentityResolver:
    """Resolves the identity of a message's sender.

    Matching is by object identity against the endpoint registry, then
    against the live ``frames`` of the host window. It is recomputed for
    every message.
    """

    def __init__(self, endpoints: EndpointRegistry, own_window: Any | None = None) -> None:
        self.endpoints = endpoints
        self.own_window = own_window

    def resolve(self, event: MessageEvent) -> str | None:
        """Return the identity of ``event.source``, or None if unrecognized."""
        source = event.source
        if source is None or source is self.own_window:
            return None
        for identity, endpoint in self.endpoints.items():
            if endpoint is source:
                return identity
        # Frames opened by the host's own window count as known endpoints
        frames = getattr(self.own_window, "frames", None)
        if isinstance(frames, Mapping):
            for name, frame in list(frames.items()):
                if frame is source:
                    return name
        return None
