"""Local capability objects: host operations offered to every guest.

A capability object is the third tier of the dispatch cascade. Membership
is explicit: ``supports(name)`` decides whether the tier handles a method,
before anything is invoked. A capability method that decides at call time
that it cannot answer returns ``NOT_HANDLED``, and the cascade moves on.
``None`` is an ordinary result.
"""

from __future__ import annotations

import inspect
import logging
import os
import platform
import socket
from collections.abc import MutableMapping
from datetime import datetime, timezone
from typing import Any, ClassVar, Final

logger = logging.getLogger(__name__)


class _NotHandled:
    __slots__ = ()

    def __repr__(self) -> str:
        return "NOT_HANDLED"

    def __bool__(self) -> bool:
        return False


NOT_HANDLED: Final = _NotHandled()


class LocalCapabilities:
    """Base class for capability objects.

    Public methods defined on the class are exposed, as are the attributes
    named in ``exposed_properties`` (read without arguments).

    Usage:
        class Clock(LocalCapabilities):
            exposed_properties = frozenset({"zone"})
            zone = "UTC"

            def now(self) -> str:
                return datetime.now(timezone.utc).isoformat()
    """

    exposed_properties: ClassVar[frozenset[str]] = frozenset()

    # Methods that should never be exposed as RPC endpoints
    _rpc_reserved_methods: ClassVar[frozenset[str]] = frozenset({
        'supports', 'invoke',
    })

    def supports(self, name: str) -> bool:
        """Return True if this object handles ``name``."""
        if not name or name.startswith('_') or name in self._rpc_reserved_methods:
            return False
        if name in self.exposed_properties:
            return hasattr(self, name)
        return callable(getattr(type(self), name, None))

    async def invoke(self, name: str, args: list[Any]) -> Any:
        """Run the method ``name`` (or read the property) and return its result."""
        value = getattr(self, name)
        if name in self.exposed_properties and not callable(value):
            return value
        result = value(*args)
        if inspect.isawaitable(result):
            result = await result
        return result


class HostCapabilities(LocalCapabilities):
    """Operations on the hosting process, offered to guests.

    Storage and cookies live in plain mappings, so a host can back them with
    anything dict-like (a shelf, a cache client wrapper, ...).
    """

    exposed_properties: ClassVar[frozenset[str]] = frozenset({"location", "name"})

    def __init__(
        self,
        name: str = "host",
        location: str = "",
        storage: MutableMapping[str, str] | None = None,
        cookies: MutableMapping[str, str] | None = None,
    ) -> None:
        self.name = name
        self.location = location
        self.storage: MutableMapping[str, str] = storage if storage is not None else {}
        self.cookies: MutableMapping[str, str] = cookies if cookies is not None else {}
        self.notifications: list[dict[str, str]] = []

    def get_host_info(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "location": self.location,
            "timestamp": _now_ms(),
            "platform": platform.platform()[:50],
        }

    def get_host_state(self) -> dict[str, Any]:
        return {
            "timestamp": _now_ms(),
            "pid": os.getpid(),
            "hostname": socket.gethostname(),
            "python": platform.python_version(),
            "location": self.location,
        }

    def get_user_preferences(self) -> dict[str, str]:
        return {
            "theme": self.storage.get("theme") or "light",
            "language": self.storage.get("language") or "en",
            "userId": self.storage.get("userId") or "anonymous",
        }

    def show_notification(self, message: str, level: str = "info") -> dict[str, Any]:
        logger.info("[Host notification] %s: %s", level.upper(), message)
        self.notifications.append({"level": level, "message": message})
        return {"success": True, "message": "Notification logged"}

    def trigger_host_action(self, action: str) -> dict[str, Any]:
        if action == "change_theme":
            current = self.storage.get("theme") or "light"
            new_theme = "dark" if current == "light" else "light"
            self.storage["theme"] = new_theme
            return {"success": True, "newTheme": new_theme}
        return {"success": False, "error": "Unknown action"}

    def set_local_storage(self, key: str, value: str) -> dict[str, bool]:
        self.storage[key] = str(value)
        return {"success": True}

    def get_local_storage(self, key: str) -> str | None:
        return self.storage.get(key)

    def remove_local_storage(self, key: str) -> dict[str, bool]:
        self.storage.pop(key, None)
        return {"success": True}

    def get_cookies(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self.cookies.items())

    def set_cookie(
        self,
        name: str,
        value: str,
        options: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        options = options or {}
        cookie = f"{name}={value}"
        if options.get("expires"):
            cookie += f"; expires={options['expires']}"
        if options.get("path"):
            cookie += f"; path={options['path']}"
        self.cookies[name] = str(value)
        return {"success": True, "cookie": cookie}


def _now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)
