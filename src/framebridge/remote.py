"""Remote module proxies: HTTP-backed RPC to a server module.

The host bridge forwards calls it cannot resolve locally to a remote module
named by the request's ``target``. Guests never hold the server credentials;
the host's ``RemoteModuleClient`` does.

Method names map to routes by convention:

- ``get_user(...)`` / ``getUser(...)`` -> ``GET <base>/<module>/user``
- ``post_echo(msg)`` -> ``POST <base>/<module>/echo`` with body ``[msg]``
- GET and DELETE calls with arguments are sent as POST to the full method
  name, e.g. ``get_user(3)`` -> ``POST <base>/<module>/get_user``
- any other name -> ``POST <base>/<module>/<name>``
- ``$`` in a name becomes ``/``; routes are lowercase
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Self
from urllib.parse import quote

import aiohttp

from framebridge.config import RemoteClientConfig
from framebridge.error import RpcError

logger = logging.getLogger(__name__)

_VERB_PATTERN = re.compile(r"^(get|post|put|delete)_?(.+)$", re.IGNORECASE)
JSON_CONTENT_TYPE = "application/json"


def route_for(module: str, method: str, arg_count: int) -> tuple[str, str]:
    """Return ``(http_method, route)`` for calling ``method`` on ``module``."""
    match = _VERB_PATTERN.match(method)
    if match:
        http_method = match.group(1).lower()
        route = match.group(2)
        if arg_count > 0 and http_method in ("get", "delete"):
            # Arguments in the URL path get too long; keep the full name
            http_method = "post"
            route = method
    else:
        http_method = "post"
        route = method
    route = route.replace("$", "/").lower()
    if module:
        route = f"{module}/{route}"
    return http_method, route


class RemoteModuleClient:
    """HTTP client that performs remote module calls.

    Example:
        ```python
        async with RemoteModuleClient(RemoteClientConfig(base_url="http://localhost:3000/poto")) as client:
            demo = client.get_proxy("DemoServerModule")
            info = await demo.get_server_info()
        ```
    """

    def __init__(
        self,
        config: RemoteClientConfig,
        *,
        http_client: aiohttp.ClientSession | None = None,
    ) -> None:
        self.config = config
        self.token: str | None = config.token
        self.user_id: str | None = None
        self._http_client = http_client
        self._own_client = http_client is None
        self._proxies: dict[str, RemoteModuleProxy] = {}

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._own_client and self._http_client is not None:
            await self._http_client.close()
        self._http_client = None

    def get_proxy(self, module: str) -> RemoteModuleProxy:
        """Return the proxy for ``module``."""
        proxy = self._proxies.get(module)
        if proxy is None:
            proxy = RemoteModuleProxy(self, module)
            self._proxies[module] = proxy
        return proxy

    def _session(self) -> aiohttp.ClientSession:
        if self._http_client is None or self._http_client.closed:
            self._http_client = aiohttp.ClientSession()
            self._own_client = True
        return self._http_client

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def login(self, username: str, password: str) -> None:
        """Log in and keep the returned user id and bearer token.

        Raises:
            RpcError: If the server rejects the credentials or the reply
                lacks a user id or token
        """
        url = f"{self.config.base_url}/{self.config.login_path}"
        body = json.dumps({"username": username, "password": password})
        async with self._session().post(
            url,
            data=body,
            headers={"Content-Type": JSON_CONTENT_TYPE},
            timeout=aiohttp.ClientTimeout(total=self.config.timeout),
        ) as response:
            text = await response.text()
            if not response.ok:
                raise _http_error(response.status, f"Login failed: {text}")

        try:
            data = json.loads(text)
        except ValueError as e:
            raise RpcError.internal(f"Login returned invalid data: {text}") from e
        if not isinstance(data, dict) or not data.get("userId") or not data.get("token"):
            raise RpcError.internal(f"Login missing userId or token. Response: {text}")
        self.user_id = data["userId"]
        self.token = data["token"]

    async def call(self, module: str, method: str, args: list[Any]) -> Any:
        """Call ``method`` on the remote ``module`` and return the decoded result."""
        http_method, route = route_for(module, method, len(args))
        url = f"{self.config.base_url}/{route}"
        headers = self._headers()
        data: str | None = None

        if http_method in ("get", "delete"):
            for arg in args:
                url += "/" + quote(json.dumps(arg), safe="")
        else:
            headers["Content-Type"] = JSON_CONTENT_TYPE
            data = json.dumps(args)

        logger.debug(">> %s %s", http_method.upper(), url)
        async with self._session().request(
            http_method.upper(),
            url,
            data=data,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=self.config.timeout),
        ) as response:
            logger.debug("<< %s %s %d", http_method.upper(), url, response.status)
            if response.status == 204:
                return None
            text = await response.text()
            if not response.ok:
                raise _http_error(
                    response.status,
                    f"Remote call {module}.{method} failed: {response.status} {text}",
                )
            if response.content_type == JSON_CONTENT_TYPE:
                return json.loads(text) if text else None
            return text


class RemoteModuleProxy:
    """Proxy for one remote module; public attributes are async callables."""
    __slots__ = ('_client', '_module')

    def __init__(self, client: RemoteModuleClient, module: str) -> None:
        self._client = client
        self._module = module

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            msg = f"'{type(self).__name__}' object has no attribute '{name}'"
            raise AttributeError(msg)

        async def remote_method(*args: Any) -> Any:
            return await self._client.call(self._module, name, list(args))

        remote_method.__name__ = name
        return remote_method

    def __repr__(self) -> str:
        return f"RemoteModuleProxy({self._module!r})"


def _http_error(status: int, message: str) -> RpcError:
    data = {"status": status}
    if status == 404:
        return RpcError.not_found(message, data)
    if status in (401, 403):
        return RpcError.permission_denied(message, data)
    if 400 <= status < 500:
        return RpcError.bad_request(message, data)
    return RpcError.internal(message, data)
