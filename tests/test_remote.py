"""Tests for HTTP-backed remote module proxies.

A real aiohttp server plays the remote module host; no mocks.
"""

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from conftest import HostGuestPair
from framebridge import ErrorCode, RemoteClientConfig, RemoteModuleClient, RpcError
from framebridge.remote import route_for


@pytest.mark.parametrize(
    ("method", "arg_count", "expected"),
    [
        ("get_server_info", 0, ("get", "demo/server_info")),
        ("getServerInfo", 0, ("get", "demo/serverinfo")),
        ("get_user", 1, ("post", "demo/get_user")),
        ("delete_item", 0, ("delete", "demo/item")),
        ("delete_item", 2, ("post", "demo/delete_item")),
        ("post_echo", 1, ("post", "demo/echo")),
        ("put_item", 1, ("put", "demo/item")),
        ("hello", 0, ("post", "demo/hello")),
        ("get_a$b", 0, ("get", "demo/a/b")),
        ("get", 0, ("post", "demo/get")),
    ],
)
def test_route_for(method: str, arg_count: int, expected: tuple[str, str]) -> None:
    assert route_for("demo", method, arg_count) == expected


def test_route_without_module() -> None:
    assert route_for("", "get_info", 0) == ("get", "info")


def make_app(calls: list[str] | None = None) -> web.Application:
    """Remote module server with a login route and a few demo routes."""
    if calls is None:
        calls = []

    async def login(request: web.Request) -> web.Response:
        body = await request.json()
        if body.get("password") != "secret":
            return web.Response(status=401, text="bad credentials")
        return web.json_response({"userId": body["username"], "token": "tok-1"})

    async def server_info(request: web.Request) -> web.Response:
        calls.append("server_info")
        return web.json_response({
            "name": "demo",
            "auth": request.headers.get("Authorization"),
        })

    async def echo(request: web.Request) -> web.Response:
        return web.json_response({"args": await request.json()})

    async def get_user(request: web.Request) -> web.Response:
        args = await request.json()
        return web.json_response({"id": args[0]})

    async def delete_item(request: web.Request) -> web.Response:
        return web.Response(status=204)

    async def motd(request: web.Request) -> web.Response:
        return web.Response(text="hello there")

    async def secret(request: web.Request) -> web.Response:
        if request.headers.get("Authorization") != "Bearer tok-1":
            return web.Response(status=403, text="forbidden")
        return web.json_response("classified")

    async def explode(request: web.Request) -> web.Response:
        return web.Response(status=500, text="server exploded")

    app = web.Application()
    app.router.add_post("/poto/poto-login", login)
    app.router.add_get("/poto/demo/server_info", server_info)
    app.router.add_post("/poto/demo/echo", echo)
    app.router.add_post("/poto/demo/get_user", get_user)
    app.router.add_delete("/poto/demo/item", delete_item)
    app.router.add_get("/poto/demo/motd", motd)
    app.router.add_get("/poto/demo/secret", secret)
    app.router.add_post("/poto/demo/explode", explode)
    return app


def client_for(server: TestServer) -> RemoteModuleClient:
    return RemoteModuleClient(RemoteClientConfig(base_url=str(server.make_url("/poto"))))


@pytest.mark.asyncio
class TestRemoteModuleClient:
    """Calls against a live aiohttp server."""

    async def test_get_without_args(self) -> None:
        async with TestServer(make_app()) as server:
            async with client_for(server) as client:
                demo = client.get_proxy("demo")
                assert await demo.get_server_info() == {"name": "demo", "auth": None}

    async def test_post_body_is_argument_list(self) -> None:
        async with TestServer(make_app()) as server:
            async with client_for(server) as client:
                result = await client.get_proxy("demo").post_echo("hi", 2)
                assert result == {"args": ["hi", 2]}

    async def test_get_with_args_becomes_post(self) -> None:
        async with TestServer(make_app()) as server:
            async with client_for(server) as client:
                assert await client.call("demo", "get_user", [7]) == {"id": 7}

    async def test_no_content(self) -> None:
        async with TestServer(make_app()) as server:
            async with client_for(server) as client:
                assert await client.call("demo", "delete_item", []) is None

    async def test_text_response(self) -> None:
        async with TestServer(make_app()) as server:
            async with client_for(server) as client:
                assert await client.call("demo", "getMotd", []) == "hello there"

    async def test_not_found(self) -> None:
        async with TestServer(make_app()) as server:
            async with client_for(server) as client:
                with pytest.raises(RpcError) as exc_info:
                    await client.call("demo", "nothing_here", [])
                assert exc_info.value.code == ErrorCode.NOT_FOUND
                assert exc_info.value.data == {"status": 404}

    async def test_server_error(self) -> None:
        async with TestServer(make_app()) as server:
            async with client_for(server) as client:
                with pytest.raises(RpcError) as exc_info:
                    await client.call("demo", "explode", [])
                assert exc_info.value.code == ErrorCode.INTERNAL
                assert "server exploded" in exc_info.value.message

    async def test_login_sends_bearer_token(self) -> None:
        async with TestServer(make_app()) as server:
            async with client_for(server) as client:
                with pytest.raises(RpcError) as exc_info:
                    await client.call("demo", "get_secret", [])
                assert exc_info.value.code == ErrorCode.PERMISSION_DENIED

                await client.login("ada", "secret")
                assert client.user_id == "ada"
                assert client.token == "tok-1"
                assert await client.call("demo", "get_secret", []) == "classified"

    async def test_login_failure(self) -> None:
        async with TestServer(make_app()) as server:
            async with client_for(server) as client:
                with pytest.raises(RpcError, match="Login failed"):
                    await client.login("ada", "wrong")
                assert client.token is None

    async def test_proxies_cached(self) -> None:
        client = RemoteModuleClient(RemoteClientConfig(base_url="http://localhost:1"))
        assert client.get_proxy("demo") is client.get_proxy("demo")
        with pytest.raises(AttributeError):
            client.get_proxy("demo")._hidden
        await client.close()


@pytest.mark.asyncio
class TestRemoteTier:
    """Guest calls that reach the remote module through the host bridge."""

    async def test_guest_call_forwarded(self) -> None:
        calls: list[str] = []
        async with TestServer(make_app(calls)) as server:
            async with client_for(server) as client:
                pair = HostGuestPair(remote=client)
                try:
                    demo = pair.guest.get_stub("demo")
                    info = await demo.get_server_info()
                    assert info["name"] == "demo"
                    assert calls == ["server_info"]
                finally:
                    pair.close()

    async def test_remote_error_reaches_guest(self) -> None:
        async with TestServer(make_app()) as server:
            async with client_for(server) as client:
                pair = HostGuestPair(remote=client)
                try:
                    with pytest.raises(RpcError) as exc_info:
                        await pair.guest.get_stub("demo").nothing_here()
                    assert exc_info.value.code == ErrorCode.NOT_FOUND
                    assert exc_info.value.data == {"status": 404}
                finally:
                    pair.close()

    async def test_local_tier_wins(self) -> None:
        calls: list[str] = []
        async with TestServer(make_app(calls)) as server:
            async with client_for(server) as client:
                pair = HostGuestPair(remote=client)
                pair.host.register_handler({"get_server_info": lambda: "local"}, "editor")
                try:
                    assert await pair.guest.get_stub("demo").get_server_info() == "local"
                    assert calls == []
                finally:
                    pair.close()
