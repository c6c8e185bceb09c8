from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from speedguard._transport import HttpTransport
from speedguard.config import MonitorConfig
from speedguard.exceptions import SpeedGuardTransportError

_Server = tuple[test_utils.TestServer, list[dict[str, Any]]]


@pytest_asyncio.fixture
async def server() -> AsyncIterator[_Server]:
    seen: list[dict[str, Any]] = []
    store: dict[str, Any] = {"/speed_limits/renter_123.json": "80"}

    async def handle(request: web.Request) -> web.Response:
        entry: dict[str, Any] = {"method": request.method, "path": request.path, "query": dict(request.query)}
        if request.method == "PUT":
            entry["body"] = await request.json()
            store[request.path] = json.dumps(entry["body"])
            seen.append(entry)
            return web.json_response(entry["body"])
        seen.append(entry)
        if request.path == "/broken.json":
            return web.Response(status=500, text="boom")
        if request.path == "/garbage.json":
            return web.Response(text="not json{")
        if request.path == "/binary.json":
            return web.Response(body=b"\xff\xfe", content_type="application/json")
        if request.path not in store:
            return web.Response(text="null", content_type="application/json")
        return web.Response(text=store[request.path], content_type="application/json")

    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", handle)
    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    try:
        yield test_server, seen
    finally:
        await test_server.close()


def _config(test_server: test_utils.TestServer, **kwargs: Any) -> MonitorConfig:
    return MonitorConfig(base_url=str(test_server.make_url("")), path_suffix=".json", **kwargs)


@pytest.mark.asyncio
async def test_get_json_appends_suffix_and_auth(server: _Server) -> None:
    test_server, seen = server
    async with aiohttp.ClientSession() as session:
        transport = HttpTransport(_config(test_server, auth_token="tok"), session)
        value = await transport.get_json("/speed_limits/renter_123")

    assert value == 80
    assert seen == [{"method": "GET", "path": "/speed_limits/renter_123.json", "query": {"auth": "tok"}}]


@pytest.mark.asyncio
async def test_missing_key_returns_none(server: _Server) -> None:
    test_server, _ = server
    async with aiohttp.ClientSession() as session:
        assert await HttpTransport(_config(test_server), session).get_json("/speed_limits/nobody") is None


@pytest.mark.asyncio
async def test_put_json_sends_payload(server: _Server) -> None:
    test_server, seen = server
    async with aiohttp.ClientSession() as session:
        await HttpTransport(_config(test_server), session).put_json("/alerts/a1", {"speedKmh": 90.0})

    assert seen[-1]["method"] == "PUT"
    assert seen[-1]["path"] == "/alerts/a1.json"
    assert seen[-1]["body"] == {"speedKmh": 90.0}
    assert seen[-1]["query"] == {}


@pytest.mark.asyncio
async def test_non_2xx_raises_transport_error(server: _Server) -> None:
    test_server, _ = server
    async with aiohttp.ClientSession() as session:
        with pytest.raises(SpeedGuardTransportError) as exc_info:
            await HttpTransport(_config(test_server), session).get_json("/broken")

    assert exc_info.value.status_code == 500
    assert exc_info.value.endpoint == "/broken"


@pytest.mark.asyncio
async def test_invalid_json_raises_transport_error(server: _Server) -> None:
    test_server, _ = server
    async with aiohttp.ClientSession() as session:
        with pytest.raises(SpeedGuardTransportError, match="Invalid JSON"):
            await HttpTransport(_config(test_server), session).get_json("/garbage")


@pytest.mark.asyncio
async def test_connection_error_raises_transport_error() -> None:
    config = MonitorConfig(base_url="http://127.0.0.1:9")
    async with aiohttp.ClientSession() as session:
        with pytest.raises(SpeedGuardTransportError):
            await HttpTransport(config, session).get_json("/speed_limits/renter_123")


@pytest.mark.asyncio
async def test_undecodable_body_raises_transport_error(server: _Server) -> None:
    test_server, _ = server
    async with aiohttp.ClientSession() as session:
        with pytest.raises(SpeedGuardTransportError, match="Undecodable") as exc_info:
            await HttpTransport(_config(test_server), session).get_json("/binary")

    assert exc_info.value.endpoint == "/binary"
