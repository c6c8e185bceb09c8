from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from speedguard.limits import LimitStore, limit_path

if TYPE_CHECKING:
    from conftest import FakeTransport


class _HangingTransport:
    async def get_json(self, path: str) -> Any:
        await asyncio.Event().wait()

    async def put_json(self, path: str, payload: Any) -> Any:  # pragma: no cover
        raise AssertionError("not used")


@pytest.mark.asyncio
async def test_fetch_limit_reads_and_caches(transport: FakeTransport) -> None:
    transport.data["/speed_limits/renter_123"] = 80
    store = LimitStore(transport)

    limit = await store.fetch_limit("renter_123")

    assert limit.kmh == 80.0
    assert limit.is_fallback is False
    assert store.cached("renter_123") == limit
    assert transport.calls == [("GET", "/speed_limits/renter_123")]


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["90", 90.0, {"limit": 90}, {"value": "90"}])
async def test_fetch_limit_accepts_value_shapes(transport: FakeTransport, value: Any) -> None:
    transport.data["/speed_limits/renter_456"] = value
    limit = await LimitStore(transport).fetch_limit("renter_456")
    assert limit.kmh == 90.0


@pytest.mark.asyncio
async def test_missing_key_falls_back_to_zero(transport: FakeTransport) -> None:
    limit = await LimitStore(transport).fetch_limit("nobody")
    assert limit.kmh == 0.0
    assert limit.is_fallback is True
    assert limit.reason


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [-5, "fast", {"other": 1}, True, 10**400, "1e400"])
async def test_unusable_value_falls_back_to_zero(transport: FakeTransport, value: Any) -> None:
    transport.data["/speed_limits/renter_123"] = value
    limit = await LimitStore(transport).fetch_limit("renter_123")
    assert limit.kmh == 0.0
    assert limit.is_fallback is True


@pytest.mark.asyncio
async def test_remote_error_falls_back_to_zero(transport: FakeTransport) -> None:
    transport.fail_get = True
    store = LimitStore(transport)

    limit = await store.fetch_limit("renter_123")

    assert limit.kmh == 0.0
    assert limit.is_fallback is True
    assert "503" in (limit.reason or "")
    assert store.cached("renter_123") == limit
    # no internal retry
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_unresponsive_service_is_bounded() -> None:
    store = LimitStore(_HangingTransport(), timeout=0.01)
    limit = await asyncio.wait_for(store.fetch_limit("renter_123"), timeout=1.0)
    assert limit.is_fallback is True
    assert "timed out" in (limit.reason or "")


@pytest.mark.asyncio
async def test_invalidate(transport: FakeTransport) -> None:
    transport.data["/speed_limits/a"] = 50
    transport.data["/speed_limits/b"] = 60
    store = LimitStore(transport)
    await store.fetch_limit("a")
    await store.fetch_limit("b")

    store.invalidate("a")
    assert store.cached("a") is None
    assert store.cached("b") is not None

    store.invalidate()
    assert store.cached("b") is None


@pytest.mark.asyncio
async def test_empty_subject_rejected(transport: FakeTransport) -> None:
    with pytest.raises(ValueError):
        await LimitStore(transport).fetch_limit("   ")
    assert transport.calls == []


def test_limit_path_quotes_subject() -> None:
    assert limit_path("renter_123") == "/speed_limits/renter_123"
    assert limit_path("a/b c") == "/speed_limits/a%2Fb%20c"
