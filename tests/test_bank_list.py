"""Tests for the process-wide bank list cache."""

import asyncio

import pytest

from app.providers.baokim.bank_list import BankListCache
from app.providers.baokim.schemas import BankChannel
from app.schemas.payment import PaymentProfile

PROFILE = PaymentProfile(payment_profile_id=1, provider_id="tpb_baokim", options={"api_key": "k", "api_secret": "s"})


class StubGateway:
    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def list_channels(self, profile):
        self.calls += 1
        return self.results.pop(0) if self.results else []


class Clock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def channels(*ids):
    return [BankChannel(id=i, type=1) for i in ids]


@pytest.mark.asyncio
async def test_within_ttl_uses_cache():
    gw = StubGateway(channels(1, 2))
    clock = Clock()
    cache = BankListCache(gw, ttl_sec=86400, clock=clock)

    first = await cache.get(PROFILE)
    clock.now += 86399
    second = await cache.get(PROFILE)

    assert [c.id for c in first] == [1, 2]
    assert [c.id for c in second] == [1, 2]
    assert gw.calls == 1


@pytest.mark.asyncio
async def test_expiry_triggers_exactly_one_refresh():
    gw = StubGateway(channels(1), channels(3))
    clock = Clock()
    cache = BankListCache(gw, ttl_sec=86400, clock=clock)

    await cache.get(PROFILE)
    clock.now += 86400
    refreshed = await cache.get(PROFILE)
    again = await cache.get(PROFILE)

    assert [c.id for c in refreshed] == [3]
    assert [c.id for c in again] == [3]
    assert gw.calls == 2


@pytest.mark.asyncio
async def test_failed_refresh_returns_stale_list():
    gw = StubGateway(channels(5), [])
    clock = Clock()
    cache = BankListCache(gw, ttl_sec=10, clock=clock)

    await cache.get(PROFILE)
    clock.now += 11
    stale = await cache.get(PROFILE)

    assert [c.id for c in stale] == [5]
    assert gw.calls == 2


@pytest.mark.asyncio
async def test_failure_without_cache_is_empty():
    gw = StubGateway([])
    cache = BankListCache(gw, clock=Clock())
    assert await cache.get(PROFILE) == []
    # nothing was cached, so the next call tries again
    assert await cache.get(PROFILE) == []
    assert gw.calls == 2


@pytest.mark.asyncio
async def test_concurrent_refreshes_do_not_corrupt():
    gw = StubGateway(channels(1), channels(2), channels(3))
    cache = BankListCache(gw, clock=Clock())

    results = await asyncio.gather(*[cache.get(PROFILE) for _ in range(3)])

    assert all(len(r) == 1 for r in results)
    assert gw.calls == 1


@pytest.mark.asyncio
async def test_clear_forces_refresh():
    gw = StubGateway(channels(1), channels(2))
    cache = BankListCache(gw, clock=Clock())
    await cache.get(PROFILE)
    cache.clear()
    assert [c.id for c in await cache.get(PROFILE)] == [2]
