import pytest
import asyncio
from unittest.mock import AsyncMock

from chainyield.core.errors import UnsupportedChainError
from chainyield.gas.market_cache import MarketDataCache
from chainyield.gas.price_sources import StaticGasPriceSource


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def source():
    return StaticGasPriceSource({1: "20", 137: "30"})


@pytest.mark.asyncio
async def test_prices_are_cached_until_ttl(clock):
    """A second lookup inside the TTL does not hit the source"""
    source = AsyncMock()
    source.get_gas_price.side_effect = lambda chain_id: f"{chain_id}"
    cache = MarketDataCache(source, ttl=300, timer=clock)

    assert await cache.get_gas_prices([1, 137]) == {1: "1", 137: "137"}
    clock.now += 299
    assert await cache.get_gas_prices([1, 137]) == {1: "1", 137: "137"}
    assert source.get_gas_price.await_count == 2

    clock.now += 1
    await cache.get_gas_prices([1])
    assert source.get_gas_price.await_count == 3


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_refresh(clock):
    """Only one round of requests goes out for a burst of lookups"""
    calls = []

    async def slow_price(chain_id):
        calls.append(chain_id)
        await asyncio.sleep(0.01)
        return "25"

    source = AsyncMock()
    source.get_gas_price.side_effect = slow_price
    cache = MarketDataCache(source, timer=clock)

    results = await asyncio.gather(*(cache.get_gas_prices([1, 137]) for _ in range(5)))

    assert all(r == {1: "25", 137: "25"} for r in results)
    assert sorted(calls) == [1, 137]


@pytest.mark.asyncio
async def test_unsupported_chains_are_left_out(source, clock):
    cache = MarketDataCache(source, timer=clock)

    prices = await cache.get_gas_prices([1, 999])

    assert prices == {1: "20"}
    assert isinstance(cache.unsupported[999], UnsupportedChainError)


@pytest.mark.asyncio
async def test_failed_fetch_is_not_cached(clock):
    source = AsyncMock()
    source.get_gas_price.side_effect = [RuntimeError("rpc down"), "15"]
    cache = MarketDataCache(source, timer=clock)

    assert await cache.get_gas_prices([1]) == {}
    assert await cache.get_gas_prices([1]) == {1: "15"}


@pytest.mark.asyncio
async def test_snapshot_and_staleness(source, clock):
    cache = MarketDataCache(source, ttl=60, timer=clock)
    assert cache.is_stale()
    assert cache.snapshot().gas_prices == {}

    await cache.get_gas_prices([1, 137])
    snapshot = cache.snapshot()
    assert snapshot.gas_prices == {1: "20", 137: "30"}
    assert snapshot.updated_at == clock.now
    assert not snapshot.stale

    clock.now += 60
    snapshot = cache.snapshot()
    assert snapshot.stale
    assert snapshot.gas_prices == {}


@pytest.mark.asyncio
async def test_clear(source, clock):
    cache = MarketDataCache(source, timer=clock)
    await cache.get_gas_prices([1, 999])

    cache.clear()

    assert cache.unsupported == {}
    assert cache.last_updated is None
    assert cache.snapshot().gas_prices == {}
