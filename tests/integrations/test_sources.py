import pytest
import json
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import aiohttp

from chainyield.core.types import Category, RawOpportunity, RiskLevel
from chainyield.integrations.defillama import DefiLlamaYieldSource, pool_category, pool_risk_level
from chainyield.integrations.static_source import JsonFileOpportunitySource, StaticOpportunitySource


class FakeResponse:
    def __init__(self, status, payload=None):
        self.status = status
        self.payload = payload

    async def json(self):
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.urls = []

    def get(self, url):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.response

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


def pool(**overrides):
    data = {
        'pool': 'aa70268e-4b52-42bf-a116-608b370f9501',
        'chain': 'Ethereum',
        'project': 'aave-v3',
        'symbol': 'USDC',
        'tvlUsd': 120000000,
        'apy': 3.8,
        'apyReward': None,
        'stablecoin': True,
        'ilRisk': 'no',
        'exposure': 'single',
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_static_source_returns_copy(aave_records):
    source = StaticOpportunitySource(aave_records)

    records = await source.fetch_opportunities()
    records.clear()

    assert len(await source.fetch_opportunities()) == 2


@pytest.mark.asyncio
async def test_json_file_source_reads_list_and_data_key(tmp_path, aave_records):
    as_list = tmp_path / "list.json"
    as_list.write_text(json.dumps(aave_records))
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({'data': aave_records}))

    assert await JsonFileOpportunitySource(as_list).fetch_opportunities() == aave_records
    assert await JsonFileOpportunitySource(str(wrapped)).fetch_opportunities() == aave_records


@pytest.mark.asyncio
async def test_json_file_source_rejects_other_shapes(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps("nope"))

    with pytest.raises(ValueError):
        await JsonFileOpportunitySource(path).fetch_opportunities()


def test_pool_category_heuristics():
    assert pool_category(pool()) == Category.LENDING
    assert pool_category(pool(exposure='multi')) == Category.LIQUIDITY
    assert pool_category(pool(project='lido')) == Category.STAKING
    assert pool_category(pool(project='beefy', apyReward=4.2)) == Category.FARMING


def test_pool_risk_heuristics():
    assert pool_risk_level(pool()) == RiskLevel.LOW
    assert pool_risk_level(pool(ilRisk='yes')) == RiskLevel.HIGH
    assert pool_risk_level(pool(stablecoin=False)) == RiskLevel.MEDIUM


def test_pool_mapping():
    opportunity = DefiLlamaYieldSource().to_opportunity(pool())

    assert isinstance(opportunity, RawOpportunity)
    assert opportunity.chain_id == 1
    assert opportunity.chain_name == "Ethereum"
    assert opportunity.protocol == "aave-v3"
    assert opportunity.tvl_usd == Decimal("120000000")
    assert opportunity.tvl == "$120.0M"
    assert opportunity.risk_level == RiskLevel.LOW


def test_pool_out_of_scope_is_dropped():
    source = DefiLlamaYieldSource(chain_ids=[137], min_tvl_usd=1000000)

    assert source.to_opportunity(pool()) is None
    assert source.to_opportunity(pool(chain='Solana')) is None
    assert source.to_opportunity(pool(chain='Polygon', tvlUsd=500)) is None
    assert source.to_opportunity(pool(chain='Polygon', apy=None)) is None
    assert source.to_opportunity(pool(chain='Polygon')).chain_id == 137


@pytest.mark.asyncio
async def test_get_pools_reads_data():
    session = FakeSession(FakeResponse(200, {'status': 'success', 'data': [pool()]}))

    with patch('chainyield.integrations.defillama.aiohttp.ClientSession', return_value=session):
        pools = await DefiLlamaYieldSource(api_url="https://yields.example/").get_pools()

    assert pools == [pool()]
    assert session.urls == ["https://yields.example/pools"]


@pytest.mark.asyncio
async def test_concurrent_get_pools_each_fetch_once():
    session = FakeSession(FakeResponse(200, {'data': [pool()]}))
    source = DefiLlamaYieldSource(api_url="https://yields.example")

    with patch('chainyield.integrations.defillama.aiohttp.ClientSession', return_value=session):
        results = await asyncio.gather(*(source.get_pools() for _ in range(3)))

    assert results == [[pool()]] * 3
    assert len(session.urls) == 3


@pytest.mark.asyncio
async def test_get_pools_http_error_returns_empty():
    session = FakeSession(FakeResponse(503))

    with patch('chainyield.integrations.defillama.aiohttp.ClientSession', return_value=session):
        assert await DefiLlamaYieldSource().get_pools() == []


@pytest.mark.asyncio
async def test_get_pools_connection_error_returns_empty():
    session = FakeSession(error=aiohttp.ClientConnectionError("refused"))

    with patch('chainyield.integrations.defillama.aiohttp.ClientSession', return_value=session):
        assert await DefiLlamaYieldSource().get_pools() == []


@pytest.mark.asyncio
async def test_fetch_opportunities_skips_bad_pools():
    source = DefiLlamaYieldSource()
    source.get_pools = AsyncMock(return_value=[
        pool(),
        pool(chain='Arbitrum', project='gmx', tvlUsd='lots'),
        pool(chain='Solana'),
    ])

    opportunities = await source.fetch_opportunities()

    assert [o.chain_id for o in opportunities] == [1]
