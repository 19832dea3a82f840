"""Shared test fixtures"""

import pytest
from decimal import Decimal
from typing import Any, Dict, List

from chainyield.core.types import AggregatedOpportunity, ChainPresence, LiquidityDepth
from chainyield.gas.gas_manager import GasEstimator
from chainyield.gas.price_sources import StaticGasPriceSource


def make_presence(
    chain_id: int = 1,
    apy: float = 5.0,
    tvl_usd: str = "10000000",
    gas_cost: str = "0.003",
    chain_name: str = None,
    liquidity_depth: str = LiquidityDepth.MEDIUM,
    native_symbol: str = "ETH"
) -> ChainPresence:
    return ChainPresence(
        chain_id=chain_id,
        chain_name=chain_name or f"Chain {chain_id}",
        apy=apy,
        tvl_usd=Decimal(tvl_usd),
        contract_reference=f"0x{chain_id:040x}",
        gas_cost=Decimal(gas_cost),
        native_symbol=native_symbol,
        liquidity_depth=liquidity_depth
    )


def make_aggregate(
    protocol: str = "aave",
    category: str = "lending",
    apy: float = 5.0,
    risk_score: float = 1.0,
    tvl_usd: str = "10000000",
    chains: List[ChainPresence] = None,
    benefits=None
) -> AggregatedOpportunity:
    chains = chains or [make_presence(apy=apy, tvl_usd=tvl_usd)]
    return AggregatedOpportunity(
        id=f"aggregated-{protocol}-{category}",
        protocol=protocol,
        category=category,
        base_apy=apy,
        boosted_apy=apy,
        total_tvl_usd=Decimal(tvl_usd),
        risk_score=risk_score,
        chains=chains,
        best_chain=chains[0],
        benefits=benefits or []
    )


@pytest.fixture
def aave_records() -> List[Dict[str, Any]]:
    """Aave lending on Ethereum and Polygon"""
    return [
        {
            'id': 'eth-aave-usdc',
            'chainId': 1,
            'chainName': 'Ethereum',
            'protocol': 'aave',
            'category': 'lending',
            'pair': 'USDC',
            'apy': 3.8,
            'tvl': '$120M',
            'riskLevel': 'low',
            'contractReference': '0x87870Bca3F3fD6335C3F4ce8392D69350B4fA4E2',
        },
        {
            'id': 'polygon-aave-usdc',
            'chainId': 137,
            'chainName': 'Polygon',
            'protocol': 'aave',
            'category': 'lending',
            'pair': 'USDC',
            'apy': 4.1,
            'tvl': '$78M',
            'riskLevel': 'low',
            'contractReference': '0x794a61358D6845594F94dc1DB02A252b5b4814aD',
        },
    ]


@pytest.fixture
def mixed_records(aave_records) -> List[Dict[str, Any]]:
    """Several strategies across chains"""
    return aave_records + [
        {
            'id': 'arb-gmx-glp',
            'chainId': 42161,
            'chainName': 'Arbitrum One',
            'protocol': 'gmx',
            'category': 'staking',
            'pair': 'GLP',
            'apy': 12.5,
            'tvl': '$450M',
            'riskLevel': 'medium',
            'contractReference': '0xglp',
        },
        {
            'id': 'op-velo-weth-usdc',
            'chainId': 10,
            'chainName': 'Optimism',
            'protocol': 'velodrome',
            'category': 'liquidity',
            'pair': 'WETH-USDC',
            'apy': 24.0,
            'tvl': '$35M',
            'riskLevel': 'high',
            'contractReference': '0xvelo',
        },
        {
            'id': 'base-velo-weth-usdc',
            'chainId': 8453,
            'chainName': 'Base',
            'protocol': 'velodrome',
            'category': 'liquidity',
            'pair': 'WETH-USDC',
            'apy': 31.0,
            'tvl': '$8M',
            'riskLevel': 'high',
            'contractReference': '0xaero',
        },
    ]


@pytest.fixture
def gas_prices() -> Dict[int, str]:
    return {1: "20", 137: "20", 42161: "0.1", 10: "0.05", 8453: "0.05"}


@pytest.fixture
def gas_estimator(gas_prices) -> GasEstimator:
    """Estimator with static prices for the mainnet chains used in fixtures"""
    return GasEstimator(StaticGasPriceSource(gas_prices))


@pytest.fixture
def presence_factory():
    return make_presence


@pytest.fixture
def aggregate_factory():
    return make_aggregate
