"""DeFi Llama yields API integration"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

import aiohttp

from ..config.chain_specs import find_chain_by_label, get_all_supported_chains
from ..core.types import Category, RawOpportunity, RiskLevel
from ..services.interfaces import OpportunitySourceInterface
from ..utils.money import to_decimal

logger = logging.getLogger(__name__)

STAKING_HINTS = ('staking', 'stake', 'lido', 'rocket-pool', 'frax-ether', 'mantle-staked')


def pool_category(pool: Dict[str, Any]) -> str:
    """Best-effort category for a DeFi Llama pool"""
    project = str(pool.get('project', '')).lower()
    if pool.get('exposure') == 'multi':
        return Category.LIQUIDITY
    if any(hint in project for hint in STAKING_HINTS):
        return Category.STAKING
    if pool.get('apyReward'):
        return Category.FARMING
    return Category.LENDING


def pool_risk_level(pool: Dict[str, Any]) -> str:
    if pool.get('ilRisk') == 'yes':
        return RiskLevel.HIGH
    if pool.get('stablecoin'):
        return RiskLevel.LOW
    return RiskLevel.MEDIUM


class DefiLlamaYieldSource(OpportunitySourceInterface):
    """Opportunity source backed by https://yields.llama.fi"""

    def __init__(
        self,
        api_url: str = "https://yields.llama.fi",
        chain_ids: Optional[Iterable[int]] = None,
        min_tvl_usd: float = 1_000_000,
        request_timeout: float = 30.0
    ):
        self.api_url = api_url.rstrip('/')
        self.chain_ids = set(chain_ids) if chain_ids else {
            spec.chain_id for spec in get_all_supported_chains(include_testnets=False)
        }
        self.min_tvl_usd = min_tvl_usd
        self.request_timeout = request_timeout

    async def get_pools(self) -> List[Dict[str, Any]]:
        """Raw pool list, empty on any HTTP error"""
        url = f"{self.api_url}/pools"
        try:
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.error(f"DeFi Llama returned status {response.status} for {url}")
                        return []
                    payload = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error fetching DeFi Llama pools: {str(e)}")
            return []

        return payload.get('data', []) if isinstance(payload, dict) else []

    def to_opportunity(self, pool: Dict[str, Any]) -> Optional[RawOpportunity]:
        """Map one pool to a RawOpportunity, None when it is out of scope"""
        spec = find_chain_by_label(str(pool.get('chain', '')))
        if spec is None or spec.chain_id not in self.chain_ids:
            return None

        apy = pool.get('apy')
        tvl_usd = pool.get('tvlUsd') or 0
        if apy is None or tvl_usd < self.min_tvl_usd:
            return None

        return RawOpportunity(
            id=str(pool.get('pool') or f"{spec.name}-{pool.get('project')}-{pool.get('symbol')}"),
            chain_id=spec.chain_id,
            chain_name=spec.display_name,
            protocol=str(pool.get('project', 'unknown')),
            category=pool_category(pool),
            pair=str(pool.get('symbol', '')),
            apy=float(apy),
            tvl_usd=to_decimal(tvl_usd),
            contract_reference=str(pool.get('pool', '')),
            risk_level=pool_risk_level(pool),
        )

    async def fetch_opportunities(self) -> List[RawOpportunity]:
        opportunities = []
        for pool in await self.get_pools():
            try:
                opportunity = self.to_opportunity(pool)
            except (TypeError, ValueError, ArithmeticError) as e:
                logger.debug(f"Skipping DeFi Llama pool {pool.get('pool')}: {e}")
                continue
            if opportunity is not None:
                opportunities.append(opportunity)

        logger.info(f"Fetched {len(opportunities)} opportunities from DeFi Llama")
        return opportunities
