from decimal import Decimal
from typing import Dict, Iterable, Optional

import structlog

from .market_cache import MarketDataCache
from .price_sources import GasPriceSource
from ..config.policy import GasPolicy
from ..core.errors import UnsupportedChainError, record_gas_fallback

logger = structlog.get_logger(__name__)

GWEI_PER_NATIVE = Decimal(10) ** 9


class GasEstimator:
    """Estimates per-transaction gas cost by chain and operation category"""

    def __init__(
        self,
        price_source: Optional[GasPriceSource] = None,
        cache: Optional[MarketDataCache] = None,
        policy: Optional[GasPolicy] = None
    ):
        self.policy = policy or GasPolicy()
        if cache is None:
            if price_source is None:
                raise ValueError("GasEstimator needs a price source or a market data cache")
            cache = MarketDataCache(
                price_source,
                ttl=self.policy.cache_ttl_seconds,
                maxsize=self.policy.cache_max_size
            )
        self.cache = cache

    def gas_units_for(self, category: str) -> int:
        """Gas units consumed by a deposit in the given category"""
        return self.policy.gas_units.get(category, self.policy.default_gas_units)

    async def estimate_gas_units(self, category: str) -> int:
        return self.gas_units_for(category)

    async def get_gas_prices(self, chain_ids: Iterable[int]) -> Dict[int, str]:
        """Gas prices in gwei for each chain, fetched concurrently through the cache"""
        return await self.cache.get_gas_prices(chain_ids)

    def gas_cost(self, gas_price_gwei: str, category: str) -> Decimal:
        """Cost in native units of one transaction at the given gas price"""
        return Decimal(gas_price_gwei) * self.gas_units_for(category) / GWEI_PER_NATIVE

    def cost_for_chain(self, chain_id: int, category: str, gas_prices: Dict[int, str]) -> Decimal:
        """Cost on a chain using prefetched prices

        Chains without a known price get the conservative fallback cost.
        """
        price = gas_prices.get(chain_id)
        if price is None:
            error = self.cache.unsupported.get(chain_id) or UnsupportedChainError(chain_id)
            record_gas_fallback(chain_id, error)
            return self.policy.fallback_gas_cost
        try:
            return self.gas_cost(price, category)
        except ArithmeticError as e:
            record_gas_fallback(chain_id, e)
            return self.policy.fallback_gas_cost

    async def estimate_gas_cost(self, chain_id: int, category: str) -> Decimal:
        gas_prices = await self.get_gas_prices([chain_id])
        return self.cost_for_chain(chain_id, category, gas_prices)
