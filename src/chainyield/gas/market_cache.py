"""
Market data cache

Time-boxed cache of per-chain gas prices. Missing prices are fetched with one
request per chain, all in flight together. Refreshes are serialized so that
a burst of allocation requests triggers a single round of RPC calls.
"""

import asyncio
import time
from typing import Callable, Dict, Iterable, List, Optional

import structlog
from cachetools import TTLCache

from .price_sources import GasPriceSource
from ..core.errors import UnsupportedChainError
from ..core.types import MarketConditions
from ..utils.metrics import GAS_CACHE_LOOKUPS

logger = structlog.get_logger(__name__)


class MarketDataCache:
    """Gas price cache with a fixed expiry"""

    def __init__(
        self,
        source: GasPriceSource,
        ttl: float = 300.0,
        maxsize: int = 256,
        timer: Callable[[], float] = time.monotonic
    ):
        self.source = source
        self.ttl = ttl
        self._timer = timer
        self._prices: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._refresh_lock = asyncio.Lock()
        self.last_updated: Optional[float] = None
        self.unsupported: Dict[int, UnsupportedChainError] = {}

    def _read(self, chain_ids: Iterable[int]) -> Dict[int, str]:
        prices = {}
        for chain_id in chain_ids:
            price = self._prices.get(chain_id)
            if price is not None:
                prices[chain_id] = price
        return prices

    async def get_gas_prices(self, chain_ids: Iterable[int]) -> Dict[int, str]:
        """Gas prices (gwei) for the requested chains

        Chains without a price source are left out of the result and
        remembered in ``unsupported``.
        """
        wanted = list(dict.fromkeys(chain_ids))
        prices = self._read(wanted)
        missing = [c for c in wanted if c not in prices]

        GAS_CACHE_LOOKUPS.labels(result='hit').inc(len(prices))
        if not missing:
            return prices

        async with self._refresh_lock:
            # Another caller may have refreshed these while we waited
            prices.update(self._read(missing))
            missing = [c for c in missing if c not in prices]
            if missing:
                GAS_CACHE_LOOKUPS.labels(result='miss').inc(len(missing))
                fetched = await self._fetch(missing)
                for chain_id, price in fetched.items():
                    self._prices[chain_id] = price
                prices.update(fetched)
                if fetched:
                    self.last_updated = self._timer()

        return prices

    async def _fetch(self, chain_ids: List[int]) -> Dict[int, str]:
        results = await asyncio.gather(
            *(self.source.get_gas_price(chain_id) for chain_id in chain_ids),
            return_exceptions=True
        )

        fetched = {}
        for chain_id, result in zip(chain_ids, results):
            if isinstance(result, UnsupportedChainError):
                self.unsupported[chain_id] = result
                logger.info("gas_price_unsupported_chain", chain_id=chain_id)
            elif isinstance(result, Exception):
                logger.error("gas_price_fetch_failed", chain_id=chain_id, error=str(result))
            else:
                self.unsupported.pop(chain_id, None)
                fetched[chain_id] = result
        return fetched

    def is_stale(self) -> bool:
        if self.last_updated is None:
            return True
        return self._timer() - self.last_updated >= self.ttl

    def snapshot(self) -> MarketConditions:
        """Current cache contents as market conditions"""
        self._prices.expire()
        return MarketConditions(
            gas_prices=dict(self._prices.items()),
            updated_at=self.last_updated,
            stale=self.is_stale()
        )

    def clear(self) -> None:
        self._prices.clear()
        self.unsupported.clear()
        self.last_updated = None
