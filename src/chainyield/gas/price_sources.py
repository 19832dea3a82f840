"""
Gas price sources

A gas price source answers one question: what is the current gas price on a
chain, in gwei. Prices are returned as decimal strings so they can travel
through caches and JSON untouched.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Optional, Union

import structlog
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from ..config.chain_specs import get_chain_spec_by_id
from ..config.environment import EnvironmentManager
from ..core.errors import UnsupportedChainError

logger = structlog.get_logger(__name__)


class GasPriceSource(ABC):
    @abstractmethod
    async def get_gas_price(self, chain_id: int) -> str:
        """Current gas price for a chain in gwei

        Raises:
            UnsupportedChainError: if the chain has no price source
        """
        pass


class StaticGasPriceSource(GasPriceSource):
    """Fixed gas prices, for offline runs and tests"""

    def __init__(self, prices: Dict[int, Union[str, int, float, Decimal]]):
        self.prices = {int(chain_id): str(price) for chain_id, price in prices.items()}

    async def get_gas_price(self, chain_id: int) -> str:
        if chain_id not in self.prices:
            raise UnsupportedChainError(chain_id)
        return self.prices[chain_id]


class Web3GasPriceSource(GasPriceSource):
    """Reads gas prices from chain RPC endpoints"""

    def __init__(
        self,
        rpc_urls: Optional[Dict[int, str]] = None,
        env_manager: Optional[EnvironmentManager] = None,
        default_gas_price_gwei: str = "20",
        request_timeout: float = 10.0
    ):
        """
        Args:
            rpc_urls: Explicit RPC URL per chain ID, takes precedence over the registry
            env_manager: Used to resolve ${VAR} placeholders in registry URLs
            default_gas_price_gwei: Returned when an RPC call fails
            request_timeout: HTTP timeout per request in seconds
        """
        self.rpc_urls = dict(rpc_urls or {})
        self.env = env_manager or EnvironmentManager(load_files=False)
        self.default_gas_price_gwei = default_gas_price_gwei
        self.request_timeout = request_timeout
        self._clients: Dict[int, AsyncWeb3] = {}

    def _rpc_url(self, chain_id: int) -> Optional[str]:
        if chain_id in self.rpc_urls:
            return self.rpc_urls[chain_id]
        spec = get_chain_spec_by_id(chain_id)
        if not spec:
            return None
        urls = self.env.resolve_urls(spec.rpc_urls)
        return urls[0] if urls else None

    def _client(self, chain_id: int) -> AsyncWeb3:
        if chain_id not in self._clients:
            url = self._rpc_url(chain_id)
            if not url:
                raise UnsupportedChainError(chain_id)
            self._clients[chain_id] = AsyncWeb3(
                AsyncHTTPProvider(url, request_kwargs={'timeout': self.request_timeout})
            )
        return self._clients[chain_id]

    async def get_gas_price(self, chain_id: int) -> str:
        web3 = self._client(chain_id)
        try:
            wei = await web3.eth.gas_price
            return str(Web3.from_wei(wei, 'gwei'))
        except Exception as e:
            logger.warning(
                "gas_price_rpc_failed",
                chain_id=chain_id,
                error=str(e),
                fallback_gwei=self.default_gas_price_gwei
            )
            return self.default_gas_price_gwei
