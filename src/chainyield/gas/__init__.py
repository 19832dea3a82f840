"""Gas price sources, market data cache and gas cost estimation"""

from .gas_manager import GasEstimator
from .market_cache import MarketDataCache
from .price_sources import GasPriceSource, StaticGasPriceSource, Web3GasPriceSource

__all__ = [
    'GasEstimator',
    'MarketDataCache',
    'GasPriceSource',
    'StaticGasPriceSource',
    'Web3GasPriceSource'
]
