"""
Error taxonomy for the optimizer core

Only InvalidPreferencesError is meant to reach callers. The other errors are
raised at the edges (parsers, gas price sources) and recovered inside the
aggregation pass, where they are logged and counted.
"""

import logging
from typing import Any, Optional

from ..utils.metrics import GAS_FALLBACKS, OPPORTUNITIES_SKIPPED

logger = logging.getLogger(__name__)


class ChainYieldError(Exception):
    """Base class for optimizer errors"""


class MalformedTvlError(ChainYieldError):
    """TVL string does not match the "$X[K|M|B]" notation"""

    def __init__(self, value: Any):
        super().__init__(f"Malformed TVL value: {value!r}")
        self.value = value


class MalformedOpportunityError(ChainYieldError):
    """Raw opportunity record is missing required fields or has bad values"""

    def __init__(self, message: str, record: Optional[Any] = None):
        super().__init__(message)
        self.record = record


class UnsupportedChainError(ChainYieldError):
    """No gas price source is known for the chain"""

    def __init__(self, chain_id: int):
        super().__init__(f"Unsupported chain ID: {chain_id}")
        self.chain_id = chain_id


class InvalidPreferencesError(ChainYieldError, ValueError):
    """Allocation preferences or amount are malformed"""


def record_skip(reason: str, error: Exception, subject: Any = None) -> None:
    """Log and count an item dropped from a batch"""
    OPPORTUNITIES_SKIPPED.labels(reason=reason).inc()
    logger.warning(f"Skipping {subject or 'item'} ({reason}): {error}")


def record_gas_fallback(chain_id: int, error: Exception) -> None:
    """Log and count a gas estimate that fell back to the default cost"""
    GAS_FALLBACKS.labels(chain_id=str(chain_id)).inc()
    logger.warning(f"Using fallback gas estimate for chain {chain_id}: {error}")
