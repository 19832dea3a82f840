"""
chainyield

Cross-chain yield aggregation and capital allocation:
- aggregate_opportunities merges per-chain opportunities into strategies
- rank_opportunities orders strategies by optimization score
- plan_allocation splits an investment across the best strategies
"""

from .analysis.aggregator import aggregate_opportunities
from .analysis.allocation import plan_allocation
from .analysis.scoring import rank_opportunities
from .config.policy import DEFAULT_POLICY, NetYieldAssumptions, OptimizerPolicy
from .core.errors import (
    ChainYieldError, InvalidPreferencesError, MalformedOpportunityError,
    MalformedTvlError, UnsupportedChainError
)
from .core.types import (
    AggregatedOpportunity, AggregateFilters, AllocationPreferences, AllocationTarget,
    ChainPresence, CrossChainBenefit, MarketConditions, OptimizedAllocation,
    ProjectedYield, RawOpportunity, RiskTolerance
)
from .services.yield_optimizer_service import YieldOptimizerService

__version__ = "0.1.0"

__all__ = [
    # Core API
    'aggregate_opportunities', 'rank_opportunities', 'plan_allocation',
    'YieldOptimizerService',

    # Policy
    'OptimizerPolicy', 'NetYieldAssumptions', 'DEFAULT_POLICY',

    # Types
    'RawOpportunity', 'ChainPresence', 'CrossChainBenefit', 'AggregatedOpportunity',
    'AllocationPreferences', 'AggregateFilters', 'AllocationTarget', 'ProjectedYield',
    'OptimizedAllocation', 'MarketConditions', 'RiskTolerance',

    # Errors
    'ChainYieldError', 'InvalidPreferencesError', 'MalformedOpportunityError',
    'MalformedTvlError', 'UnsupportedChainError',
]
