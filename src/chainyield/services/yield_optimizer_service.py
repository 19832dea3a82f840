"""
Yield Optimizer Service

Entry point for outer layers (CLI, HTTP handlers):
- Fetches raw opportunities from an opportunity source
- Aggregates them across chains with live or static gas prices
- Ranks and filters aggregated opportunities
- Plans allocations for an investment amount
"""

import logging
from typing import Any, Dict, List, Optional, Union

from ..analysis.aggregator import OpportunityAggregator
from ..analysis.allocation import AllocationPlanner, parse_amount
from ..analysis.scoring import OptimizationScorer
from ..config.policy import DEFAULT_POLICY, OptimizerPolicy
from ..core.types import (
    AggregatedOpportunity, AggregateFilters, AllocationPreferences,
    MarketConditions, OptimizedAllocation
)
from ..gas.gas_manager import GasEstimator
from ..utils.money import Money
from .interfaces import OpportunitySourceInterface

logger = logging.getLogger(__name__)


class YieldOptimizerService:
    """Aggregates opportunities and plans allocations"""

    def __init__(
        self,
        source: OpportunitySourceInterface,
        gas_estimator: GasEstimator,
        policy: Optional[OptimizerPolicy] = None
    ):
        self.source = source
        self.gas_estimator = gas_estimator
        self.policy = policy or DEFAULT_POLICY

        self.aggregator = OpportunityAggregator(gas_estimator, self.policy)
        self.scorer = OptimizationScorer(self.policy.scoring)
        self.planner = AllocationPlanner(self.policy, self.scorer)

    async def _aggregate(self) -> List[AggregatedOpportunity]:
        try:
            raw = await self.source.fetch_opportunities()
        except Exception as e:
            logger.error(f"Error fetching opportunities: {str(e)}")
            return []
        return await self.aggregator.aggregate(raw)

    async def get_aggregated_opportunities(
        self,
        filters: Optional[Union[AggregateFilters, Dict[str, Any]]] = None
    ) -> List[AggregatedOpportunity]:
        """Ranked aggregated opportunities matching the filters

        Args:
            filters: AggregateFilters or a dict with maxRisk, preferredChains,
                categories and minApy keys

        Returns:
            Aggregates, best score first
        """
        if isinstance(filters, dict):
            filters = AggregateFilters(
                max_risk=filters.get('maxRisk', filters.get('max_risk')),
                preferred_chains=filters.get('preferredChains', filters.get('preferred_chains')),
                categories=filters.get('categories'),
                min_apy=filters.get('minApy', filters.get('min_apy')),
            )

        aggregates = await self._aggregate()
        if filters is not None:
            aggregates = [a for a in aggregates if filters.matches(a)]

        logger.info(f"Serving {len(aggregates)} aggregated opportunities")
        return self.scorer.rank(aggregates)

    async def get_optimal_allocation(
        self,
        total_amount: Money,
        preferences: Optional[Union[AllocationPreferences, Dict[str, Any]]] = None
    ) -> OptimizedAllocation:
        """Allocation plan over the current opportunities

        Raises:
            InvalidPreferencesError: if the amount or preferences are malformed
        """
        # Validate before touching the network
        parse_amount(total_amount)
        if not isinstance(preferences, AllocationPreferences):
            preferences = AllocationPreferences.from_dict(preferences or {})

        aggregates = await self._aggregate()
        allocation = self.planner.plan(total_amount, preferences, aggregates)

        logger.info(
            f"Planned {len(allocation.allocations)} positions for "
            f"{allocation.total_amount} ({preferences.risk_tolerance.value})"
        )
        return allocation

    def get_market_conditions(self) -> MarketConditions:
        """Gas prices currently held by the market data cache"""
        return self.gas_estimator.cache.snapshot()
