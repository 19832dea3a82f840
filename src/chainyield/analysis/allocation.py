"""
Allocation planning

Splits an investment across the best-ranked aggregated opportunities that
fit an investor's risk tolerance.

Weighting by tolerance:
- conservative: 1 / risk^2, strongly prefers the safest strategies
- balanced: apy / risk
- aggressive: apy^2, strongly prefers the highest yields

An empty candidate set is not an error: the planner returns a zeroed
OptimizedAllocation and callers check ``is_feasible``.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Union

from .scoring import OptimizationScorer
from ..config.policy import DEFAULT_POLICY, OptimizerPolicy
from ..core.errors import InvalidPreferencesError
from ..core.types import (
    AggregatedOpportunity, AllocationPreferences, AllocationTarget, Impact,
    OptimizedAllocation, ProjectedYield, RiskTolerance
)
from ..utils.metrics import ALLOCATIONS_PLANNED
from ..utils.money import Money, quantize_cents, to_decimal

logger = logging.getLogger(__name__)

Preferences = Union[AllocationPreferences, Dict[str, Any]]


def parse_amount(total_amount: Money) -> Decimal:
    """Validate an investment amount"""
    try:
        amount = to_decimal(total_amount)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidPreferencesError(f"Invalid investment amount: {total_amount!r}")
    if not amount.is_finite() or amount < 0:
        raise InvalidPreferencesError(f"Invalid investment amount: {total_amount!r}")
    return amount


def _as_preferences(preferences: Optional[Preferences]) -> AllocationPreferences:
    if isinstance(preferences, AllocationPreferences):
        return preferences
    return AllocationPreferences.from_dict(preferences or {})


class AllocationPlanner:
    """Computes allocation plans from ranked aggregates"""

    def __init__(
        self,
        policy: Optional[OptimizerPolicy] = None,
        scorer: Optional[OptimizationScorer] = None
    ):
        self.policy = policy or DEFAULT_POLICY
        self.scorer = scorer or OptimizationScorer(self.policy.scoring)

    def risk_threshold(self, tolerance: RiskTolerance) -> float:
        return self.policy.allocation.risk_thresholds[tolerance.value]

    def select(
        self,
        candidates: Iterable[AggregatedOpportunity],
        preferences: AllocationPreferences
    ) -> List[AggregatedOpportunity]:
        """Candidates eligible for the plan, best-ranked first"""
        threshold = self.risk_threshold(preferences.risk_tolerance)
        eligible = []
        for candidate in candidates:
            if preferences.categories and candidate.category not in preferences.categories:
                continue
            if preferences.preferred_chains and not any(
                chain_id in preferences.preferred_chains for chain_id in candidate.chain_ids
            ):
                continue
            if candidate.risk_score <= threshold:
                eligible.append(candidate)

        max_positions = preferences.max_positions
        if not max_positions or max_positions <= 0:
            max_positions = self.policy.allocation.default_max_positions

        return self.scorer.rank(eligible)[:max_positions]

    def weights(self, selected: List[AggregatedOpportunity], tolerance: RiskTolerance) -> List[float]:
        """Normalized weights, one per selected aggregate"""
        if tolerance == RiskTolerance.CONSERVATIVE:
            raw = [1 / (a.risk_score ** 2) for a in selected]
        elif tolerance == RiskTolerance.BALANCED:
            raw = [max(a.effective_apy, 0.0) / a.risk_score for a in selected]
        else:
            raw = [max(a.effective_apy, 0.0) ** 2 for a in selected]

        total = sum(raw)
        if total <= 0:
            # Nothing pays a yield: split evenly
            return [1 / len(selected)] * len(selected)
        return [w / total for w in raw]

    def reasoning(
        self,
        aggregate: AggregatedOpportunity,
        percentage: float,
        tolerance: RiskTolerance
    ) -> str:
        """Human-readable explanation for one allocation"""
        policy = self.policy.allocation
        reasons = []

        if percentage > policy.reasoning_high_percentage:
            reasons.append(f"High allocation due to {aggregate.effective_apy:.1f}% APY")

        if any(b.impact == Impact.HIGH for b in aggregate.benefits):
            reasons.append("Significant cross-chain optimization benefits")

        if aggregate.risk_score < policy.reasoning_low_risk and tolerance == RiskTolerance.CONSERVATIVE:
            reasons.append("Low risk profile matches conservative strategy")

        if len(aggregate.chains) > policy.reasoning_many_chains:
            reasons.append("Good diversification across multiple chains")

        return "; ".join(reasons) or f"{percentage:.1f}% allocation based on risk-adjusted returns"

    def plan(
        self,
        total_amount: Money,
        preferences: Optional[Preferences],
        candidates: Iterable[AggregatedOpportunity]
    ) -> OptimizedAllocation:
        """Compute an allocation plan

        Raises:
            InvalidPreferencesError: on a malformed amount or preferences
        """
        total = parse_amount(total_amount)
        preferences = _as_preferences(preferences)
        tolerance = preferences.risk_tolerance

        selected = self.select(candidates, preferences)
        if not selected:
            logger.info(f"No opportunities eligible for a {tolerance.value} allocation")
            ALLOCATIONS_PLANNED.labels(risk_tolerance=tolerance.value, feasible='false').inc()
            return OptimizedAllocation.empty(total)

        allocations = []
        expected_apy = 0.0
        blended_risk = 0.0
        gas_native = Decimal("0")

        for aggregate, weight in zip(selected, self.weights(selected, tolerance)):
            percentage = weight * 100
            apy = aggregate.effective_apy
            allocated = total * Decimal(repr(weight))

            allocations.append(AllocationTarget(
                aggregate_id=aggregate.id,
                protocol=aggregate.protocol,
                category=aggregate.category,
                chosen_chain=aggregate.best_chain,
                allocated_amount=quantize_cents(allocated),
                percentage=percentage,
                apy=apy,
                risk_score=aggregate.risk_score,
                expected_yield=quantize_cents(allocated * Decimal(repr(apy)) / 100),
                reasoning=self.reasoning(aggregate, percentage, tolerance)
            ))

            expected_apy += weight * apy
            blended_risk += weight * aggregate.risk_score
            gas_native += aggregate.best_chain.gas_cost

        yearly = total * Decimal(repr(expected_apy)) / 100
        ALLOCATIONS_PLANNED.labels(risk_tolerance=tolerance.value, feasible='true').inc()

        return OptimizedAllocation(
            total_amount=total,
            allocations=allocations,
            expected_apy=expected_apy,
            risk_score=blended_risk,
            gas_costs_usd=quantize_cents(gas_native * self.policy.net_yield.native_token_price_usd),
            projected_yield=ProjectedYield(
                daily=quantize_cents(yearly / 365),
                monthly=quantize_cents(yearly / 12),
                yearly=quantize_cents(yearly)
            )
        )


def plan_allocation(
    total_amount: Money,
    preferences: Optional[Preferences],
    candidates: Iterable[AggregatedOpportunity],
    policy: Optional[OptimizerPolicy] = None
) -> OptimizedAllocation:
    return AllocationPlanner(policy).plan(total_amount, preferences, candidates)
