"""Optimization score used to rank aggregated opportunities"""

from decimal import Decimal
from typing import Iterable, List, Optional

from ..config.policy import ScoringWeights
from ..core.types import AggregatedOpportunity

USD_PER_MILLION = Decimal("1e6")


class OptimizationScorer:
    """Scores aggregates on yield, size, risk and cross-chain reach

    The score only has meaning as a sort key.
    """

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    def score(self, aggregate: AggregatedOpportunity) -> float:
        w = self.weights
        tvl_millions = float(aggregate.total_tvl_usd / USD_PER_MILLION)
        return (
            w.apy * aggregate.effective_apy
            + w.tvl_millions * tvl_millions
            + w.risk * (w.risk_ceiling - aggregate.risk_score)
            + w.chain_count * len(aggregate.chains)
            + w.benefit_count * len(aggregate.benefits)
        )

    def rank(self, aggregates: Iterable[AggregatedOpportunity]) -> List[AggregatedOpportunity]:
        """Highest score first; equal scores keep their input order"""
        return sorted(aggregates, key=self.score, reverse=True)


def rank_opportunities(
    aggregates: Iterable[AggregatedOpportunity],
    weights: Optional[ScoringWeights] = None
) -> List[AggregatedOpportunity]:
    return OptimizationScorer(weights).rank(aggregates)
