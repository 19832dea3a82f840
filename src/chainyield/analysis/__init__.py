"""
Analysis package

Cross-chain yield aggregation, benefit analysis, scoring and allocation:
- OpportunityAggregator groups raw opportunities by strategy
- CrossChainBenefitAnalyzer derives cross-chain benefits and boosted APY
- OptimizationScorer ranks aggregates
- AllocationPlanner splits an investment across the ranked aggregates
"""

from .aggregator import OpportunityAggregator, aggregate_opportunities
from .allocation import AllocationPlanner, plan_allocation
from .cross_chain import CrossChainBenefitAnalyzer, analyze_benefits
from .scoring import OptimizationScorer, rank_opportunities

__all__ = [
    'OpportunityAggregator',
    'aggregate_opportunities',
    'CrossChainBenefitAnalyzer',
    'analyze_benefits',
    'OptimizationScorer',
    'rank_opportunities',
    'AllocationPlanner',
    'plan_allocation'
]
