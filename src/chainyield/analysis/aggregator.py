"""
Opportunity aggregation

Raw opportunities that represent the same strategy (same protocol and
category) on different chains are merged into one AggregatedOpportunity.
Grouping is an exact match on the (protocol, category) pair so the output
is reproducible for a given feed.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .cross_chain import CrossChainBenefitAnalyzer
from ..config.chain_specs import get_all_supported_chains, native_symbol
from ..config.policy import DEFAULT_POLICY, NetYieldAssumptions, OptimizerPolicy
from ..core.errors import MalformedOpportunityError, record_skip
from ..core.types import AggregatedOpportunity, ChainPresence, LiquidityDepth, RawOpportunity
from ..gas.gas_manager import GasEstimator
from ..gas.price_sources import StaticGasPriceSource
from ..utils.metrics import AGGREGATION_SECONDS, observe_duration

logger = logging.getLogger(__name__)

GroupKey = Tuple[str, str]

# TVL is used as a stand-in for order-book depth
LIQUIDITY_TIERS = (
    (Decimal("1e9"), LiquidityDepth.VERY_HIGH),
    (Decimal("50e6"), LiquidityDepth.HIGH),
    (Decimal("10e6"), LiquidityDepth.MEDIUM),
)


def liquidity_depth(tvl_usd: Decimal) -> str:
    for threshold, tier in LIQUIDITY_TIERS:
        if tvl_usd >= threshold:
            return tier
    return LiquidityDepth.LOW


def net_yield(presence: ChainPresence, assumptions: NetYieldAssumptions) -> float:
    """APY left after a year of gas on the reference investment, floored at zero"""
    yearly_gas_usd = (
        presence.gas_cost
        * assumptions.transactions_per_year
        * assumptions.native_token_price_usd
    )
    gas_impact_pct = yearly_gas_usd / assumptions.reference_investment_usd * 100
    return max(0.0, presence.apy - float(gas_impact_pct))


def normalize_opportunities(raw: Iterable[Union[RawOpportunity, Dict[str, Any]]]) -> List[RawOpportunity]:
    """Convert feed records to RawOpportunity, skipping the ones that fail"""
    opportunities = []
    for item in raw or []:
        if isinstance(item, RawOpportunity):
            opportunities.append(item)
            continue
        subject = item.get('id') if isinstance(item, dict) else None
        try:
            opportunities.append(RawOpportunity.from_dict(item))
        except MalformedOpportunityError as e:
            record_skip('malformed', e, subject)
        except Exception as e:
            record_skip('unexpected', e, subject)
    return opportunities


def group_opportunities(opportunities: Iterable[RawOpportunity]) -> Dict[GroupKey, List[RawOpportunity]]:
    """Group by (protocol, category) in order of first appearance"""
    grouped: Dict[GroupKey, List[RawOpportunity]] = {}
    for opportunity in opportunities:
        grouped.setdefault((opportunity.protocol, opportunity.category), []).append(opportunity)
    return grouped


def default_gas_estimator(policy: OptimizerPolicy = DEFAULT_POLICY) -> GasEstimator:
    """Offline estimator pricing every registered chain at the default gas price"""
    prices = {
        spec.chain_id: policy.gas.default_gas_price_gwei
        for spec in get_all_supported_chains()
    }
    return GasEstimator(StaticGasPriceSource(prices), policy=policy.gas)


class OpportunityAggregator:
    """Builds aggregated opportunities from raw per-chain opportunities"""

    def __init__(
        self,
        gas_estimator: GasEstimator,
        policy: Optional[OptimizerPolicy] = None,
        benefit_analyzer: Optional[CrossChainBenefitAnalyzer] = None
    ):
        self.gas_estimator = gas_estimator
        self.policy = policy or DEFAULT_POLICY
        self.benefit_analyzer = benefit_analyzer or CrossChainBenefitAnalyzer(self.policy.benefits)

    async def aggregate(
        self,
        raw: Iterable[Union[RawOpportunity, Dict[str, Any]]],
        net_yield_assumptions: Optional[NetYieldAssumptions] = None
    ) -> List[AggregatedOpportunity]:
        """Aggregate raw opportunities

        Gas prices for every referenced chain are fetched once, concurrently,
        before any aggregate is built.

        Args:
            raw: RawOpportunity instances or feed dicts
            net_yield_assumptions: Overrides the policy's reference investment
                used to pick each aggregate's best chain

        Returns:
            Aggregates in order of first appearance of their (protocol, category)
        """
        with observe_duration(AGGREGATION_SECONDS):
            opportunities = normalize_opportunities(raw)
            if not opportunities:
                return []

            chain_ids = list(dict.fromkeys(o.chain_id for o in opportunities))
            gas_prices = await self.gas_estimator.get_gas_prices(chain_ids)
            return self.build(opportunities, gas_prices, net_yield_assumptions)

    def build(
        self,
        opportunities: List[RawOpportunity],
        gas_prices: Dict[int, str],
        net_yield_assumptions: Optional[NetYieldAssumptions] = None
    ) -> List[AggregatedOpportunity]:
        """Synchronous aggregation with prefetched gas prices"""
        assumptions = net_yield_assumptions or self.policy.net_yield
        aggregates = []

        for (protocol, category), members in group_opportunities(opportunities).items():
            try:
                aggregates.append(
                    self._build_aggregate(protocol, category, members, gas_prices, assumptions)
                )
            except Exception as e:
                record_skip('aggregate_failed', e, f"{protocol}-{category}")

        logger.debug(f"Aggregated {len(opportunities)} opportunities into {len(aggregates)} strategies")
        return aggregates

    def _build_aggregate(
        self,
        protocol: str,
        category: str,
        members: List[RawOpportunity],
        gas_prices: Dict[int, str],
        assumptions: NetYieldAssumptions
    ) -> AggregatedOpportunity:
        chains = self._chain_presences(members, category, gas_prices)
        base_apy = max(m.apy for m in members)
        benefits = self.benefit_analyzer.analyze_benefits(chains)

        return AggregatedOpportunity(
            id=f"aggregated-{protocol}-{category}",
            protocol=protocol,
            category=category,
            base_apy=base_apy,
            boosted_apy=self.benefit_analyzer.boosted_apy(base_apy, benefits),
            total_tvl_usd=sum((m.tvl_usd for m in members), Decimal("0")),
            risk_score=sum(m.risk_score for m in members) / len(members),
            chains=chains,
            best_chain=self.best_chain(chains, assumptions),
            benefits=benefits
        )

    def _chain_presences(
        self,
        members: List[RawOpportunity],
        category: str,
        gas_prices: Dict[int, str]
    ) -> List[ChainPresence]:
        by_chain: Dict[int, List[RawOpportunity]] = {}
        for member in members:
            by_chain.setdefault(member.chain_id, []).append(member)

        presences = []
        for chain_id, on_chain in by_chain.items():
            # Several pools of one strategy on a chain: show the best-paying one
            lead = max(on_chain, key=lambda m: m.apy)
            tvl_usd = sum((m.tvl_usd for m in on_chain), Decimal("0"))
            presences.append(ChainPresence(
                chain_id=chain_id,
                chain_name=lead.chain_name,
                apy=lead.apy,
                tvl_usd=tvl_usd,
                contract_reference=lead.contract_reference,
                gas_cost=self.gas_estimator.cost_for_chain(chain_id, category, gas_prices),
                native_symbol=native_symbol(chain_id),
                liquidity_depth=liquidity_depth(tvl_usd)
            ))
        return presences

    def best_chain(
        self,
        chains: List[ChainPresence],
        assumptions: Optional[NetYieldAssumptions] = None
    ) -> ChainPresence:
        """Presence with the highest net yield; the first one wins ties"""
        assumptions = assumptions or self.policy.net_yield
        best = chains[0]
        for presence in chains[1:]:
            if net_yield(presence, assumptions) > net_yield(best, assumptions):
                best = presence
        return best


async def aggregate_opportunities(
    raw: Iterable[Union[RawOpportunity, Dict[str, Any]]],
    gas_estimator: Optional[GasEstimator] = None,
    policy: Optional[OptimizerPolicy] = None
) -> List[AggregatedOpportunity]:
    """Aggregate raw opportunities across chains

    Without a gas estimator every registered chain is priced at the policy's
    default gas price.
    """
    policy = policy or DEFAULT_POLICY
    estimator = gas_estimator or default_gas_estimator(policy)
    return await OpportunityAggregator(estimator, policy).aggregate(raw)
