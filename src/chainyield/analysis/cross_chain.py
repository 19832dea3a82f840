"""
Cross-chain benefit analysis

Looks at where a strategy is deployed and turns the differences between
chains (fees, yields, liquidity, spread) into benefits and an APY uplift.
The uplift is additive: each benefit contributes a fixed or proportional
amount on top of the base APY. Coefficients come from BenefitPolicy.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from ..config.policy import BenefitPolicy
from ..core.types import BenefitType, ChainPresence, CrossChainBenefit, Impact, LiquidityDepth

logger = logging.getLogger(__name__)


def _round_half_up(value: float, places: str = '0.1') -> float:
    return float(Decimal(repr(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP))


class CrossChainBenefitAnalyzer:
    """Derives cross-chain benefits from an aggregate's chain presences"""

    def __init__(self, policy: Optional[BenefitPolicy] = None):
        self.policy = policy or BenefitPolicy()

    def analyze_benefits(self, chains: List[ChainPresence]) -> List[CrossChainBenefit]:
        """Benefits of the given set of chain presences, in a fixed order"""
        if not chains:
            return []

        benefits = []
        for check in (
            self._gas_savings,
            self._higher_yield,
            self._better_liquidity,
            self._risk_diversification,
        ):
            benefit = check(chains)
            if benefit:
                benefits.append(benefit)
        return benefits

    def _gas_savings(self, chains: List[ChainPresence]) -> Optional[CrossChainBenefit]:
        gas_costs = [float(c.gas_cost) for c in chains]
        min_gas, max_gas = min(gas_costs), max(gas_costs)

        if not max_gas > min_gas * self.policy.gas_savings_ratio:
            return None

        saving = max_gas - min_gas
        symbols = {c.native_symbol for c in chains}
        unit = symbols.pop() if len(symbols) == 1 else "native units"
        return CrossChainBenefit(
            type=BenefitType.GAS_SAVINGS,
            description=f"Save up to {saving / max_gas * 100:.0f}% on transaction fees",
            value=saving,
            detail=f"{saving:.4f} {unit} per transaction",
            impact=Impact.HIGH if max_gas > min_gas * self.policy.gas_savings_high_ratio else Impact.MEDIUM
        )

    def _higher_yield(self, chains: List[ChainPresence]) -> Optional[CrossChainBenefit]:
        apys = [c.apy for c in chains]
        min_apy, max_apy = min(apys), max(apys)

        if not max_apy > min_apy * self.policy.higher_yield_ratio:
            return None

        spread = _round_half_up(max_apy - min_apy)
        return CrossChainBenefit(
            type=BenefitType.HIGHER_YIELD,
            description=f"Access up to {spread:.1f}% higher APY on different chains",
            value=spread,
            detail=f"+{spread:.1f}% APY",
            impact=Impact.HIGH if max_apy > min_apy * self.policy.higher_yield_high_ratio else Impact.MEDIUM
        )

    def _better_liquidity(self, chains: List[ChainPresence]) -> Optional[CrossChainBenefit]:
        depths = {c.liquidity_depth for c in chains}
        if LiquidityDepth.VERY_HIGH not in depths or LiquidityDepth.LOW not in depths:
            return None

        return CrossChainBenefit(
            type=BenefitType.BETTER_LIQUIDITY,
            description="Access deeper liquidity pools for large transactions",
            value=0.0,
            detail="Reduced slippage on large trades",
            impact=Impact.MEDIUM
        )

    def _risk_diversification(self, chains: List[ChainPresence]) -> Optional[CrossChainBenefit]:
        if len(chains) < self.policy.diversification_min_chains:
            return None

        return CrossChainBenefit(
            type=BenefitType.RISK_DIVERSIFICATION,
            description=f"Spread risk across {len(chains)} different chains",
            value=float(len(chains)),
            detail="Reduced protocol and chain-specific risks",
            impact=Impact.HIGH
        )

    def uplift(self, benefit: CrossChainBenefit) -> float:
        """APY points added by one benefit"""
        if benefit.type == BenefitType.GAS_SAVINGS:
            if benefit.impact == Impact.HIGH:
                return self.policy.gas_savings_uplift_high
            return self.policy.gas_savings_uplift_other
        if benefit.type == BenefitType.HIGHER_YIELD:
            # Only part of the spread is capturable after moving funds
            return benefit.value * self.policy.higher_yield_uplift_factor
        if benefit.type == BenefitType.BETTER_LIQUIDITY:
            return self.policy.better_liquidity_uplift
        if benefit.type == BenefitType.RISK_DIVERSIFICATION:
            return self.policy.risk_diversification_uplift
        logger.debug(f"No uplift defined for benefit type {benefit.type}")
        return 0.0

    def boosted_apy(self, base_apy: float, benefits: List[CrossChainBenefit]) -> float:
        """Base APY plus the sum of benefit uplifts"""
        return base_apy + sum(self.uplift(b) for b in benefits)


def analyze_benefits(chains: List[ChainPresence], policy: Optional[BenefitPolicy] = None) -> List[CrossChainBenefit]:
    return CrossChainBenefitAnalyzer(policy).analyze_benefits(chains)
