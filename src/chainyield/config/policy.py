"""
Optimizer policy

Every tunable constant of the aggregation, scoring and allocation pipeline
lives here so it can be adjusted and tested apart from the algorithms.

The cross-chain benefit thresholds and APY uplifts, and the reference
investment used to pick the best chain, are product heuristics. They are not
calibrated financial models.
"""

import logging
from dataclasses import dataclass, field, fields, asdict, replace
from decimal import Decimal
from typing import Any, Dict

from .validators import validate_policy

logger = logging.getLogger(__name__)


def _default_gas_units() -> Dict[str, int]:
    return {
        'staking': 150000,
        'farming': 200000,
        'lending': 180000,
        'liquidity': 250000,
    }


@dataclass(frozen=True)
class GasPolicy:
    """Gas estimation settings"""
    gas_units: Dict[str, int] = field(default_factory=_default_gas_units)
    default_gas_units: int = 150000
    default_gas_price_gwei: str = "20"  # used when an RPC call fails
    fallback_gas_cost: Decimal = Decimal("0.01")  # native units, unsupported chains
    cache_ttl_seconds: float = 300.0  # 5 minutes
    cache_max_size: int = 256


@dataclass(frozen=True)
class NetYieldAssumptions:
    """Reference position used to rank chains by yield net of gas"""
    reference_investment_usd: Decimal = Decimal("10000")
    transactions_per_year: int = 365
    native_token_price_usd: Decimal = Decimal("2000")

    def __post_init__(self):
        if self.reference_investment_usd <= 0:
            raise ValueError("reference_investment_usd must be positive")
        if self.transactions_per_year < 0 or self.native_token_price_usd < 0:
            raise ValueError("transactions_per_year and native_token_price_usd must not be negative")


@dataclass(frozen=True)
class BenefitPolicy:
    """Cross-chain benefit thresholds and APY uplift coefficients"""
    gas_savings_ratio: float = 2.0
    gas_savings_high_ratio: float = 5.0
    higher_yield_ratio: float = 1.2
    higher_yield_high_ratio: float = 1.5
    diversification_min_chains: int = 3
    gas_savings_uplift_high: float = 0.5
    gas_savings_uplift_other: float = 0.2
    higher_yield_uplift_factor: float = 0.8
    better_liquidity_uplift: float = 0.1
    risk_diversification_uplift: float = 0.3


@dataclass(frozen=True)
class ScoringWeights:
    """Weights of the optimization score"""
    apy: float = 0.4
    tvl_millions: float = 0.2
    risk: float = 0.2
    risk_ceiling: float = 4.0
    chain_count: float = 0.1
    benefit_count: float = 0.1


def _default_risk_thresholds() -> Dict[str, float]:
    return {
        'conservative': 1.5,
        'balanced': 2.5,
        'aggressive': 3.5,
    }


@dataclass(frozen=True)
class AllocationPolicy:
    """Allocation planner settings"""
    risk_thresholds: Dict[str, float] = field(default_factory=_default_risk_thresholds)
    default_max_positions: int = 5
    reasoning_high_percentage: float = 30.0
    reasoning_low_risk: float = 2.0
    reasoning_many_chains: int = 3


@dataclass(frozen=True)
class OptimizerPolicy:
    """Complete policy for one optimizer instance"""
    gas: GasPolicy = field(default_factory=GasPolicy)
    net_yield: NetYieldAssumptions = field(default_factory=NetYieldAssumptions)
    benefits: BenefitPolicy = field(default_factory=BenefitPolicy)
    scoring: ScoringWeights = field(default_factory=ScoringWeights)
    allocation: AllocationPolicy = field(default_factory=AllocationPolicy)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OptimizerPolicy':
        """Build a policy from nested dicts, keeping defaults for missing keys

        Raises:
            ValueError: if a value has the wrong type or is out of range
        """
        errors = validate_policy(data or {})
        if errors:
            raise ValueError("Invalid optimizer policy: " + "; ".join(errors))

        sections = {
            'gas': GasPolicy,
            'net_yield': NetYieldAssumptions,
            'benefits': BenefitPolicy,
            'scoring': ScoringWeights,
            'allocation': AllocationPolicy,
        }
        kwargs = {}
        for name, section_type in sections.items():
            section_data = (data or {}).get(name)
            if section_data:
                kwargs[name] = _build_section(section_type, section_data)

        unknown = set(data or {}) - set(sections)
        if unknown:
            logger.warning(f"Ignoring unknown policy sections: {sorted(unknown)}")

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def with_net_yield(self, assumptions: NetYieldAssumptions) -> 'OptimizerPolicy':
        return replace(self, net_yield=assumptions)


def _build_section(section_type, data: Dict[str, Any]):
    """Instantiate one policy section, coercing Decimal fields"""
    known = {f.name: f for f in fields(section_type)}
    kwargs = {}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown {section_type.__name__} key: {key}")
            continue
        default = getattr(section_type(), key)
        if isinstance(default, Decimal):
            value = Decimal(str(value).strip())
        elif isinstance(default, str):
            value = str(value)
        elif isinstance(default, dict):
            value = {**default, **value}
        kwargs[key] = value
    return section_type(**kwargs)


DEFAULT_POLICY = OptimizerPolicy()
