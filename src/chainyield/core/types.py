"""Domain types for cross-chain yield aggregation and allocation"""

import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import InvalidPreferencesError, MalformedOpportunityError
from ..utils.money import Money, format_tvl, format_usd, parse_tvl, to_decimal

# -----------------------------------------------------------------------------
# Enumerations
# -----------------------------------------------------------------------------

class Category:
    """Opportunity categories"""
    LENDING = "lending"
    FARMING = "farming"
    STAKING = "staking"
    LIQUIDITY = "liquidity"

    ALL = (LENDING, FARMING, STAKING, LIQUIDITY)

class RiskLevel:
    """Risk tiers of a single opportunity"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    SCORES = {LOW: 1, MEDIUM: 2, HIGH: 3}

    @classmethod
    def score(cls, level: str) -> int:
        return cls.SCORES.get(level, cls.SCORES[cls.MEDIUM])

    @classmethod
    def from_score(cls, score: float) -> str:
        if score <= 1.5:
            return cls.LOW
        if score <= 2.5:
            return cls.MEDIUM
        return cls.HIGH

class LiquidityDepth:
    """TVL-derived liquidity tiers"""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    VERY_HIGH = "Very High"

class BenefitType:
    """Kinds of cross-chain benefit"""
    GAS_SAVINGS = "gas_savings"
    HIGHER_YIELD = "higher_yield"
    BETTER_LIQUIDITY = "better_liquidity"
    RISK_DIVERSIFICATION = "risk_diversification"

class Impact:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class RiskTolerance(Enum):
    """Investor risk profiles"""
    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"

    @classmethod
    def parse(cls, value: Any) -> 'RiskTolerance':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidPreferencesError(f"Unknown risk tolerance: {value!r}")

# -----------------------------------------------------------------------------
# Opportunity records
# -----------------------------------------------------------------------------

def _first(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default

@dataclass(frozen=True)
class RawOpportunity:
    """Yield opportunity on a single chain, as supplied by a feed"""
    id: str
    chain_id: int
    chain_name: str
    protocol: str
    category: str
    pair: str
    apy: float
    tvl_usd: Decimal
    contract_reference: str
    risk_level: str = RiskLevel.MEDIUM
    auto_compound_available: bool = False
    minimum_deposit: Decimal = Decimal("0")

    @property
    def tvl(self) -> str:
        return format_tvl(self.tvl_usd)

    @property
    def risk_score(self) -> int:
        return RiskLevel.score(self.risk_level)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RawOpportunity':
        """Build from a feed record (camelCase or snake_case keys)

        Raises:
            MalformedOpportunityError: if a required field is missing or invalid
        """
        if not isinstance(data, dict):
            raise MalformedOpportunityError(f"Expected a mapping, got {type(data).__name__}", data)

        chain_id = _first(data, 'chainId', 'chain_id')
        protocol = _first(data, 'protocol')
        category = _first(data, 'category')
        apy = _first(data, 'apy')

        if chain_id is None or not protocol or not category or apy is None:
            raise MalformedOpportunityError("Missing chainId, protocol, category or apy", data)

        try:
            chain_id = int(chain_id)
            apy = float(apy)
        except (TypeError, ValueError):
            raise MalformedOpportunityError("Non-numeric chainId or apy", data)

        if not math.isfinite(apy):
            raise MalformedOpportunityError(f"Non-finite apy: {apy}", data)

        category = str(category).lower()
        if category not in Category.ALL:
            raise MalformedOpportunityError(f"Unknown category: {category}", data)

        risk_level = str(_first(data, 'riskLevel', 'risk_level', default=RiskLevel.MEDIUM)).lower()
        if risk_level not in RiskLevel.SCORES:
            risk_level = RiskLevel.MEDIUM

        try:
            minimum_deposit = to_decimal(_first(data, 'minimumDeposit', 'minimum_deposit', default='0'))
        except InvalidOperation:
            minimum_deposit = Decimal("0")

        chain_name = str(_first(data, 'chainName', 'chain_name', default=str(chain_id)))
        pair = str(_first(data, 'pair', 'asset', default=''))
        opportunity_id = _first(data, 'id')
        if not opportunity_id:
            opportunity_id = f"{chain_name}-{protocol}-{pair}".lower().replace(' ', '-')

        return cls(
            id=str(opportunity_id),
            chain_id=chain_id,
            chain_name=chain_name,
            protocol=str(protocol),
            category=category,
            pair=pair,
            apy=apy,
            tvl_usd=parse_tvl(_first(data, 'tvl', 'tvlUsd', 'tvl_usd', default='')),
            contract_reference=str(_first(
                data, 'contractReference', 'contract_reference', 'contractAddress', default=''
            )),
            risk_level=risk_level,
            auto_compound_available=bool(_first(
                data, 'autoCompoundAvailable', 'auto_compound_available', default=False
            )),
            minimum_deposit=minimum_deposit,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'chainId': self.chain_id,
            'chainName': self.chain_name,
            'protocol': self.protocol,
            'category': self.category,
            'pair': self.pair,
            'apy': self.apy,
            'tvl': self.tvl,
            'contractReference': self.contract_reference,
            'riskLevel': self.risk_level,
            'autoCompoundAvailable': self.auto_compound_available,
            'minimumDeposit': str(self.minimum_deposit),
        }

@dataclass(frozen=True)
class ChainPresence:
    """An aggregate's footprint on one chain"""
    chain_id: int
    chain_name: str
    apy: float
    tvl_usd: Decimal
    contract_reference: str
    gas_cost: Decimal  # native currency units per transaction
    native_symbol: str
    liquidity_depth: str

    @property
    def tvl(self) -> str:
        return format_tvl(self.tvl_usd)

    @property
    def gas_estimate(self) -> str:
        return f"{self.gas_cost:.6f} {self.native_symbol}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'chainId': self.chain_id,
            'chainName': self.chain_name,
            'apy': self.apy,
            'tvl': self.tvl,
            'contractReference': self.contract_reference,
            'gasEstimate': self.gas_estimate,
            'liquidityDepth': self.liquidity_depth,
        }

@dataclass(frozen=True)
class CrossChainBenefit:
    """Advantage of holding a strategy on several chains"""
    type: str
    description: str
    value: float
    detail: str
    impact: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'description': self.description,
            'value': self.value,
            'detail': self.detail,
            'impact': self.impact,
        }

@dataclass(frozen=True)
class AggregatedOpportunity:
    """One strategy (protocol + category) viewed across every chain it runs on"""
    id: str
    protocol: str
    category: str
    base_apy: float
    boosted_apy: float
    total_tvl_usd: Decimal
    risk_score: float
    chains: List[ChainPresence]
    best_chain: ChainPresence
    benefits: List[CrossChainBenefit] = field(default_factory=list)

    def __post_init__(self):
        if not self.chains:
            raise ValueError(f"{self.id}: an aggregate needs at least one chain")
        if self.best_chain not in self.chains:
            raise ValueError(f"{self.id}: best chain must be one of the aggregate's chains")
        if not 1 <= self.risk_score <= 3:
            raise ValueError(f"{self.id}: risk score {self.risk_score} outside [1, 3]")

    @property
    def effective_apy(self) -> float:
        return self.boosted_apy or self.base_apy

    @property
    def total_tvl(self) -> str:
        return format_tvl(self.total_tvl_usd)

    @property
    def risk_level(self) -> str:
        return RiskLevel.from_score(self.risk_score)

    @property
    def chain_ids(self) -> List[int]:
        return [c.chain_id for c in self.chains]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'protocol': self.protocol,
            'category': self.category,
            'baseApy': self.base_apy,
            'boostedApy': self.boosted_apy,
            'totalTvl': self.total_tvl,
            'riskScore': self.risk_score,
            'chains': [c.to_dict() for c in self.chains],
            'bestChain': self.best_chain.to_dict(),
            'crossChainBenefits': [b.to_dict() for b in self.benefits],
        }

# -----------------------------------------------------------------------------
# Allocation
# -----------------------------------------------------------------------------

def normalize_categories(categories: Any) -> Optional[List[str]]:
    """Lowercased category list, None when empty

    Raises:
        InvalidPreferencesError: on an unknown category
    """
    if isinstance(categories, str):
        categories = [categories]
    normalized = [str(c).strip().lower() for c in categories]
    unknown = [c for c in normalized if c not in Category.ALL]
    if unknown:
        raise InvalidPreferencesError(f"Unknown categories: {unknown}")
    return normalized or None

@dataclass(frozen=True)
class AllocationPreferences:
    """Investor preferences for an allocation request"""
    risk_tolerance: RiskTolerance = RiskTolerance.BALANCED
    preferred_chains: Optional[List[int]] = None
    categories: Optional[List[str]] = None
    max_positions: Optional[int] = None

    def __post_init__(self):
        if self.categories is not None:
            object.__setattr__(self, 'categories', normalize_categories(self.categories))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AllocationPreferences':
        data = data or {}
        chains = _first(data, 'preferredChains', 'preferred_chains')
        max_positions = _first(data, 'maxPositions', 'max_positions')
        try:
            return cls(
                risk_tolerance=RiskTolerance.parse(
                    _first(data, 'riskTolerance', 'risk_tolerance', default='balanced')
                ),
                preferred_chains=[int(c) for c in chains] if chains else None,
                categories=_first(data, 'categories'),
                max_positions=int(max_positions) if max_positions is not None else None,
            )
        except (TypeError, ValueError) as e:
            if isinstance(e, InvalidPreferencesError):
                raise
            raise InvalidPreferencesError(f"Invalid allocation preferences: {e}")

@dataclass(frozen=True)
class AggregateFilters:
    """Filters applied to aggregated opportunities"""
    max_risk: Optional[float] = None
    preferred_chains: Optional[List[int]] = None
    categories: Optional[List[str]] = None
    min_apy: Optional[float] = None

    def __post_init__(self):
        if self.categories is not None:
            object.__setattr__(self, 'categories', normalize_categories(self.categories))

    def matches(self, aggregate: AggregatedOpportunity) -> bool:
        if self.max_risk is not None and aggregate.risk_score > self.max_risk:
            return False
        if self.preferred_chains and not any(
            c.chain_id in self.preferred_chains for c in aggregate.chains
        ):
            return False
        if self.categories and aggregate.category not in self.categories:
            return False
        if self.min_apy is not None and aggregate.effective_apy < self.min_apy:
            return False
        return True

@dataclass(frozen=True)
class AllocationTarget:
    """Share of the investment assigned to one aggregate"""
    aggregate_id: str
    protocol: str
    category: str
    chosen_chain: ChainPresence
    allocated_amount: Decimal
    percentage: float
    apy: float
    risk_score: float
    expected_yield: Decimal
    reasoning: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'aggregateId': self.aggregate_id,
            'protocol': self.protocol,
            'category': self.category,
            'chosenChain': self.chosen_chain.to_dict(),
            'allocatedAmount': str(self.allocated_amount),
            'percentage': self.percentage,
            'apy': self.apy,
            'riskScore': self.risk_score,
            'expectedYield': str(self.expected_yield),
            'reasoning': self.reasoning,
        }

@dataclass(frozen=True)
class ProjectedYield:
    daily: Decimal = Decimal("0.00")
    monthly: Decimal = Decimal("0.00")
    yearly: Decimal = Decimal("0.00")

    def to_dict(self) -> Dict[str, str]:
        return {
            'daily': str(self.daily),
            'monthly': str(self.monthly),
            'yearly': str(self.yearly),
        }

@dataclass(frozen=True)
class OptimizedAllocation:
    """Recommended split of an investment across aggregates"""
    total_amount: Decimal
    allocations: List[AllocationTarget]
    expected_apy: float
    risk_score: float
    gas_costs_usd: Decimal
    projected_yield: ProjectedYield

    @property
    def is_feasible(self) -> bool:
        return len(self.allocations) > 0

    @property
    def gas_costs(self) -> str:
        return format_usd(self.gas_costs_usd)

    @classmethod
    def empty(cls, total_amount: Money) -> 'OptimizedAllocation':
        """Result for a request with no eligible opportunities"""
        return cls(
            total_amount=to_decimal(total_amount),
            allocations=[],
            expected_apy=0.0,
            risk_score=0.0,
            gas_costs_usd=Decimal("0.00"),
            projected_yield=ProjectedYield(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalAmount': str(self.total_amount),
            'allocations': [a.to_dict() for a in self.allocations],
            'expectedApy': self.expected_apy,
            'riskScore': self.risk_score,
            'gasCosts': self.gas_costs,
            'projectedYield': self.projected_yield.to_dict(),
        }

@dataclass(frozen=True)
class MarketConditions:
    """Snapshot of cached market data"""
    gas_prices: Dict[int, str] = field(default_factory=dict)  # gwei
    updated_at: Optional[float] = None
    stale: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'gasPrice': {str(k): v for k, v in self.gas_prices.items()},
            'updatedAt': self.updated_at,
            'stale': self.stale,
        }
