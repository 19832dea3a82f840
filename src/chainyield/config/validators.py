"""
Policy Validators

Checks policy files against a JSON schema so a typo such as
``gas_savings_ratio: two`` fails at load time instead of deep inside
benefit detection.
"""

import logging
from typing import Any, Dict, List

import jsonschema

logger = logging.getLogger(__name__)

# Decimal fields accept numbers or decimal strings ("${VAR}" interpolation yields strings)
DECIMAL = {
    "type": ["number", "string"],
    "pattern": r"^\s*[0-9]+(\.[0-9]+)?\s*$",
    "minimum": 0,
}
NUMBER = {"type": "number", "minimum": 0}
INTEGER = {"type": "integer", "minimum": 0}


def _section(properties: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": ["object", "null"], "properties": properties}


POLICY_SCHEMA = {
    "type": "object",
    "properties": {
        "gas": _section({
            "gas_units": {"type": "object", "additionalProperties": INTEGER},
            "default_gas_units": INTEGER,
            "default_gas_price_gwei": DECIMAL,
            "fallback_gas_cost": DECIMAL,
            "cache_ttl_seconds": NUMBER,
            "cache_max_size": {"type": "integer", "minimum": 1},
        }),
        "net_yield": _section({
            "reference_investment_usd": DECIMAL,
            "transactions_per_year": INTEGER,
            "native_token_price_usd": DECIMAL,
        }),
        "benefits": _section({
            "gas_savings_ratio": NUMBER,
            "gas_savings_high_ratio": NUMBER,
            "higher_yield_ratio": NUMBER,
            "higher_yield_high_ratio": NUMBER,
            "diversification_min_chains": INTEGER,
            "gas_savings_uplift_high": NUMBER,
            "gas_savings_uplift_other": NUMBER,
            "higher_yield_uplift_factor": NUMBER,
            "better_liquidity_uplift": NUMBER,
            "risk_diversification_uplift": NUMBER,
        }),
        "scoring": _section({
            "apy": NUMBER,
            "tvl_millions": NUMBER,
            "risk": NUMBER,
            "risk_ceiling": NUMBER,
            "chain_count": NUMBER,
            "benefit_count": NUMBER,
        }),
        "allocation": _section({
            "risk_thresholds": {"type": "object", "additionalProperties": NUMBER},
            "default_max_positions": {"type": "integer", "minimum": 1},
            "reasoning_high_percentage": NUMBER,
            "reasoning_low_risk": NUMBER,
            "reasoning_many_chains": INTEGER,
        }),
    },
}


def validate_policy(policy_data: Dict[str, Any]) -> List[str]:
    """
    Validate policy data against the policy schema

    Args:
        policy_data: Nested policy sections, as loaded from a file

    Returns:
        List of validation error messages (empty if valid)
    """
    validator = jsonschema.Draft7Validator(POLICY_SCHEMA)
    errors = []
    for error in sorted(validator.iter_errors(policy_data), key=lambda e: [str(p) for p in e.path]):
        location = '.'.join(str(p) for p in error.path) or 'policy'
        errors.append(f"Schema validation error at {location}: {error.message}")

    # Additional custom validations
    benefits = policy_data.get('benefits') if isinstance(policy_data, dict) else None
    if isinstance(benefits, dict):
        for low, high in (
            ('gas_savings_ratio', 'gas_savings_high_ratio'),
            ('higher_yield_ratio', 'higher_yield_high_ratio'),
        ):
            low_value, high_value = benefits.get(low), benefits.get(high)
            if _is_number(low_value) and _is_number(high_value) and low_value > high_value:
                errors.append(f"{low} must not exceed {high}: {low_value} > {high_value}")

    for error in errors:
        logger.error(error)
    return errors


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
