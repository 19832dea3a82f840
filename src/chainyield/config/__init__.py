"""
Configuration Management

Policy constants, chain registry, environment handling and file loading.
"""

from .policy import (
    GasPolicy, NetYieldAssumptions, BenefitPolicy,
    ScoringWeights, AllocationPolicy, OptimizerPolicy,
    DEFAULT_POLICY
)

from .chain_specs import (
    ChainSpec, CHAIN_SPECS, get_chain_spec, get_chain_spec_by_id,
    find_chain_by_label, native_symbol, get_all_supported_chains
)

from .environment import EnvironmentManager, get_env_manager

from .loader import ConfigLoader, load_policy

__all__ = [
    # Policy
    'GasPolicy', 'NetYieldAssumptions', 'BenefitPolicy',
    'ScoringWeights', 'AllocationPolicy', 'OptimizerPolicy',
    'DEFAULT_POLICY',

    # Chains
    'ChainSpec', 'CHAIN_SPECS', 'get_chain_spec', 'get_chain_spec_by_id',
    'find_chain_by_label', 'native_symbol', 'get_all_supported_chains',

    # Environment management
    'EnvironmentManager', 'get_env_manager',

    # Configuration loading
    'ConfigLoader', 'load_policy',
]
