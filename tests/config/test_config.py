import pytest
import json
from decimal import Decimal

from chainyield.config.chain_specs import (
    find_chain_by_label, get_all_supported_chains, get_chain_spec,
    get_chain_spec_by_id, native_symbol
)
from chainyield.config.environment import EnvironmentManager
from chainyield.config.loader import ConfigLoader
from chainyield.config.policy import DEFAULT_POLICY, NetYieldAssumptions, OptimizerPolicy
from chainyield.config.validators import validate_policy


@pytest.fixture
def env(monkeypatch):
    for key in (
        "CHAINYIELD_REFERENCE_INVESTMENT_USD",
        "CHAINYIELD_NATIVE_TOKEN_PRICE_USD",
        "CHAINYIELD_GAS_CACHE_TTL",
    ):
        monkeypatch.delenv(key, raising=False)
    return EnvironmentManager(load_files=False)


def test_default_policy_constants():
    assert DEFAULT_POLICY.gas.default_gas_price_gwei == "20"
    assert DEFAULT_POLICY.gas.fallback_gas_cost == Decimal("0.01")
    assert DEFAULT_POLICY.gas.cache_ttl_seconds == 300
    assert DEFAULT_POLICY.net_yield.reference_investment_usd == Decimal("10000")
    assert DEFAULT_POLICY.allocation.risk_thresholds == {
        'conservative': 1.5, 'balanced': 2.5, 'aggressive': 3.5
    }
    assert DEFAULT_POLICY.allocation.default_max_positions == 5


def test_policy_from_dict_merges_with_defaults():
    policy = OptimizerPolicy.from_dict({
        'net_yield': {'native_token_price_usd': 3000},
        'gas': {'gas_units': {'lending': 100000}},
        'allocation': {'risk_thresholds': {'balanced': 2.0}},
        'unknown_section': {},
    })

    assert policy.net_yield.native_token_price_usd == Decimal("3000")
    assert policy.net_yield.reference_investment_usd == Decimal("10000")
    assert policy.gas.gas_units['lending'] == 100000
    assert policy.gas.gas_units['farming'] == 200000
    assert policy.allocation.risk_thresholds['balanced'] == 2.0
    assert policy.allocation.risk_thresholds['aggressive'] == 3.5


def test_policy_round_trips_through_dict():
    assert OptimizerPolicy.from_dict(DEFAULT_POLICY.to_dict()) == DEFAULT_POLICY


def test_net_yield_assumptions_validation():
    with pytest.raises(ValueError):
        NetYieldAssumptions(reference_investment_usd=Decimal("0"))

    policy = DEFAULT_POLICY.with_net_yield(NetYieldAssumptions(reference_investment_usd=Decimal("50000")))
    assert policy.net_yield.reference_investment_usd == Decimal("50000")
    assert DEFAULT_POLICY.net_yield.reference_investment_usd == Decimal("10000")


def test_load_yaml_policy(tmp_path, env):
    path = tmp_path / "policy.yaml"
    path.write_text(
        "scoring:\n"
        "  apy: 0.5\n"
        "benefits:\n"
        "  diversification_min_chains: 4\n"
    )

    policy = ConfigLoader(env).load_policy(str(path))

    assert policy.scoring.apy == 0.5
    assert policy.benefits.diversification_min_chains == 4


def test_load_json_policy_with_interpolation(tmp_path, env, monkeypatch):
    monkeypatch.setenv("TEST_TOKEN_PRICE", "2500")
    path = tmp_path / "policy.json"
    path.write_text(json.dumps({'net_yield': {'native_token_price_usd': "${TEST_TOKEN_PRICE}"}}))

    policy = ConfigLoader(env).load_policy(str(path))

    assert policy.net_yield.native_token_price_usd == Decimal("2500")


def test_environment_overrides_file(tmp_path, env, monkeypatch):
    path = tmp_path / "policy.json"
    path.write_text(json.dumps({'gas': {'cache_ttl_seconds': 60}}))
    monkeypatch.setenv("CHAINYIELD_GAS_CACHE_TTL", "120")
    monkeypatch.setenv("CHAINYIELD_REFERENCE_INVESTMENT_USD", "25000")

    policy = ConfigLoader(env).load_policy(str(path))

    assert policy.gas.cache_ttl_seconds == 120.0
    assert policy.net_yield.reference_investment_usd == Decimal("25000")


def test_mistyped_policy_value_fails_at_load(tmp_path, env):
    path = tmp_path / "policy.yaml"
    path.write_text("benefits:\n  gas_savings_ratio: two\n")

    with pytest.raises(ValueError, match="gas_savings_ratio"):
        ConfigLoader(env).load_policy(str(path))


@pytest.mark.parametrize("data", [
    {'scoring': {'apy': "0.4"}},
    {'net_yield': {'native_token_price_usd': "lots"}},
    {'gas': {'gas_units': {'lending': 1.5}}},
    {'allocation': {'default_max_positions': 0}},
    {'benefits': {'gas_savings_ratio': 6.0, 'gas_savings_high_ratio': 5.0}},
    {'gas': [1, 2]},
])
def test_invalid_policy_values_are_rejected(data):
    assert validate_policy(data)
    with pytest.raises(ValueError, match="Invalid optimizer policy"):
        OptimizerPolicy.from_dict(data)


def test_valid_policy_has_no_errors():
    assert validate_policy(DEFAULT_POLICY.to_dict()) == []
    assert validate_policy({'net_yield': {'native_token_price_usd': "2500"}, 'extra': 1}) == []


def test_missing_policy_file_uses_defaults(tmp_path, env):
    assert ConfigLoader(env).load_policy(str(tmp_path / "missing.yaml")) == DEFAULT_POLICY
    assert ConfigLoader(env).load_policy(None) == DEFAULT_POLICY


def test_non_numeric_override_is_ignored(env, monkeypatch):
    monkeypatch.setenv("CHAINYIELD_NATIVE_TOKEN_PRICE_USD", "lots")

    assert env.policy_overrides() == {}


def test_chain_registry_lookups():
    assert get_chain_spec_by_id(137).native_currency == "MATIC"
    assert get_chain_spec("arbitrum").chain_id == 42161
    assert get_chain_spec_by_id(999) is None
    assert native_symbol(999) == "ETH"
    assert find_chain_by_label("Ethereum").chain_id == 1
    assert find_chain_by_label("OP Mainnet").chain_id == 10
    assert find_chain_by_label("Solana") is None

    with pytest.raises(ValueError):
        get_chain_spec("solana")


def test_registry_contents():
    chain_ids = {spec.chain_id for spec in get_all_supported_chains()}
    mainnets = {spec.chain_id for spec in get_all_supported_chains(include_testnets=False)}

    assert chain_ids == {1, 137, 42161, 10, 8453, 5000, 5003}
    assert mainnets == chain_ids - {5003}
