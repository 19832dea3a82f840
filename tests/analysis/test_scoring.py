import pytest

from chainyield.analysis.scoring import OptimizationScorer, rank_opportunities
from chainyield.config.policy import ScoringWeights


def test_score_formula(aggregate_factory):
    """0.4 * apy + 0.2 * tvl in millions + 0.2 * (4 - risk) + 0.1 * chains + 0.1 * benefits"""
    aggregate = aggregate_factory(apy=5.0, risk_score=1.0, tvl_usd="10000000")

    assert OptimizationScorer().score(aggregate) == pytest.approx(2.0 + 2.0 + 0.6 + 0.1)


def test_rank_orders_by_score(aggregate_factory):
    low = aggregate_factory(protocol="low", apy=2.0)
    high = aggregate_factory(protocol="high", apy=9.0)
    mid = aggregate_factory(protocol="mid", apy=5.0)

    ranked = rank_opportunities([low, high, mid])

    assert [a.protocol for a in ranked] == ["high", "mid", "low"]


def test_rank_is_stable_for_equal_scores(aggregate_factory):
    first = aggregate_factory(protocol="first")
    second = aggregate_factory(protocol="second")

    assert [a.protocol for a in rank_opportunities([first, second])] == ["first", "second"]
    assert [a.protocol for a in rank_opportunities([second, first])] == ["second", "first"]


def test_rank_is_idempotent(aggregate_factory):
    aggregates = [aggregate_factory(protocol=f"p{i}", apy=float(i % 3)) for i in range(6)]

    once = rank_opportunities(aggregates)

    assert rank_opportunities(once) == once


def test_custom_weights(aggregate_factory):
    small_high_apy = aggregate_factory(protocol="apy", apy=20.0, tvl_usd="1000000")
    large = aggregate_factory(protocol="tvl", apy=2.0, tvl_usd="900000000")

    tvl_only = ScoringWeights(apy=0.0, tvl_millions=1.0, risk=0.0, chain_count=0.0, benefit_count=0.0)

    assert rank_opportunities([small_high_apy, large])[0].protocol == "tvl"
    assert rank_opportunities([small_high_apy, large], tvl_only)[0].protocol == "tvl"
    apy_only = ScoringWeights(apy=1.0, tvl_millions=0.0, risk=0.0, chain_count=0.0, benefit_count=0.0)
    assert rank_opportunities([small_high_apy, large], apy_only)[0].protocol == "apy"


def test_empty_rank():
    assert rank_opportunities([]) == []
