import pytest
import json

import click
from click.testing import CliRunner

from chainyield.cli.optimizer_cli import cli, parse_chain_ids, parse_gas_prices

GAS_PRICES = "1=20,137=20,42161=0.1,10=0.05,8453=0.05"


@pytest.fixture
def feed(tmp_path, mixed_records):
    path = tmp_path / "feed.json"
    path.write_text(json.dumps(mixed_records))
    return str(path)


def run(*args):
    return CliRunner().invoke(cli, ["--log-level", "CRITICAL", *args], obj={})


def test_opportunities_json(feed):
    result = run("opportunities", "--feed", feed, "--gas-prices", GAS_PRICES, "--json")

    assert result.exit_code == 0, result.output
    aggregates = json.loads(result.output)
    assert {a['id'] for a in aggregates} == {
        "aggregated-aave-lending",
        "aggregated-gmx-staking",
        "aggregated-velodrome-liquidity",
    }
    aave = next(a for a in aggregates if a['protocol'] == 'aave')
    assert aave['totalTvl'] == "$198.0M"


def test_opportunities_table(feed):
    result = run("opportunities", "--feed", feed, "--gas-prices", GAS_PRICES, "--categories", "lending")

    assert result.exit_code == 0, result.output
    assert "aave" in result.output
    assert "velodrome" not in result.output


def test_allocate_json(feed):
    result = run(
        "allocate", "10000", "--risk", "conservative",
        "--feed", feed, "--gas-prices", GAS_PRICES, "--json"
    )

    assert result.exit_code == 0, result.output
    allocation = json.loads(result.output)
    assert [a['protocol'] for a in allocation['allocations']] == ["aave"]
    assert allocation['allocations'][0]['percentage'] == pytest.approx(100.0)
    assert allocation['totalAmount'] == "10000"


def test_allocate_without_matches(feed):
    result = run(
        "allocate", "10000", "--risk", "conservative", "--categories", "liquidity",
        "--feed", feed, "--gas-prices", GAS_PRICES
    )

    assert result.exit_code == 0
    assert "No opportunities match" in result.output


def test_allocate_invalid_amount(feed):
    result = run("allocate", "lots", "--feed", feed, "--gas-prices", GAS_PRICES)

    assert result.exit_code == 1
    assert "Invalid investment amount" in result.output


def test_allocate_rejects_unknown_risk(feed):
    result = run("allocate", "100", "--risk", "yolo", "--feed", feed)

    assert result.exit_code == 2


def test_bad_gas_prices_option(feed):
    result = run("opportunities", "--feed", feed, "--gas-prices", "1:20")

    assert result.exit_code == 2


def test_option_parsers():
    assert parse_chain_ids("1, 137") == [1, 137]
    assert parse_chain_ids(None) is None
    assert parse_gas_prices("1=25,137=40.5") == {1: "25", 137: "40.5"}

    with pytest.raises(click.BadParameter):
        parse_chain_ids("1,eth")


def test_allocate_rejects_unknown_category(feed):
    result = run(
        "allocate", "10000", "--categories", "options",
        "--feed", feed, "--gas-prices", GAS_PRICES
    )

    assert result.exit_code == 1
    assert "Unknown categories" in result.output


def test_mistyped_config_exits_with_error(tmp_path, feed):
    config = tmp_path / "policy.yaml"
    config.write_text("benefits:\n  gas_savings_ratio: two\n")

    result = run("--config", str(config), "opportunities", "--feed", feed, "--gas-prices", GAS_PRICES)

    assert result.exit_code == 1
    assert "gas_savings_ratio" in result.output
