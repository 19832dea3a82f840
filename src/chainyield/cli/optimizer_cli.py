"""
Yield Optimizer CLI

This module provides a command-line interface for the yield optimizer:
- Ranked cross-chain yield opportunities
- Allocation plans for an investment amount and risk tolerance
"""

import asyncio
import json
import sys
from decimal import Decimal
from typing import Dict, List, Optional

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ..config.environment import get_env_manager
from ..config.loader import ConfigLoader
from ..config.policy import OptimizerPolicy
from ..core.errors import ChainYieldError
from ..core.types import AggregateFilters, AllocationPreferences, RiskTolerance
from ..gas.gas_manager import GasEstimator
from ..gas.price_sources import GasPriceSource, StaticGasPriceSource, Web3GasPriceSource
from ..integrations.defillama import DefiLlamaYieldSource
from ..integrations.static_source import JsonFileOpportunitySource
from ..services.yield_optimizer_service import YieldOptimizerService
from ..utils.logging_config import configure_logging
from ..utils.money import format_usd

# Initialize rich console
console = Console()

# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------

def format_percentage(value):
    """Format a value as a percentage"""
    if isinstance(value, str):
        value = Decimal(value)
    return f"{value:.2f}%"

def parse_chain_ids(chain_ids_str: Optional[str]) -> Optional[List[int]]:
    """Parse comma-separated chain IDs"""
    if not chain_ids_str:
        return None
    try:
        return [int(chain_id) for chain_id in chain_ids_str.split(',') if chain_id.strip()]
    except ValueError:
        raise click.BadParameter(f"Invalid chain ID list: {chain_ids_str}")

def parse_categories(categories_str: Optional[str]) -> Optional[List[str]]:
    """Parse comma-separated categories"""
    if not categories_str:
        return None
    return [c.strip().lower() for c in categories_str.split(',') if c.strip()]

def parse_gas_prices(gas_prices_str: Optional[str]) -> Optional[Dict[int, str]]:
    """Parse 'chain_id=gwei' pairs, e.g. '1=25,137=40'"""
    if not gas_prices_str:
        return None
    prices = {}
    for pair in gas_prices_str.split(','):
        chain_id, sep, gwei = pair.partition('=')
        try:
            if not sep:
                raise ValueError(pair)
            prices[int(chain_id)] = str(Decimal(gwei.strip()))
        except (ValueError, ArithmeticError):
            raise click.BadParameter(f"Invalid gas price entry: {pair!r} (expected chain_id=gwei)")
    return prices

def build_service(policy: OptimizerPolicy, feed: Optional[str], gas_prices: Optional[str]) -> YieldOptimizerService:
    """Wire the optimizer service from command-line options"""
    static_prices = parse_gas_prices(gas_prices)
    if static_prices is not None:
        price_source: GasPriceSource = StaticGasPriceSource(static_prices)
    else:
        price_source = Web3GasPriceSource(
            env_manager=get_env_manager(),
            default_gas_price_gwei=policy.gas.default_gas_price_gwei
        )

    source = JsonFileOpportunitySource(feed) if feed else DefiLlamaYieldSource()
    return YieldOptimizerService(source, GasEstimator(price_source, policy=policy.gas), policy)

def display_opportunities(aggregates, show_json=False):
    """Display ranked aggregated opportunities"""
    if show_json:
        click.echo(json.dumps([a.to_dict() for a in aggregates], indent=2))
        return

    if not aggregates:
        console.print("[yellow]No yield opportunities found.[/yellow]")
        return

    table = Table(title="Cross-Chain Yield Opportunities")
    table.add_column("Protocol", style="green")
    table.add_column("Category", style="blue")
    table.add_column("APY", style="magenta")
    table.add_column("Base APY", style="dim")
    table.add_column("TVL", style="yellow")
    table.add_column("Risk", style="red")
    table.add_column("Chains", style="cyan")
    table.add_column("Best Chain", style="cyan")

    for aggregate in aggregates:
        table.add_row(
            aggregate.protocol,
            aggregate.category,
            format_percentage(aggregate.effective_apy),
            format_percentage(aggregate.base_apy),
            aggregate.total_tvl,
            aggregate.risk_level,
            ", ".join(c.chain_name for c in aggregate.chains),
            aggregate.best_chain.chain_name
        )

    console.print(table)

def display_allocation(allocation, show_json=False):
    """Display an allocation plan"""
    if show_json:
        click.echo(json.dumps(allocation.to_dict(), indent=2))
        return

    if not allocation.is_feasible:
        console.print("[yellow]No opportunities match the requested preferences.[/yellow]")
        return

    console.print(f"[bold]Allocation for {format_usd(allocation.total_amount)}[/bold]")
    console.print(f"Expected APY: {format_percentage(allocation.expected_apy)}")
    console.print(f"Risk Score: {allocation.risk_score:.2f}/3")
    console.print(f"Gas Costs: {allocation.gas_costs}")
    console.print(
        f"Projected Yield: {format_usd(allocation.projected_yield.daily)}/day, "
        f"{format_usd(allocation.projected_yield.monthly)}/month, "
        f"{format_usd(allocation.projected_yield.yearly)}/year"
    )

    table = Table(title="Positions")
    table.add_column("Protocol", style="green")
    table.add_column("Category", style="blue")
    table.add_column("Chain", style="cyan")
    table.add_column("Amount", style="yellow")
    table.add_column("Share", style="magenta")
    table.add_column("APY", style="magenta")
    table.add_column("Yearly Yield", style="yellow")
    table.add_column("Reasoning", style="dim")

    for target in allocation.allocations:
        table.add_row(
            target.protocol,
            target.category,
            target.chosen_chain.chain_name,
            format_usd(target.allocated_amount),
            format_percentage(target.percentage),
            format_percentage(target.apy),
            format_usd(target.expected_yield),
            target.reasoning
        )

    console.print(table)

def _run(coro, description: str):
    progress_console = Console(stderr=True)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
        console=progress_console,
        disable=not progress_console.is_terminal,
    ) as progress:
        progress.add_task(description=description, total=None)
        return asyncio.run(coro)

# -----------------------------------------------------------------------------
# CLI Commands
# -----------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", default=None, help="Policy file (YAML or JSON)")
@click.option("--log-level", default="WARNING", help="Log level")
@click.option("--json-logs", is_flag=True, help="Emit structured logs as JSON")
@click.pass_context
def cli(ctx, config_path, log_level, json_logs):
    """chainyield - Cross-chain yield aggregation and allocation"""
    configure_logging(log_level, json_output=json_logs)
    ctx.ensure_object(dict)
    try:
        ctx.obj['policy'] = ConfigLoader(get_env_manager()).load_policy(config_path)
    except (ChainYieldError, ValueError, OSError) as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        sys.exit(1)

@cli.command("opportunities")
@click.option("--feed", default=None, help="JSON file of opportunities (default: DeFi Llama)")
@click.option("--gas-prices", default=None, help="Static gas prices, e.g. 1=25,137=40 (default: RPC)")
@click.option("--chains", default=None, help="Comma-separated list of chain IDs")
@click.option("--categories", default=None, help="Comma-separated list of categories")
@click.option("--max-risk", default=None, type=float, help="Maximum risk score (1-3)")
@click.option("--min-apy", default=None, type=float, help="Minimum APY in percent")
@click.option("--limit", default=20, help="Maximum number of opportunities to show")
@click.option("--json", "show_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_opportunities(ctx, feed, gas_prices, chains, categories, max_risk, min_apy, limit, show_json):
    """List ranked cross-chain yield opportunities"""
    try:
        service = build_service(ctx.obj['policy'], feed, gas_prices)
        filters = AggregateFilters(
            max_risk=max_risk,
            preferred_chains=parse_chain_ids(chains),
            categories=parse_categories(categories),
            min_apy=min_apy
        )
        aggregates = _run(
            service.get_aggregated_opportunities(filters),
            "Fetching opportunities..."
        )
        display_opportunities(aggregates[:limit], show_json=show_json)

    except click.BadParameter:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        sys.exit(1)

@cli.command("allocate")
@click.argument("amount")
@click.option(
    "--risk",
    default=RiskTolerance.BALANCED.value,
    type=click.Choice([t.value for t in RiskTolerance], case_sensitive=False),
    help="Risk tolerance"
)
@click.option("--feed", default=None, help="JSON file of opportunities (default: DeFi Llama)")
@click.option("--gas-prices", default=None, help="Static gas prices, e.g. 1=25,137=40 (default: RPC)")
@click.option("--chains", default=None, help="Comma-separated list of preferred chain IDs")
@click.option("--categories", default=None, help="Comma-separated list of categories")
@click.option("--max-positions", default=None, type=int, help="Maximum number of positions")
@click.option("--json", "show_json", is_flag=True, help="Output as JSON")
@click.pass_context
def allocate(ctx, amount, risk, feed, gas_prices, chains, categories, max_positions, show_json):
    """Plan an allocation of AMOUNT (USD)"""
    try:
        preferences = AllocationPreferences(
            risk_tolerance=RiskTolerance.parse(risk),
            preferred_chains=parse_chain_ids(chains),
            categories=parse_categories(categories),
            max_positions=max_positions
        )
        service = build_service(ctx.obj['policy'], feed, gas_prices)
        allocation = _run(
            service.get_optimal_allocation(amount, preferences),
            "Calculating allocation..."
        )
        display_allocation(allocation, show_json=show_json)

    except click.BadParameter:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        sys.exit(1)

# -----------------------------------------------------------------------------
# Main
# -----------------------------------------------------------------------------

def main():
    """Run the CLI"""
    cli(obj={})

if __name__ == "__main__":
    main()
