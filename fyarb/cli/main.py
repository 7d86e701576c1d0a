"""
fyarb CLI entry point.

Usage:
    # Show configuration and provider health
    fyarb --status

    # Show the benchmark curve
    fyarb --curve

    # Evaluate one block (latest by default) without emitting
    fyarb --once [--block N]

    # Follow the chain head and emit proposals (dry run executor)
    fyarb --run
"""

import asyncio
import sys
from typing import Any, Optional

import click
from rich.console import Console
from rich.table import Table

from fyarb.arb.engine import ArbEngine
from fyarb.core.config import ArbConfig, Settings, get_settings, load_arb_config, load_yaml_config
from fyarb.core.errors import ConfigurationError, FyArbError, ProviderError
from fyarb.core.logging import get_logger, setup_logging
from fyarb.core.timeutil import format_unix
from fyarb.domain.models import Classification, CycleResult
from fyarb.pricing.curve import BenchmarkCurve, curve_summary
from fyarb.providers.chain import ChainStateProvider
from fyarb.providers.curves import create_curve_provider
from fyarb.services.curve_store import CurveStore
from fyarb.services.execution import DryRunExecutor, ExecutionService
from fyarb.services.scheduler import create_scheduler_service

console = Console()
logger = get_logger("cli")


def curve_config_for(config: dict[str, Any], arb: ArbConfig) -> dict[str, Any]:
    """Curve section with the pricer's day count; a conflicting one is an error."""
    curve_config = dict(config.get("curve") or {})
    day_count = curve_config.setdefault("day_count", arb.day_count)
    if str(day_count).lower() != arb.day_count:
        raise ConfigurationError(
            f"curve.day_count ({day_count}) differs from arbitrage.day_count ({arb.day_count})"
        )
    return curve_config


def build_engine(
    config: Optional[dict[str, Any]] = None,
    settings: Optional[Settings] = None,
    executor: Optional[ExecutionService] = None,
) -> tuple[ArbEngine, ChainStateProvider]:
    """
    Wire providers, curve and engine from configuration.

    Raises:
        ConfigurationError, InvalidCurveError, ProviderError
    """
    settings = settings or get_settings()
    if config is None:
        config = load_yaml_config(settings.config_path)
    arb = load_arb_config(config)

    curve_provider = create_curve_provider(curve_config_for(config, arb), settings=settings)
    curve_store = CurveStore.load(curve_provider)

    chain = ChainStateProvider(token_decimals=arb.token_decimals, settings=settings)
    engine = ArbEngine(
        arb,
        chain,
        curve_store,
        executor=executor,
        receiver=settings.receiver_address or "",
    )
    return engine, chain


def display_curve(curve: BenchmarkCurve) -> None:
    table = Table(title=f"Benchmark Curve ({curve.source}, {curve.day_count.value})")
    table.add_column("Tenor (y)", justify="right", style="cyan")
    table.add_column("Rate", justify="right")
    table.add_column("DF", justify="right")

    for row in curve_summary(curve):
        table.add_row(f"{row['tenor']:.4f}", f"{row['rate']:.4%}", f"{row['df']:.6f}")
    console.print(table)


def display_result(result: CycleResult) -> None:
    """Display one cycle in terminal."""
    console.print(f"\n[bold blue]Block {result.block_number}[/bold blue]\n")

    if result.divergences:
        table = Table(title="Divergences")
        table.add_column("Pool", style="cyan")
        table.add_column("Maturity")
        table.add_column("Class")
        table.add_column("Implied DF", justify="right")
        table.add_column("Benchmark DF", justify="right")
        table.add_column("Edge (bps)", justify="right")

        for d in result.divergences:
            color = {
                Classification.CHEAP: "green",
                Classification.RICH: "red",
                Classification.FAIR: "white",
            }[d.classification]
            table.add_row(
                d.pool_id,
                format_unix(d.maturity, "date"),
                f"[{color}]{d.classification.value}[/{color}]",
                f"{d.implied_df:.6f}",
                f"{d.benchmark_df:.6f}",
                f"{d.edge_bps:+.1f}",
            )
        console.print(table)

    if result.excluded:
        console.print("[bold yellow]Excluded[/bold yellow]")
        for pool_id, reason in result.excluded.items():
            console.print(f"  {pool_id}: {reason}")

    p = result.proposal
    if p:
        console.print("\n[bold green]Proposal[/bold green]")
        console.print(f"  buy  {p.fy_amount:.6f} FY on {p.cheap_pool} for <= {p.max_base_in:.6f} base")
        console.print(f"  sell on {p.rich_pool} for >= {p.min_base_out:.6f} base")
        console.print(f"  expected profit {p.expected_profit:.6f} ({p.expected_edge_bps:.1f} bps)")
    else:
        console.print("\n[dim]No proposal[/dim]")


async def evaluate_block(engine: ArbEngine, chain: ChainStateProvider, block_number: Optional[int]) -> CycleResult:
    try:
        block = await chain.get_block(block_number)
        return await engine.on_block(block)
    finally:
        await chain.aclose()


async def follow_chain(engine: ArbEngine, chain: ChainStateProvider, poll_seconds: float) -> None:
    """Poll the head and start a cycle for each new height."""
    tasks: set[asyncio.Task] = set()

    def on_done(task: asyncio.Task) -> None:
        tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Cycle failed", exc_info=task.exception())

    try:
        while True:
            try:
                block = await chain.get_latest_block()
            except ProviderError as e:
                logger.warning(f"Head poll failed: {e.message}")
            else:
                if engine.block_filter.is_new(block.number):
                    task = asyncio.create_task(engine.on_block(block))
                    tasks.add(task)
                    task.add_done_callback(on_done)
            await asyncio.sleep(poll_seconds)
    finally:
        for task in tasks:
            task.cancel()
        await chain.aclose()


@click.command()
@click.option("--status", is_flag=True, help="Show configuration and provider health")
@click.option("--curve", "show_curve", is_flag=True, help="Show the benchmark curve")
@click.option("--once", is_flag=True, help="Evaluate one block and exit")
@click.option("--block", "block_number", type=int, default=None, help="Block height for --once")
@click.option("--run", "run_forever", is_flag=True, help="Follow the chain and emit proposals")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def main(
    status: bool,
    show_curve: bool,
    once: bool,
    block_number: Optional[int],
    run_forever: bool,
    verbose: bool,
) -> None:
    """fyarb - Fixed-Yield Pool Arbitrage Engine"""

    log_level = "DEBUG" if verbose else None
    setup_logging(log_level=log_level)

    try:
        if status:
            show_status()
            return

        if show_curve:
            settings = get_settings()
            config = load_yaml_config(settings.config_path)
            arb = load_arb_config(config)
            provider = create_curve_provider(curve_config_for(config, arb), settings=settings)
            display_curve(provider.load_curve())
            return

        if once:
            engine, chain = build_engine()
            result = asyncio.run(evaluate_block(engine, chain, block_number))
            display_result(result)
            return

        if run_forever:
            run()
            return
    except FyArbError as e:
        console.print(f"[bold red]{e.code}[/bold red]: {e.message}")
        logger.error(f"Startup failed: {e.message}")
        sys.exit(1)

    # Default: show help
    ctx = click.get_current_context()
    click.echo(ctx.get_help())


def show_status() -> None:
    """Show system status."""
    settings = get_settings()
    config = load_yaml_config(settings.config_path)
    arb = load_arb_config(config)

    console.print("\n[bold]fyarb System Status[/bold]\n")

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Environment", settings.fyarb_env)
    table.add_row("Log Level", settings.log_level)
    table.add_row("Pools", str(len(arb.pools)))
    table.add_row("Edge threshold", f"{arb.edge_threshold_bps} bps")
    table.add_row("Min trade edge", f"{arb.min_trade_edge_bps} bps")
    table.add_row("Max position", f"{arb.max_position_base} base / {arb.max_position_token} FY")
    table.add_row("Day count", arb.day_count)
    table.add_row("Curve source", str((config.get("curve") or {}).get("source", "static")))

    console.print(table)
    console.print()

    table = Table(title="Connections")
    table.add_column("Component", style="cyan")
    table.add_column("Status")

    def check_key(key: Optional[str]) -> str:
        if key and len(key) > 5:
            return "[green]✓ Configured[/green]"
        return "[red]✗ Missing[/red]"

    table.add_row("RPC URL", check_key(settings.rpc_url))
    table.add_row("Receiver", check_key(settings.receiver_address))
    table.add_row("FRED", check_key(settings.fred_api_key))

    if settings.rpc_url:
        chain = ChainStateProvider(token_decimals=arb.token_decimals, settings=settings)

        async def probe():
            try:
                return await chain.healthcheck()
            finally:
                await chain.aclose()

        health = asyncio.run(probe())
        table.add_row("Chain", f"{health.status.value}: {health.message}")

    console.print(table)


def run() -> None:
    """Follow the chain until interrupted."""
    settings = get_settings()
    config = load_yaml_config(settings.config_path)
    engine, chain = build_engine(config, settings)
    engine.executor = DryRunExecutor(engine.config.token_decimals)

    curve_cfg = config.get("curve") or {}
    scheduler = create_scheduler_service(settings)
    scheduler.setup_curve_refresh(engine.curve_store, float(curve_cfg.get("refresh_minutes", 60)))
    scheduler.start()

    poll_seconds = float((config.get("runner") or {}).get("poll_seconds", 2))
    console.print("[bold]Following chain head...[/bold]")
    console.print("Press Ctrl+C to stop\n")

    try:
        asyncio.run(follow_chain(engine, chain, poll_seconds))
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")
    finally:
        scheduler.stop()


if __name__ == "__main__":
    main()
