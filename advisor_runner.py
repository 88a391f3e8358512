"""
Advisor Replay Runner
Replays recorded ticks through an expert advisor backed by the paper broker.

Usage:
    python advisor_runner.py replay ticks.csv
    python advisor_runner.py replay ticks.csv --symbol EURUSD --timeframe 60 --timeframe 300
"""
import asyncio
import sys
from collections import Counter, defaultdict
from pathlib import Path
from typing import Dict, List, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from advisors.component import AdvisorComponent
from advisors.expert_advisor import ExpertAdvisor
from config import get_config
from execution.paper_broker import PaperBrokerAccount
from market.models import Period, Tick
from market.tick_loader import load_csv_ticks

app = typer.Typer()
console = Console()


class SpreadMonitor(AdvisorComponent):
    """Tracks the widest spread seen per symbol."""

    def __init__(self, advisor=None):
        super().__init__(advisor, name="SpreadMonitor")
        self.max_spread: Dict[str, float] = defaultdict(float)

    async def on_tick(self, tick: Tick) -> None:
        if tick.spread > self.max_spread[tick.symbol]:
            self.max_spread[tick.symbol] = tick.spread


class ReplayAdvisor(ExpertAdvisor):
    """Counts what it receives; places no orders."""

    def __init__(self, broker_account, symbols: List[str], timeframes: List[int]):
        super().__init__(broker_account)
        self._symbols = symbols
        self._timeframes = timeframes
        self.ticks_by_symbol: Counter = Counter()
        self.periods_by_symbol: Counter = Counter()
        self.last_close: Dict[str, float] = {}

    async def configure(self) -> None:
        for symbol in self._symbols:
            self.market_watcher.watch(symbol, timeframes=self._timeframes)

    async def on_tick(self, tick: Tick) -> None:
        self.ticks_by_symbol[tick.symbol] += 1

    async def on_period_close(self, period: Period) -> None:
        self.periods_by_symbol[period.symbol] += 1
        self.last_close[period.symbol] = period.close


def _setup_logging(level: str):
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


async def run_replay(ticks: List[Tick], timeframes: List[int]):
    """Feed ``ticks`` through a ReplayAdvisor; returns (advisor, spread monitor)."""
    broker = PaperBrokerAccount()
    symbols = sorted({t.symbol for t in ticks})
    advisor = ReplayAdvisor(broker, symbols, timeframes)
    spreads = SpreadMonitor(advisor)
    advisor.add_component(spreads)
    await advisor.start()
    for tick in ticks:
        broker.push_tick(tick)
    await advisor.wait_until_idle()
    await advisor.stop()
    return advisor, spreads


def _print_summary(advisor: ReplayAdvisor, spreads: SpreadMonitor):
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Symbol", style="cyan", width=12)
    table.add_column("Ticks", justify="right")
    table.add_column("Periods", justify="right")
    table.add_column("Last close", justify="right")
    table.add_column("Max spread", justify="right")
    for symbol in sorted(advisor.ticks_by_symbol):
        close = advisor.last_close.get(symbol)
        table.add_row(
            symbol, str(advisor.ticks_by_symbol[symbol]),
            str(advisor.periods_by_symbol[symbol]),
            f"{close:.5f}" if close is not None else "-",
            f"{spreads.max_spread[symbol]:.5f}")
    console.print(table)


@app.callback()
def main():
    """Expert advisor runtime tools."""


@app.command()
def replay(
    csv_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV with symbol,bid,ask,time"),
    symbol: Optional[str] = typer.Option(None, "--symbol", "-s", help="Only replay this symbol"),
    timeframe: Optional[List[int]] = typer.Option(None, "--timeframe", "-t", help="Period timeframe in seconds (repeatable)"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    """
    Replay recorded ticks through an advisor.

    Example:
        python advisor_runner.py replay ticks.csv --timeframe 60
    """
    cfg = get_config()
    _setup_logging(log_level or cfg.logging.level)
    ticks = load_csv_ticks(str(csv_path), symbol=symbol)
    if not ticks:
        console.print("[red]No ticks to replay[/red]")
        raise typer.Exit(1)
    timeframes = list(timeframe) if timeframe else list(cfg.watcher.period_timeframes)
    console.print(Panel.fit(f"[bold cyan]REPLAY: {len(ticks)} ticks, timeframes={timeframes}[/bold cyan]",
                            border_style="cyan"))
    advisor, spreads = asyncio.run(run_replay(ticks, timeframes))
    _print_summary(advisor, spreads)
    processed = advisor.tick_serializer.processed_count
    console.print(f"[green]✓ {processed} ticks processed[/green]")
    raise typer.Exit(0 if processed == len(ticks) else 1)


if __name__ == "__main__":
    app()
