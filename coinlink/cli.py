"""Command line helpers for CoinLink."""

from __future__ import annotations

import argparse
import asyncio
import logging

from rich.console import Console
from rich.table import Table

from .app import RewardApp
from .config import CoinLinkConfig
from .domain.progression import LEVEL_XP, MAX_LEVEL, XP_CAP

console = Console()


def run_sweeper() -> None:
    parser = argparse.ArgumentParser(description="CoinLink token and counter sweeper")
    parser.add_argument("--once", action="store_true", help="Run a single sweep and exit")
    parser.add_argument("--interval", type=int, help="Override the sweep interval in seconds")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = CoinLinkConfig.from_env()
    if args.interval is not None:
        config.sweeper.interval_seconds = args.interval
    asyncio.run(_sweep(config, once=args.once))


async def _sweep(config: CoinLinkConfig, *, once: bool) -> None:
    app = RewardApp(config)
    await app.init_backend()
    try:
        if once:
            report = await app.sweeper.sweep()
            console.print(
                f"[bold green]Sweep done[/bold green]: {report.tokens_removed} token(s) removed, "
                f"{report.counters_reset} counter(s) reset, {report.claims_pruned} claim(s) pruned"
            )
            return
        console.print(
            f"Sweeping every {config.sweeper.interval_seconds}s on the "
            f"[bold]{config.storage.backend}[/bold] store, Ctrl+C to stop"
        )
        await app.sweeper.run()
    finally:
        await app.close()


def run_level_table() -> None:
    parser = argparse.ArgumentParser(description="Print the XP required for every level")
    parser.parse_args()

    table = Table(title="Level curve")
    table.add_column("Level", justify="right")
    table.add_column("XP to next", justify="right")
    table.add_column("Total XP", justify="right")
    total = 0
    for level, needed in enumerate(LEVEL_XP):
        table.add_row(str(level), str(needed), str(total))
        total += needed
    table.add_row(str(MAX_LEVEL), "-", str(total))
    console.print(table)
    console.print(f"XP is capped at {XP_CAP} once level {MAX_LEVEL} is reached.")
