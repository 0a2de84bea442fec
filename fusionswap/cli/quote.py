"""
fusionswap quote - Dutch auction price calculator.

Usage:
    fusionswap quote 1000 500 --start-time 0 --end-time 900 --decay 600 --at 300
    fusionswap quote 1000 500 --start-time 0 --end-time 900 --decay 600 --table --step 60
"""

import json
from typing import List, Optional, Tuple

import click

from fusionswap.cli.style import Color, banner, row_info
from fusionswap.config import ProtocolConfig
from fusionswap.core.exceptions import FusionSwapError
from fusionswap.protocol.auction import AuctionCurve


def _price_table(curve: AuctionCurve, step: int, scale: int) -> List[Tuple[int, int]]:
    rows = []
    t = curve.start_time
    while t < curve.end_time:
        rows.append((t, curve.price_at(t, scale)))
        t += step
    return rows


@click.command(name="quote")
@click.argument("starting_amount", type=int)
@click.argument("ending_amount", type=int)
@click.option("--start-time", type=int, required=True, help="Auction start (seconds).")
@click.option("--end-time", type=int, required=True, help="Auction end (seconds).")
@click.option("--decay", "decay_duration", type=int, required=True, help="Decay duration (seconds).")
@click.option("--at", "at", type=int, default=None, help="Quote a single timestamp.")
@click.option("--table", is_flag=True, default=False, help="Print a price table over the auction window.")
@click.option("--step", type=click.IntRange(min=1), default=60, show_default=True,
              help="Table step in seconds.")
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.pass_obj
def quote_command(
    config:          ProtocolConfig,
    starting_amount: int,
    ending_amount:   int,
    start_time:      int,
    end_time:        int,
    decay_duration:  int,
    at:              Optional[int],
    table:           bool,
    step:            int,
    fmt:             str,
) -> None:
    """
    Price a Dutch auction from STARTING_AMOUNT down to ENDING_AMOUNT.
    """
    try:
        curve = AuctionCurve.create(starting_amount, ending_amount, start_time, end_time, decay_duration)
    except FusionSwapError as e:
        raise click.UsageError(str(e)) from e

    if at is None and not table:
        at = start_time

    scale  = config.price_scale
    single = None if at is None else (at, curve.price_at(at, scale))
    rows   = _price_table(curve, step, scale) if table else []

    if fmt == "json":
        out = {"curve": curve.to_dict(), "price_scale": scale}
        if single:
            out["quote"] = {"at": single[0], "price": single[1], "open": curve.is_open(single[0])}
        if table:
            out["table"] = [{"at": t, "price": p} for t, p in rows]
        click.echo(json.dumps(out, indent=2))
        return

    banner("Auction Quote")
    click.echo(row_info("Curve",
        f"{starting_amount:,} → {ending_amount:,} over {decay_duration}s "
        f"(window {start_time}..{end_time})"
    ))
    if single:
        t, price = single
        state = Color.green("open") if curve.is_open(t) else Color.yellow("closed")
        click.echo(row_info("Price", f"{Color.cyan(f'{price:,}')} at t={t}  [{state}]"))
    if table:
        click.echo()
        for t, price in rows:
            click.echo(f"    t={t:<10} {price:>20,}")
    click.echo()
