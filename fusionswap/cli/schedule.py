"""
fusionswap schedule - escrow timelock phase schedule.

Durations default to the configured escrow_durations.
"""

import json
from typing import Optional

import click

from fusionswap.cli.style import Color, banner, row_info
from fusionswap.config import ProtocolConfig
from fusionswap.core.exceptions import FusionSwapError
from fusionswap.core.timelock import Phase, Timelock


@click.command(name="schedule")
@click.option("--created-at", type=int, default=0, show_default=True, help="Escrow creation time.")
@click.option("--finality", type=int, default=None)
@click.option("--exclusive", "exclusive_withdrawal", type=int, default=None)
@click.option("--public", "public_withdrawal", type=int, default=None)
@click.option("--private", "private_cancellation", type=int, default=None)
@click.option("--at", "at", type=int, default=None, help="Highlight the phase active at this time.")
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.pass_obj
def schedule_command(
    config:               ProtocolConfig,
    created_at:           int,
    finality:             Optional[int],
    exclusive_withdrawal: Optional[int],
    public_withdrawal:    Optional[int],
    private_cancellation: Optional[int],
    at:                   Optional[int],
    fmt:                  str,
) -> None:
    """Print when each timelock phase begins."""
    defaults = config.escrow_durations
    try:
        timelock = Timelock.create(
            created_at=           created_at,
            finality=             defaults.finality if finality is None else finality,
            exclusive_withdrawal= (
                defaults.exclusive_withdrawal if exclusive_withdrawal is None
                else exclusive_withdrawal
            ),
            private_cancellation= (
                defaults.private_cancellation if private_cancellation is None
                else private_cancellation
            ),
            public_withdrawal=    (
                defaults.public_withdrawal if public_withdrawal is None
                else public_withdrawal
            ),
        )
    except FusionSwapError as e:
        raise click.UsageError(str(e)) from e

    current = timelock.current_phase(at) if at is not None else None

    if fmt == "json":
        out = {
            "timelock": timelock.to_dict(),
            "schedule": [
                {"phase": phase.value, "starts_at": starts}
                for phase, starts in timelock.schedule()
            ],
        }
        if current is not None:
            out["at"] = {
                "time":      at,
                "phase":     current.value,
                "remaining": timelock.remaining_time(at),
            }
        click.echo(json.dumps(out, indent=2))
        return

    banner("Timelock Schedule")
    for phase, starts in timelock.schedule():
        # A zero public window is skipped entirely.
        if phase is Phase.PUBLIC_WITHDRAWAL and timelock.public_withdrawal == 0:
            continue
        label = Color.cyan(phase.value) if phase is current else phase.value
        marker = Color.green("  ◀ now") if phase is current else ""
        click.echo(f"    {starts:>12}  {label}{marker}")
    if current is not None:
        click.echo()
        click.echo(row_info("Remaining", f"{timelock.remaining_time(at)}s in {current.value}"))
    click.echo()
