"""
fusionswap/cli/__init__.py

fusionswap CLI - root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    fusionswap = "fusionswap.cli:cli"

Adding a new command:
    1. Create fusionswap/cli/your_command.py with a @click.command()
    2. Import it here
    3. cli.add_command(your_command)
"""

import logging
from pathlib import Path
from typing import Optional

import click

from fusionswap.cli.quote import quote_command
from fusionswap.cli.schedule import schedule_command
from fusionswap.cli.verify import verify_command
from fusionswap.config import ProtocolConfig
from fusionswap.core.exceptions import ConfigError

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.version_option(package_name="fusionswap")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Protocol configuration YAML.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], log_level: str) -> None:
    """
    fusionswap - cross-chain swap settlement tools.

    \b
    Commands:
      verify    Verify a settlement journal: chain, signatures, schema.
      quote     Price a Dutch auction at a time, or as a table.
      schedule  Show an escrow timelock's phase schedule.

    \b
    Quick start:
      fusionswap verify .fusionswap/journal/journal.jsonl
      fusionswap quote 1000 500 --start-time 0 --end-time 900 --decay 600 --at 300
      fusionswap schedule --finality 3600 --exclusive 1800 --private 900 --at 3700
    """
    logging.basicConfig(level=getattr(logging, log_level.upper()), format=LOG_FORMAT)
    try:
        ctx.obj = ProtocolConfig.from_yaml(Path(config_path)) if config_path else ProtocolConfig()
    except ConfigError as e:
        raise click.UsageError(str(e)) from e


cli.add_command(verify_command)
cli.add_command(quote_command)
cli.add_command(schedule_command)
