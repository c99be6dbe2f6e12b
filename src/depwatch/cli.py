import asyncio
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler

from .app import watch
from .core.config import WatcherConfig
from .core.errors import ConfigError
from .reporting import DepositReporter

console = Console(soft_wrap=True)
err_console = Console(stderr=True)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


@click.command()
@click.option("--endpoint", default="", help="JSON-RPC node URL")
@click.option("--target", default="", help="Deposit contract address (hex)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Diagnostics level (stderr)",
)
def cli(endpoint: str, target: str, log_level: str) -> None:
    """depwatch — report DepositEvent logs of one contract, history first, then live."""
    _setup_logging(log_level)
    reporter = DepositReporter(console)

    try:
        config = WatcherConfig(endpoint=endpoint, target=target).validate()
    except ConfigError as e:
        reporter.error(e)
        sys.exit(1)

    sys.exit(asyncio.run(watch(config, reporter)))


def main() -> None:
    cli(prog_name="depwatch")


if __name__ == "__main__":
    main()
