"""CLI entry point for btc-tracker."""

import logging

import click

from btc_tracker.cli import rates
from btc_tracker.lib.logging_config import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, debug: bool) -> None:
    """Bitcoin holdings tracker - exchange rates and conversions."""
    ctx.ensure_object(dict)
    ctx.obj["DEBUG"] = debug
    setup_logging(logging.DEBUG if debug else logging.WARNING, log_file="")


@main.command()
def version() -> None:
    """Show version information."""
    click.echo("btc-tracker version 0.1.0")


main.add_command(rates.rates)
main.add_command(rates.convert)
main.add_command(rates.price)


if __name__ == "__main__":
    main()
