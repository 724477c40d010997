"""CLI commands for exchange rates, conversions and the BTC price."""

import asyncio
from typing import NoReturn

import click
from rich.console import Console
from rich.table import Table

from btc_tracker.lib.errors import BtcTrackerError, format_error_message, get_error_color
from btc_tracker.models.currency import Currency
from btc_tracker.services.currency_converter import CurrencyConverter
from btc_tracker.services.rate_refresher import RateRefresher
from btc_tracker.services.rate_store import RateStore

console = Console()


def load_rates() -> RateStore:
    """Fetch current rates and price into a fresh store."""
    store = RateStore()
    refresher = RateRefresher(store)
    if not asyncio.run(refresher.refresh()):
        console.print("[yellow]⚠ Could not refresh rates from the network[/yellow]")
    return store


def _fail(error: BtcTrackerError) -> NoReturn:
    """Print a known error and exit with status 1."""
    color = get_error_color(error)
    console.print(f"[{color}]✗ Error: {format_error_message(error)}[/{color}]")
    raise SystemExit(1)


@click.group()
def rates() -> None:
    """Inspect exchange rates."""
    pass


@rates.command("show")
def rates_show() -> None:
    """Show EUR- and USD-anchored rates for every supported currency."""
    store = load_rates()
    all_rates = store.get_all_rates()

    table = Table(title="Exchange Rates", show_header=True, header_style="bold cyan")
    table.add_column("Currency", style="cyan")
    table.add_column("1 EUR =", style="green", justify="right")
    table.add_column("1 USD =", style="blue", justify="right")

    for currency in Currency:
        eur_rate = 1.0 if currency is Currency.EUR else all_rates["EUR"].get(currency.value)
        usd_rate = 1.0 if currency is Currency.USD else all_rates["USD"].get(currency.value)
        table.add_row(
            currency.value,
            f"{eur_rate:,.4f}" if eur_rate else "-",
            f"{usd_rate:,.4f}" if usd_rate else "-",
        )

    console.print(table)

    last_updated = store.get_rates_last_updated()
    if last_updated:
        console.print(f"\n🕒 Updated: {last_updated['timestamp']}")


@click.command("convert")
@click.argument("amount", type=float)
@click.argument("from_currency")
@click.argument("to_currency")
def convert(amount: float, from_currency: str, to_currency: str) -> None:
    """Convert AMOUNT from FROM_CURRENCY to TO_CURRENCY."""
    converter = CurrencyConverter(load_rates())

    try:
        rate = converter.get_rate(from_currency, to_currency)
        converted = converter.convert(amount, from_currency, to_currency)
    except BtcTrackerError as e:
        _fail(e)

    console.print(
        f"[green]{amount:,.2f} {from_currency.upper()} = "
        f"{converted:,.2f} {to_currency.upper()}[/green] [dim](rate {rate:.6f})[/dim]"
    )


@click.command("price")
@click.argument("currency", default="EUR")
def price(currency: str) -> None:
    """Show the current BTC price in CURRENCY (default EUR)."""
    store = load_rates()

    try:
        btc_price = store.get_btc_price(currency)
    except BtcTrackerError as e:
        _fail(e)

    if not btc_price:
        console.print("[yellow]BTC price not available yet[/yellow]")
        return

    console.print(f"₿ 1 BTC = [bold]{btc_price:,.2f} {currency.upper()}[/bold]")
