"""Pytest configuration and fixtures for all tests."""

import pytest

from btc_tracker.services.currency_converter import CurrencyConverter
from btc_tracker.services.rate_store import RateStore
from btc_tracker.services.valuation import TransactionValuationService

SUPPORTED_CURRENCIES = ["EUR", "USD", "GBP", "JPY", "CHF", "PLN", "BRL", "INR"]
BASE_CURRENCIES = ["EUR", "USD"]

TEST_EUR_RATES = {
    "USD": 1.14,
    "PLN": 4.28,
    "GBP": 0.843,
    "JPY": 164.14,
    "CHF": 0.938,
    "BRL": 6.43,
    "INR": 97.5,
}

TEST_USD_RATES = {
    "EUR": 0.874,
    "PLN": 3.74,
    "GBP": 0.737,
    "JPY": 143.45,
    "CHF": 0.82,
    "BRL": 5.63,
    "INR": 85.5,
}


@pytest.fixture
def empty_store():
    """Provide a store that has never received rates."""
    return RateStore()


@pytest.fixture
def rate_store():
    """Provide a store loaded with the test rates and a 50,000 EUR BTC price."""
    store = RateStore()
    store.update_exchange_rates(TEST_EUR_RATES, TEST_USD_RATES)
    store.update_btc_price(50000)
    return store


@pytest.fixture
def converter(rate_store):
    """Provide CurrencyConverter over the loaded store."""
    return CurrencyConverter(rate_store)


@pytest.fixture
def valuation_service(converter):
    """Provide TransactionValuationService over the loaded converter."""
    return TransactionValuationService(converter)


@pytest.fixture
def buy_data():
    """Raw input for a 0.1 BTC buy entered in EUR."""
    return {
        "type": "buy",
        "amount": 0.1,
        "date": "2024-03-15T10:30:00Z",
        "exchange": "kraken",
        "original": {"currency": "EUR", "price": 30000, "cost": 3000, "fee": 10},
    }
