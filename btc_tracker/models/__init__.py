"""
Domain models for the btc-tracker core.

Plain dataclasses and enums; nothing here talks to the network or a database.
"""

from btc_tracker.models.currency import BASE_CURRENCIES, BaseCurrencyKey, Currency
from btc_tracker.models.exchange_rate import RateSnapshot
from btc_tracker.models.transaction import (
    CurrencyValues,
    OriginalValues,
    Transaction,
    TransactionType,
    TransactionValues,
    TxType,
    ValuationState,
)

__all__ = [
    # Currency
    "Currency",
    "BaseCurrencyKey",
    "BASE_CURRENCIES",
    "RateSnapshot",
    # Transactions
    "Transaction",
    "TransactionValues",
    "CurrencyValues",
    "OriginalValues",
    # Enums
    "TransactionType",
    "TxType",
    "ValuationState",
]
