"""
Currency enumerations.

``Currency`` is the closed set of fiat codes the rate store can resolve.
``BaseCurrencyKey`` names the two anchor currencies as they appear as keys
of a transaction's ``base`` bundle, so that a base key can never be confused
with an arbitrary currency code.
"""

import enum
from typing import Any, Optional

from btc_tracker.lib.validators import normalize_currency


class Currency(str, enum.Enum):
    """Supported fiat currencies."""

    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"
    JPY = "JPY"
    CHF = "CHF"
    PLN = "PLN"
    BRL = "BRL"
    INR = "INR"

    @classmethod
    def parse(cls, code: Any) -> Optional["Currency"]:
        """Return the matching member (case-insensitive) or None."""
        normalized = normalize_currency(code)
        try:
            return cls(normalized)
        except ValueError:
            return None

    @property
    def is_base(self) -> bool:
        """True for EUR and USD."""
        return self in (Currency.EUR, Currency.USD)


class BaseCurrencyKey(str, enum.Enum):
    """Keys of the per-transaction base value bundles."""

    EUR = "eur"
    USD = "usd"

    @classmethod
    def parse(cls, key: Any) -> Optional["BaseCurrencyKey"]:
        """Return the matching key for 'eur'/'usd' (any case) or None."""
        if isinstance(key, cls):
            return key
        if not isinstance(key, str):
            return None
        try:
            return cls(key.strip().lower())
        except ValueError:
            return None

    @property
    def currency(self) -> Currency:
        """The currency this key stands for."""
        return Currency(self.value.upper())


BASE_CURRENCIES = (Currency.EUR, Currency.USD)
