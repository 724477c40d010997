"""Currency converter service backed by the rate store."""

import logging
from typing import Any, Mapping, Union

from btc_tracker.lib.errors import UnsupportedCurrencyPair
from btc_tracker.lib.validators import coerce_float
from btc_tracker.models.currency import BASE_CURRENCIES, Currency
from btc_tracker.models.transaction import OriginalValues, TransactionValues
from btc_tracker.services.rate_store import RateStore

logger = logging.getLogger(__name__)

ValuesInput = Union[TransactionValues, OriginalValues, Mapping[str, Any]]


class CurrencyConverter:
    """Converts amounts and transaction value bundles between supported currencies."""

    def __init__(self, rate_store: RateStore) -> None:
        """
        Initialize currency converter.

        Args:
            rate_store: Store the converter reads rates from
        """
        self.rate_store = rate_store

    @property
    def supported_currencies(self) -> list[str]:
        """All supported currency codes, base currencies first."""
        return [currency.value for currency in Currency]

    @property
    def base_currencies(self) -> list[str]:
        """The two anchor currencies."""
        return [currency.value for currency in BASE_CURRENCIES]

    def is_supported(self, currency: Any) -> bool:
        """
        Check if a currency is supported.

        Args:
            currency: Currency code (case-insensitive)

        Returns:
            True if the code belongs to the supported set
        """
        return Currency.parse(currency) is not None

    def _require_pair(self, from_currency: Any, to_currency: Any) -> tuple[str, str]:
        """Normalize both codes or raise UnsupportedCurrencyPair."""
        source = Currency.parse(from_currency)
        target = Currency.parse(to_currency)
        if source is None or target is None:
            raise UnsupportedCurrencyPair(str(from_currency), str(to_currency))
        return source.value, target.value

    def get_rate(self, from_currency: str, to_currency: str) -> float:
        """
        Get the exchange rate between two currencies.

        Args:
            from_currency: Source currency
            to_currency: Target currency

        Returns:
            Exchange rate

        Raises:
            UnsupportedCurrencyPair: If either currency is unsupported or has no rate
        """
        source, target = self._require_pair(from_currency, to_currency)
        return self.rate_store.get_rate(source, target)

    def convert(self, amount: Any, from_currency: str, to_currency: str) -> float:
        """
        Convert an amount from one currency to another.

        None, NaN and unparsable amounts convert to 0.0 so that partial input
        never leaks NaN into totals. Negative amounts convert linearly.

        Args:
            amount: Amount to convert
            from_currency: Source currency code
            to_currency: Target currency code

        Returns:
            Converted amount

        Raises:
            UnsupportedCurrencyPair: If either currency is unsupported or has no rate
        """
        rate = self.get_rate(from_currency, to_currency)
        return coerce_float(amount) * rate

    def convert_values(
        self, values: ValuesInput, from_currency: str, to_currency: str
    ) -> TransactionValues:
        """
        Convert all monetary values of a transaction bundle.

        Price, cost and fee are scaled independently by the same rate; a
        missing fee counts as 0.

        Args:
            values: Bundle or mapping with ``price``, ``cost`` and optional ``fee``
            from_currency: Currency the values are expressed in
            to_currency: Target currency

        Returns:
            Converted bundle whose ``rate`` is the rate used

        Raises:
            UnsupportedCurrencyPair: If either currency is unsupported or has no rate
        """
        rate = self.get_rate(from_currency, to_currency)

        if isinstance(values, Mapping):
            price = values.get("price")
            cost = values.get("cost")
            fee = values.get("fee")
        else:
            price, cost, fee = values.price, values.cost, values.fee

        logger.debug(f"Converting values {from_currency}->{to_currency} at {rate}")
        return TransactionValues(
            price=coerce_float(price) * rate,
            cost=coerce_float(cost) * rate,
            fee=coerce_float(fee) * rate,
            rate=rate,
        )

    def get_all_rates(self) -> dict[str, dict[str, float]]:
        """Current EUR- and USD-anchored rates."""
        return self.rate_store.get_all_rates()

    def needs_update(self) -> bool:
        """True when the store's rates are missing or stale."""
        return self.rate_store.needs_update()
