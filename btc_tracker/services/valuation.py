"""Transaction valuation service: fills a transaction's currency views via the converter."""

import logging
from typing import Any, Mapping

from btc_tracker.lib.errors import InvalidTransactionError, UnsupportedCurrencyPair
from btc_tracker.lib.validators import normalize_currency
from btc_tracker.models.currency import BaseCurrencyKey, Currency
from btc_tracker.models.transaction import Transaction, TransactionValues
from btc_tracker.services.currency_converter import CurrencyConverter

logger = logging.getLogger(__name__)


class TransactionValuationService:
    """
    Computes and caches transaction values in base and display currencies.

    The transaction model never converts on its own; this service sources
    rates from the converter and writes the results into the model.
    """

    def __init__(self, converter: CurrencyConverter) -> None:
        """
        Initialize valuation service.

        Args:
            converter: Converter used for every rate lookup
        """
        self.converter = converter

    def compute_base_values(self, transaction: Transaction) -> Transaction:
        """
        Convert the original values into EUR and USD and store them.

        Args:
            transaction: Transaction whose ``original`` is set

        Returns:
            The same transaction, now in the Based state

        Raises:
            UnsupportedCurrencyPair: If the entry currency is unsupported or
                a rate is missing
        """
        original = transaction.original
        for key in BaseCurrencyKey:
            target = key.currency.value
            if original.currency == target:
                values = original.as_values()
            else:
                values = self.converter.convert_values(original.as_values(), original.currency, target)
            transaction.set_base_values(key, values)

        logger.debug(
            f"Base values computed for {transaction.id}: "
            f"{transaction.base[BaseCurrencyKey.EUR].price:.2f} EUR / "
            f"{transaction.base[BaseCurrencyKey.USD].price:.2f} USD"
        )
        return transaction

    def create_transaction(self, data: Mapping[str, Any]) -> Transaction:
        """
        Build a validated transaction from user input or an import row.

        Base values are computed unless the input already carries them.

        Args:
            data: Raw transaction data

        Returns:
            A transaction that passes ``is_valid()``

        Raises:
            UnsupportedCurrencyPair: If the entry currency is not supported
            InvalidTransactionError: If the transaction fails validation
        """
        transaction = Transaction(data)

        if not self.converter.is_supported(transaction.original.currency):
            raise UnsupportedCurrencyPair(
                transaction.original.currency,
                Currency.EUR.value,
                "entry currency is not supported",
            )

        has_base = any(values.price for values in transaction.base.values())
        if not has_base:
            self.compute_base_values(transaction)

        errors = transaction.validation_errors()
        if errors:
            logger.warning(f"Rejected transaction {transaction.id}: {'; '.join(errors)}")
            raise InvalidTransactionError("; ".join(errors))

        return transaction

    def attach_secondary(self, transaction: Transaction, currency: str) -> Transaction:
        """
        Attach (or replace) the secondary bundle for a display currency.

        Base currencies are left alone. For any other supported currency the
        rate from the entry currency is sourced from the converter and handed
        to ``Transaction.convert_to``.

        Raises:
            UnsupportedCurrencyPair: If ``currency`` is not supported or has no rate
        """
        if BaseCurrencyKey.parse(currency) is not None:
            return transaction

        rate = self.converter.get_rate(transaction.original.currency, currency)
        transaction.convert_to(currency, rate)
        return transaction

    def values_in(self, transaction: Transaction, currency: str) -> TransactionValues:
        """
        Values of a transaction in the user's main currency.

        Attaches the secondary bundle first when the currency is neither a
        base nor the entry currency and has not been attached yet.
        """
        code = normalize_currency(currency)
        secondary = transaction.secondary
        already_cached = (
            BaseCurrencyKey.parse(currency) is not None
            or code == transaction.original.currency
            or (secondary is not None and secondary.currency == code)
        )
        if not already_cached:
            self.attach_secondary(transaction, currency)
        return transaction.get_values_in_currency(currency)
