"""
Transaction valuation model.

A transaction keeps the values exactly as the user entered them
(``original``), caches its value in both base currencies (``base``) and may
carry one extra display currency (``secondary``). The model never converts
on read: every currency view has to be computed and attached beforehand.
"""

import enum
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional, Union
from uuid import uuid4

from btc_tracker.lib.errors import InvalidBaseCurrency, NoValuesAvailable
from btc_tracker.lib.validators import (
    coerce_float,
    normalize_currency,
    normalize_timestamp,
    parse_timestamp,
)
from btc_tracker.models.currency import BaseCurrencyKey, Currency


class TransactionType(str, enum.Enum):
    """Direction of a BTC transaction."""

    BUY = "buy"
    SELL = "sell"


class TxType(str, enum.Enum):
    """How the transaction happened."""

    SPOT = "spot"
    FIAT_PAYMENT = "fiat_payment"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class ValuationState(str, enum.Enum):
    """How far a transaction's currency values have been computed."""

    CREATED = "created"  # original values only
    BASED = "based"  # base.eur and/or base.usd populated
    SECONDARY_ATTACHED = "secondary_attached"


@dataclass(frozen=True)
class TransactionValues:
    """Price, cost and fee of a transaction in one currency, plus the rate used."""

    price: float = 0.0
    cost: float = 0.0
    fee: float = 0.0
    rate: float = 1.0

    @classmethod
    def from_mapping(cls, values: Union["TransactionValues", Mapping[str, Any]]) -> "TransactionValues":
        """Coerce raw values; missing fee becomes 0 and missing/zero rate becomes 1.0."""
        if isinstance(values, TransactionValues):
            values = asdict(values)
        return cls(
            price=coerce_float(values.get("price")),
            cost=coerce_float(values.get("cost")),
            fee=coerce_float(values.get("fee")),
            rate=coerce_float(values.get("rate")) or 1.0,
        )

    def to_dict(self) -> dict[str, float]:
        """Plain projection."""
        return asdict(self)


@dataclass(frozen=True)
class CurrencyValues(TransactionValues):
    """Transaction values tagged with the currency they are expressed in."""

    currency: str = ""

    @classmethod
    def from_mapping(cls, values: Union[TransactionValues, Mapping[str, Any]]) -> "CurrencyValues":
        """Coerce raw values including the currency code."""
        if isinstance(values, TransactionValues):
            values = asdict(values)
        base = TransactionValues.from_mapping(values)
        return cls(
            price=base.price,
            cost=base.cost,
            fee=base.fee,
            rate=base.rate,
            currency=normalize_currency(values.get("currency")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain projection with the currency first."""
        return {
            "currency": self.currency,
            "price": self.price,
            "cost": self.cost,
            "fee": self.fee,
            "rate": self.rate,
        }


@dataclass(frozen=True)
class OriginalValues:
    """Values exactly as entered, in the user's entry currency."""

    currency: str
    price: float
    cost: float
    fee: float = 0.0

    def as_values(self) -> TransactionValues:
        """The original values as a bundle at rate 1.0."""
        return TransactionValues(price=self.price, cost=self.cost, fee=self.fee, rate=1.0)

    def to_dict(self) -> dict[str, Any]:
        """Plain projection."""
        return asdict(self)


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First non-empty value among ``keys`` (snake_case and legacy camelCase)."""
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return default


class Transaction:
    """
    A BTC buy or sell with its value in several currencies.

    Construction never raises: unparsable amounts and prices become 0 and an
    unparsable date becomes an empty string. Such transactions then fail
    ``is_valid()``, which is the gate callers check before persisting.

    Attributes:
        id: Unique identifier (uuid4 unless supplied)
        type: "buy" or "sell" (anything else is kept and fails validation)
        amount: BTC amount
        date: ISO-8601 UTC timestamp, "" when missing or unparsable
        exchange: Source label ("manual", "kraken", ...)
        tx_type: spot, fiat_payment, deposit or withdrawal
        status: Exchange-reported status
        original: Entered values, never mutated
        base: EUR and USD bundles keyed by BaseCurrencyKey
        secondary: Optional bundle in one extra display currency
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        """
        Build a transaction from raw input or a stored projection.

        Args:
            data: Mapping with core facts, ``original`` (or top-level
                currency/price/cost/fee), optional pre-computed ``base`` and
                ``secondary`` bundles and metadata
        """
        data = data or {}

        self.id: str = str(_pick(data, "id", default=uuid4()))
        self.exchange: str = _pick(data, "exchange", default="manual")
        self.type: str = str(_pick(data, "type", default=TransactionType.BUY.value)).lower()
        self.amount: float = coerce_float(data.get("amount"))
        self.date: str = normalize_timestamp(data.get("date"))
        self.tx_type: str = _pick(data, "tx_type", "txType", default=TxType.SPOT.value)
        self.status: str = _pick(data, "status", default="Completed")
        self.payment_method: Optional[str] = _pick(data, "payment_method", "paymentMethod")

        original = data.get("original") or {}
        self.original = OriginalValues(
            currency=normalize_currency(
                _pick(original, "currency") or _pick(data, "currency", default=Currency.EUR.value)
            ),
            price=coerce_float(_pick(original, "price", default=data.get("price"))),
            cost=coerce_float(_pick(original, "cost", default=data.get("cost"))),
            fee=coerce_float(_pick(original, "fee", default=data.get("fee"))),
        )

        self.base: dict[BaseCurrencyKey, TransactionValues] = {
            BaseCurrencyKey.EUR: TransactionValues(),
            BaseCurrencyKey.USD: TransactionValues(),
        }
        self.secondary: Optional[CurrencyValues] = None

        self.pair: Optional[str] = data.get("pair")
        self.base_currency: str = _pick(data, "base_currency", "baseCurrency", default="BTC")
        self.quote_currency: str = _pick(
            data, "quote_currency", "quoteCurrency", default=self.original.currency
        )

        base = data.get("base") or {}
        for key in BaseCurrencyKey:
            if base.get(key.value):
                self.set_base_values(key, base[key.value])

        if data.get("secondary"):
            self.set_secondary_currency(data["secondary"])

    def __repr__(self) -> str:
        """Return string representation of transaction."""
        return (
            f"<Transaction(id={self.id!r}, type={self.type}, amount={self.amount}, "
            f"date={self.date}, original={self.original.price} {self.original.currency})>"
        )

    @property
    def state(self) -> ValuationState:
        """Current valuation state."""
        if self.secondary is not None:
            return ValuationState.SECONDARY_ATTACHED
        if any(values.price for values in self.base.values()):
            return ValuationState.BASED
        return ValuationState.CREATED

    def set_base_values(
        self,
        currency: Union[BaseCurrencyKey, str],
        values: Union[TransactionValues, Mapping[str, Any]],
    ) -> None:
        """
        Overwrite the bundle of one base currency.

        Args:
            currency: BaseCurrencyKey.EUR / BaseCurrencyKey.USD (or "eur"/"usd")
            values: Bundle or mapping with price, cost, fee and rate

        Raises:
            InvalidBaseCurrency: If ``currency`` is not a base key
        """
        key = BaseCurrencyKey.parse(currency)
        if key is None:
            raise InvalidBaseCurrency(currency)
        self.base[key] = TransactionValues.from_mapping(values)

    def set_secondary_currency(
        self, values: Union[CurrencyValues, Mapping[str, Any]]
    ) -> None:
        """
        Attach or replace the secondary currency bundle.

        The currency is not checked against the supported set here; callers
        validate it before converting. Missing fee defaults to 0 and missing
        rate to 1.0.
        """
        self.secondary = CurrencyValues.from_mapping(values)

    def get_values_in_currency(self, currency: str) -> TransactionValues:
        """
        Get the cached values in a specific currency.

        Resolution order: base bundle (EUR/USD), secondary bundle, original
        values at rate 1.0.

        Args:
            currency: Currency code, any case

        Returns:
            Values in the requested currency

        Raises:
            NoValuesAvailable: If the currency has never been computed
        """
        key = BaseCurrencyKey.parse(currency)
        if key is not None:
            return self.base[key]

        code = normalize_currency(currency)
        if self.secondary is not None and self.secondary.currency == code:
            return self.secondary

        if code and self.original.currency == code:
            return self.original.as_values()

        raise NoValuesAvailable(str(currency))

    def convert_to(self, target_currency: str, rate: Any) -> None:
        """
        Compute the secondary bundle from the original values.

        Base currencies are skipped; they are only set via ``set_base_values``.
        The caller is responsible for sourcing ``rate`` (original -> target).
        """
        if BaseCurrencyKey.parse(target_currency) is not None:
            return

        rate = coerce_float(rate)
        self.set_secondary_currency(
            CurrencyValues(
                currency=normalize_currency(target_currency),
                price=self.original.price * rate,
                cost=self.original.cost * rate,
                fee=self.original.fee * rate,
                rate=rate,
            )
        )

    def validation_errors(self) -> list[str]:
        """Reasons this transaction is invalid (empty when valid)."""
        errors = []
        if self.amount <= 0:
            errors.append("amount must be positive")
        if not self.date or parse_timestamp(self.date) is None:
            errors.append("date is missing or unparsable")
        if self.type not in (TransactionType.BUY.value, TransactionType.SELL.value):
            errors.append(f"type must be buy or sell, got {self.type!r}")
        if not self.original.price:
            errors.append("original price is missing")
        if Currency.parse(self.original.currency) is None:
            errors.append(f"original currency {self.original.currency!r} is not supported")
        if not self.base[BaseCurrencyKey.EUR].price and not self.base[BaseCurrencyKey.USD].price:
            errors.append("no base currency values computed")
        return errors

    def is_valid(self) -> bool:
        """True when the transaction can be persisted."""
        return not self.validation_errors()

    def to_dict(self) -> dict[str, Any]:
        """
        Lossless plain-data projection.

        Everything computed so far is included as-is; ``from_dict`` restores it
        without recomputing anything.
        """
        return {
            "id": self.id,
            "exchange": self.exchange,
            "type": self.type,
            "amount": self.amount,
            "date": self.date,
            "tx_type": self.tx_type,
            "status": self.status,
            "payment_method": self.payment_method,
            "original": self.original.to_dict(),
            "base": {key.value: values.to_dict() for key, values in self.base.items()},
            "secondary": self.secondary.to_dict() if self.secondary else None,
            "pair": self.pair,
            "base_currency": self.base_currency,
            "quote_currency": self.quote_currency,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Transaction":
        """Rebuild a transaction from ``to_dict`` output (or a legacy camelCase record)."""
        return cls(data)
