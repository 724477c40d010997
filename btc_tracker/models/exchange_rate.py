"""
Exchange rate snapshot model.

A snapshot is the complete, immutable state of the rate store at one point
in time: EUR-anchored rates, USD-anchored rates and the BTC price in both
base currencies. The store replaces its snapshot as a whole, so readers
always see a consistent set of rates.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional

from btc_tracker.lib.config import LEGACY_RATE_CURRENCIES
from btc_tracker.lib.validators import normalize_currency, parse_timestamp, validate_rate
from btc_tracker.models.currency import Currency

logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, float] = MappingProxyType({})


def clean_rates(base: Currency, rates: Optional[Mapping[Any, Any]]) -> dict[str, float]:
    """
    Normalize a raw ``base -> X`` rate map.

    Codes are upper-cased; codes outside the supported set and the base's
    own code are dropped. Every remaining value must be a positive finite
    number.

    Raises:
        InvalidRateError: If any supported rate is unusable
    """
    cleaned: dict[str, float] = {}
    if not rates:
        return cleaned

    for raw_code, raw_rate in rates.items():
        currency = Currency.parse(raw_code)
        if currency is None:
            logger.debug(f"Ignoring unsupported currency {raw_code!r} in {base.value} rates")
            continue
        if currency is base:
            continue
        cleaned[currency.value] = validate_rate(currency.value, raw_rate)

    return cleaned


@dataclass(frozen=True)
class RateSnapshot:
    """
    Immutable exchange rate state anchored at EUR and USD.

    Attributes:
        rates_from_eur: EUR -> X rates keyed by upper-case currency code
        rates_from_usd: USD -> X rates keyed by upper-case currency code
        btc_price_eur: BTC price in EUR (authoritative), None until fetched
        btc_price_usd: BTC price in USD, None until fetched
        updated_at: When rates or prices were last replaced
    """

    rates_from_eur: Mapping[str, float] = field(default_factory=lambda: _EMPTY)
    rates_from_usd: Mapping[str, float] = field(default_factory=lambda: _EMPTY)
    btc_price_eur: Optional[float] = None
    btc_price_usd: Optional[float] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Freeze the rate maps so a published snapshot can't drift."""
        object.__setattr__(self, "rates_from_eur", MappingProxyType(dict(self.rates_from_eur)))
        object.__setattr__(self, "rates_from_usd", MappingProxyType(dict(self.rates_from_usd)))

    @property
    def is_empty(self) -> bool:
        """True until the first rate update arrives."""
        return not self.rates_from_eur and not self.rates_from_usd

    def rates_from(self, base: str) -> Mapping[str, float]:
        """Rate map anchored at ``base`` (EUR or USD), empty for anything else."""
        if base == Currency.EUR.value:
            return self.rates_from_eur
        if base == Currency.USD.value:
            return self.rates_from_usd
        return _EMPTY

    def resolve(self, from_currency: str, to_currency: str) -> Optional[float]:
        """
        Resolve the rate between two normalized codes.

        Order: identity, direct lookup when ``from`` is a base, inverted
        lookup when ``to`` is a base, then a cross rate through EUR and
        finally through USD.

        Returns:
            The rate, or None when nothing in this snapshot resolves it
        """
        if from_currency == to_currency:
            return 1.0

        if from_currency in (Currency.EUR.value, Currency.USD.value):
            direct = self.rates_from(from_currency).get(to_currency)
            if direct:
                return direct
        elif to_currency in (Currency.EUR.value, Currency.USD.value):
            inverse = self.rates_from(to_currency).get(from_currency)
            if inverse:
                return 1.0 / inverse

        return self._cross_rate(from_currency, to_currency)

    def _cross_rate(self, from_currency: str, to_currency: str) -> Optional[float]:
        """Compose ``from -> base -> to`` through EUR, then USD."""
        for base in (Currency.EUR.value, Currency.USD.value):
            rates = self.rates_from(base)
            base_to_from = 1.0 if from_currency == base else rates.get(from_currency)
            base_to_target = 1.0 if to_currency == base else rates.get(to_currency)
            if base_to_from and base_to_target:
                return (1.0 / base_to_from) * base_to_target
        return None

    def legacy_fields(self) -> dict[str, Optional[float]]:
        """
        Project the EUR map onto the flat legacy fields.

        Returns:
            ``{"eur_usd": ..., "eur_pln": ..., ...}``, None where no rate is loaded
        """
        return {
            f"eur_{code.lower()}": self.rates_from_eur.get(code) for code in LEGACY_RATE_CURRENCIES
        }

    def with_rates(
        self,
        rates_from_eur: Mapping[str, float],
        rates_from_usd: Mapping[str, float],
        updated_at: datetime,
    ) -> "RateSnapshot":
        """Copy with both rate maps replaced."""
        return replace(
            self,
            rates_from_eur=rates_from_eur,
            rates_from_usd=rates_from_usd,
            updated_at=updated_at,
        )

    def with_btc_price(
        self, price_eur: float, price_usd: Optional[float], updated_at: datetime
    ) -> "RateSnapshot":
        """Copy with both BTC prices replaced."""
        return replace(
            self, btc_price_eur=price_eur, btc_price_usd=price_usd, updated_at=updated_at
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain projection including the legacy flat fields."""
        data: dict[str, Any] = {
            "rates_from_eur": dict(self.rates_from_eur),
            "rates_from_usd": dict(self.rates_from_usd),
            "btc_price_eur": self.btc_price_eur,
            "btc_price_usd": self.btc_price_usd,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        data.update(self.legacy_fields())
        return data

    @classmethod
    def from_legacy(cls, data: Mapping[str, Any]) -> "RateSnapshot":
        """
        Rebuild a snapshot from a stored payload.

        Understands the structured layout (``rates_from_eur`` / ``rates_from_usd``
        or ``exchangeRates: {"EUR": ..., "USD": ...}``) as well as older payloads
        that only carry flat fields such as ``eurUsd`` / ``eur_pln`` and
        ``priceEUR`` / ``priceUSD``. Flat fields fill gaps in the EUR map but
        never override it.

        Raises:
            InvalidRateError: If a supported rate or price is unusable
        """
        nested = data.get("exchangeRates") or {}
        eur_raw = dict(data.get("rates_from_eur") or nested.get("EUR") or {})
        usd_raw = dict(data.get("rates_from_usd") or nested.get("USD") or {})

        for code in LEGACY_RATE_CURRENCIES:
            camel = f"eur{code.capitalize()}"
            snake = f"eur_{code.lower()}"
            legacy_value = data.get(snake, data.get(camel))
            has_code = any(normalize_currency(key) == code for key in eur_raw)
            if legacy_value is not None and not has_code:
                eur_raw[code] = legacy_value

        price_eur = data.get("btc_price_eur", data.get("priceEUR", data.get("price")))
        price_usd = data.get("btc_price_usd", data.get("priceUSD"))

        return cls(
            rates_from_eur=clean_rates(Currency.EUR, eur_raw),
            rates_from_usd=clean_rates(Currency.USD, usd_raw),
            btc_price_eur=validate_rate("BTC/EUR", price_eur) if price_eur else None,
            btc_price_usd=validate_rate("BTC/USD", price_usd) if price_usd else None,
            updated_at=parse_timestamp(data.get("updated_at", data.get("timestamp"))),
        )
