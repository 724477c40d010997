"""Rate store: latest exchange rates and BTC price anchored at EUR and USD."""

import threading
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from btc_tracker.lib.config import FALLBACK_EXCHANGE_RATE, RATES_MAX_AGE_SECONDS
from btc_tracker.lib.errors import MissingRateError, UnsupportedCurrencyPair
from btc_tracker.lib.logging_config import get_logger
from btc_tracker.lib.validators import normalize_currency, validate_rate
from btc_tracker.models.currency import Currency
from btc_tracker.models.exchange_rate import RateSnapshot, clean_rates

logger = get_logger(__name__)


class RateStore:
    """
    Single source of truth for exchange rates and the BTC price.

    The store holds one immutable ``RateSnapshot``. Updates build a new
    snapshot and swap the reference under a writer lock; readers grab the
    current reference once per call and never block.

    Example:
        store = RateStore()
        store.update_exchange_rates({"USD": 1.14, "GBP": 0.843}, {"EUR": 0.874, "GBP": 0.737})
        store.get_rate("GBP", "USD")
    """

    def __init__(self, snapshot: Optional[RateSnapshot] = None) -> None:
        """Initialize an empty store, or one seeded with ``snapshot``."""
        self._snapshot = snapshot or RateSnapshot()
        self._write_lock = threading.Lock()
        self.fallback_count = 0

    @property
    def snapshot(self) -> RateSnapshot:
        """Current snapshot."""
        return self._snapshot

    def load_snapshot(self, snapshot: RateSnapshot) -> None:
        """Replace the whole state, e.g. with a snapshot restored via ``RateSnapshot.from_legacy``."""
        with self._write_lock:
            self._snapshot = snapshot
        logger.info(f"Rate snapshot loaded (updated at {snapshot.updated_at})")

    def update_exchange_rates(
        self,
        eur_rates: Mapping[str, Any],
        usd_rates: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Replace both rate maps in one atomic swap.

        The maps are replaced, not merged: callers supply the full set of
        rates they want supported going forward.

        Args:
            eur_rates: EUR -> X rates
            usd_rates: USD -> X rates

        Raises:
            InvalidRateError: If any supported rate is not a positive finite
                number. The previous snapshot stays in place.
        """
        rates_from_eur = clean_rates(Currency.EUR, eur_rates)
        rates_from_usd = clean_rates(Currency.USD, usd_rates)

        with self._write_lock:
            self._snapshot = self._snapshot.with_rates(
                rates_from_eur, rates_from_usd, datetime.now(timezone.utc)
            )

        logger.info(
            f"Exchange rates updated: {len(rates_from_eur)} EUR rates, "
            f"{len(rates_from_usd)} USD rates"
        )

    def update_btc_price(self, price_eur: Any, price_usd: Any = None) -> None:
        """
        Set the BTC price in both base currencies together.

        Args:
            price_eur: BTC price in EUR
            price_usd: BTC price in USD as reported by the source. When
                omitted, USD is derived from EUR at read time so it follows
                later rate updates.

        Raises:
            InvalidRateError: If a supplied price is not a positive finite number
        """
        eur_price = validate_rate("BTC/EUR", price_eur)
        usd_price = validate_rate("BTC/USD", price_usd) if price_usd is not None else None

        with self._write_lock:
            self._snapshot = self._snapshot.with_btc_price(
                eur_price, usd_price, datetime.now(timezone.utc)
            )

        logger.info(f"BTC price updated to {eur_price} EUR / {usd_price or 'derived'} USD")

    def get_rate(self, from_currency: str, to_currency: str) -> float:
        """
        Get the rate between two supported currencies.

        Args:
            from_currency: Source currency code (any case)
            to_currency: Target currency code (any case)

        Returns:
            Positive rate; 1.0 for identical codes

        Raises:
            UnsupportedCurrencyPair: If either code is outside the supported set
            MissingRateError: If both are supported but no rate is loaded
        """
        source = Currency.parse(from_currency)
        target = Currency.parse(to_currency)
        if source is None or target is None:
            raise UnsupportedCurrencyPair(str(from_currency), str(to_currency))

        rate = self._snapshot.resolve(source.value, target.value)
        if rate is None:
            raise MissingRateError(source.value, target.value)
        return rate

    def get_exchange_rate(self, from_currency: str, to_currency: str) -> float:
        """
        Lenient legacy lookup that never raises.

        Resolves like ``get_rate`` but accepts any code and returns 1.0 when
        no rate is available, so dependent calculations keep running while a
        refresh is in progress. Each fallback is logged and counted in
        ``fallback_count``.
        """
        source = normalize_currency(from_currency)
        target = normalize_currency(to_currency)

        rate = self._snapshot.resolve(source, target)
        if rate is not None:
            return rate

        self.fallback_count += 1
        logger.warning(
            f"No exchange rate found for {source} to {target}, using {FALLBACK_EXCHANGE_RATE} "
            f"(fallback #{self.fallback_count})"
        )
        return FALLBACK_EXCHANGE_RATE

    def get_btc_price(self, currency: str = "EUR") -> float:
        """
        Get the BTC price in any supported currency.

        Args:
            currency: Target currency code

        Returns:
            BTC price, or 0.0 while no price has been set

        Raises:
            UnsupportedCurrencyPair: If the currency is not supported
            MissingRateError: If the EUR -> currency rate is not loaded
        """
        target = Currency.parse(currency)
        if target is None:
            raise UnsupportedCurrencyPair(Currency.EUR.value, str(currency))

        snapshot = self._snapshot
        if not snapshot.btc_price_eur:
            logger.debug("BTC price requested before the first price update")
            return 0.0

        if target is Currency.EUR:
            return snapshot.btc_price_eur
        if target is Currency.USD and snapshot.btc_price_usd:
            return snapshot.btc_price_usd

        rate = snapshot.resolve(Currency.EUR.value, target.value)
        if rate is None:
            raise MissingRateError(Currency.EUR.value, target.value)
        return snapshot.btc_price_eur * rate

    def legacy_fields(self) -> dict[str, Optional[float]]:
        """Flat ``eur_xxx`` fields for older consumers."""
        return self._snapshot.legacy_fields()

    def get_all_rates(self) -> dict[str, dict[str, float]]:
        """Copy of both rate maps keyed by base currency."""
        snapshot = self._snapshot
        return {
            Currency.EUR.value: dict(snapshot.rates_from_eur),
            Currency.USD.value: dict(snapshot.rates_from_usd),
        }

    def get_rates_last_updated(self) -> Optional[dict[str, Any]]:
        """
        Describe the age of the current snapshot.

        Returns:
            Dict with ``timestamp``, ``seconds_ago`` and ``minutes_ago``, or
            None if nothing was ever loaded
        """
        updated_at = self._snapshot.updated_at
        if updated_at is None:
            return None

        seconds_ago = int((datetime.now(timezone.utc) - updated_at).total_seconds())
        return {
            "timestamp": updated_at.isoformat(),
            "seconds_ago": seconds_ago,
            "minutes_ago": seconds_ago // 60,
        }

    def needs_update(self, max_age_seconds: int = RATES_MAX_AGE_SECONDS) -> bool:
        """True when no rates are loaded or the snapshot is older than ``max_age_seconds``."""
        if self._snapshot.is_empty:
            return True
        last_updated = self.get_rates_last_updated()
        if last_updated is None:
            return True
        return bool(last_updated["seconds_ago"] > max_age_seconds)
