"""Unit tests for RateStore."""

import math
import threading
from datetime import timedelta

import pytest
from freezegun import freeze_time

from btc_tracker.lib.errors import InvalidRateError, MissingRateError, UnsupportedCurrencyPair
from btc_tracker.models.exchange_rate import RateSnapshot
from btc_tracker.services.rate_store import RateStore
from conftest import BASE_CURRENCIES, SUPPORTED_CURRENCIES, TEST_EUR_RATES, TEST_USD_RATES


@pytest.mark.unit
class TestUpdateExchangeRates:
    """Test suite for update_exchange_rates."""

    def test_new_store_is_empty(self, empty_store):
        """A fresh store has no rates and no price."""
        assert empty_store.snapshot.is_empty
        assert empty_store.get_all_rates() == {"EUR": {}, "USD": {}}
        assert empty_store.get_rates_last_updated() is None

    def test_update_loads_both_maps(self, rate_store):
        """Both rate maps are available after an update."""
        all_rates = rate_store.get_all_rates()
        assert all_rates["EUR"] == TEST_EUR_RATES
        assert all_rates["USD"] == TEST_USD_RATES

    def test_update_replaces_instead_of_merging(self, rate_store):
        """Currencies missing from a new update are gone afterwards."""
        rate_store.update_exchange_rates({"USD": 1.1}, {"EUR": 0.9})

        assert rate_store.get_all_rates() == {"EUR": {"USD": 1.1}, "USD": {"EUR": 0.9}}
        with pytest.raises(MissingRateError):
            rate_store.get_rate("EUR", "GBP")

    def test_update_normalizes_codes(self, empty_store):
        """Lower-case codes are stored upper-case."""
        empty_store.update_exchange_rates({"usd": 1.1, " gbp ": 0.85}, {"eur": 0.9})

        assert empty_store.get_all_rates()["EUR"] == {"USD": 1.1, "GBP": 0.85}

    def test_update_drops_unsupported_codes(self, empty_store):
        """Codes outside the supported set are ignored."""
        empty_store.update_exchange_rates({"USD": 1.1, "NOK": 11.5, "SEK": 11.2}, {"CAD": 1.36})

        assert empty_store.get_all_rates() == {"EUR": {"USD": 1.1}, "USD": {}}

    @pytest.mark.parametrize("bad_rate", [0, -1.2, float("nan"), float("inf"), "abc", None])
    def test_update_rejects_invalid_rates(self, rate_store, bad_rate):
        """Unusable rates reject the whole update and keep the last good rates."""
        before = rate_store.snapshot

        with pytest.raises(InvalidRateError):
            rate_store.update_exchange_rates({"USD": 1.2, "GBP": bad_rate}, {"EUR": 0.83})

        assert rate_store.snapshot is before
        assert rate_store.get_rate("EUR", "USD") == 1.14

    def test_update_without_usd_rates(self, empty_store):
        """USD map may be omitted; USD-based lookups then go through EUR."""
        empty_store.update_exchange_rates({"USD": 1.25, "GBP": 0.85})

        assert empty_store.get_all_rates()["USD"] == {}
        assert empty_store.get_rate("USD", "GBP") == pytest.approx(0.85 / 1.25)

    def test_update_swaps_snapshot_atomically(self, empty_store):
        """Readers never see one map from an old update and one from a new one."""
        errors = []
        stop = threading.Event()

        def writer():
            for generation in range(1, 300):
                rate = 1.0 + generation / 1000
                empty_store.update_exchange_rates({"USD": rate}, {"EUR": 1 / rate})
            stop.set()

        def reader():
            while not stop.is_set():
                snapshot = empty_store.snapshot
                eur_usd = snapshot.rates_from_eur.get("USD")
                usd_eur = snapshot.rates_from_usd.get("EUR")
                if eur_usd is None and usd_eur is None:
                    continue
                if eur_usd is None or usd_eur is None or not math.isclose(eur_usd * usd_eur, 1.0):
                    errors.append((eur_usd, usd_eur))

        threads = [threading.Thread(target=reader) for _ in range(3)]
        threads.append(threading.Thread(target=writer))
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert errors == []


@pytest.mark.unit
class TestGetRate:
    """Test suite for the strict get_rate lookup."""

    def test_same_currency_is_one(self, rate_store):
        """Rate to itself is always exactly 1."""
        for currency in SUPPORTED_CURRENCIES:
            assert rate_store.get_rate(currency, currency) == 1

    def test_same_currency_is_one_without_rates(self, empty_store):
        """Identity needs no loaded rates."""
        assert empty_store.get_rate("GBP", "gbp") == 1

    def test_direct_from_base(self, rate_store):
        """EUR -> X and USD -> X use the stored maps directly."""
        assert rate_store.get_rate("EUR", "JPY") == 164.14
        assert rate_store.get_rate("USD", "GBP") == 0.737
        assert rate_store.get_rate("USD", "EUR") == 0.874

    def test_inverted_to_base(self, rate_store):
        """X -> EUR and X -> USD invert the stored base rate."""
        assert rate_store.get_rate("PLN", "EUR") == pytest.approx(1 / 4.28)
        assert rate_store.get_rate("CHF", "USD") == pytest.approx(1 / 0.82)

    def test_cross_rate_via_eur(self, rate_store):
        """Non-base pairs compose through EUR."""
        assert rate_store.get_rate("GBP", "JPY") == pytest.approx((1 / 0.843) * 164.14)

    def test_cross_rate_falls_back_to_usd(self, empty_store):
        """When EUR lacks a leg, the USD map is used."""
        empty_store.update_exchange_rates({"USD": 1.1}, {"EUR": 0.9, "GBP": 0.75, "JPY": 150.0})

        assert empty_store.get_rate("GBP", "JPY") == pytest.approx(150.0 / 0.75)
        assert empty_store.get_rate("EUR", "GBP") == pytest.approx(0.75 / 0.9)

    def test_case_insensitive(self, rate_store):
        """Codes are compared case-insensitively."""
        assert rate_store.get_rate("eur", "usd") == rate_store.get_rate("EUR", "USD")

    def test_reverse_rates_consistent(self, rate_store):
        """rate(A, B) * rate(B, A) stays within 1% of 1 for every pair."""
        for source in SUPPORTED_CURRENCIES:
            for target in SUPPORTED_CURRENCIES:
                product = rate_store.get_rate(source, target) * rate_store.get_rate(target, source)
                assert product == pytest.approx(1.0, rel=0.01), (source, target)

    def test_all_rates_positive_and_finite(self, rate_store):
        """Every supported pair resolves to a positive finite rate."""
        for source in SUPPORTED_CURRENCIES:
            for target in SUPPORTED_CURRENCIES:
                rate = rate_store.get_rate(source, target)
                assert rate > 0
                assert math.isfinite(rate)

    @pytest.mark.parametrize(
        "source,target", [("XYZ", "EUR"), ("EUR", "ABC"), ("INVALID", "ALSO_INVALID"), ("NOK", "SEK")]
    )
    def test_unsupported_pair_raises(self, rate_store, source, target):
        """Unknown codes raise UnsupportedCurrencyPair."""
        with pytest.raises(UnsupportedCurrencyPair, match="Unsupported currency pair"):
            rate_store.get_rate(source, target)

    def test_missing_rate_raises(self, empty_store):
        """Supported but not yet loaded pairs raise MissingRateError."""
        with pytest.raises(MissingRateError, match="no conversion rate available"):
            empty_store.get_rate("EUR", "USD")

    def test_missing_rate_is_unsupported_pair(self, empty_store):
        """Callers catching UnsupportedCurrencyPair also catch missing rates."""
        with pytest.raises(UnsupportedCurrencyPair):
            empty_store.get_rate("GBP", "JPY")


@pytest.mark.unit
class TestGetExchangeRate:
    """Test suite for the lenient legacy lookup."""

    def test_resolves_like_get_rate(self, rate_store):
        """Available rates are returned unchanged."""
        assert rate_store.get_exchange_rate("EUR", "USD") == 1.14
        assert rate_store.get_exchange_rate("GBP", "JPY") == rate_store.get_rate("GBP", "JPY")
        assert rate_store.fallback_count == 0

    def test_missing_rate_falls_back_to_one(self, rate_store):
        """EUR/USD missing from every source yields 1.0 instead of raising."""
        rate_store.update_exchange_rates({"GBP": 0.843}, {"GBP": 0.737})

        assert rate_store.get_exchange_rate("EUR", "USD") == 1.0
        assert rate_store.get_exchange_rate("USD", "EUR") == 1.0

    def test_fallback_is_counted_and_logged(self, empty_store, caplog):
        """Each fallback increments the counter and logs a warning."""
        with caplog.at_level("WARNING"):
            empty_store.get_exchange_rate("EUR", "PLN")
            empty_store.get_exchange_rate("PLN", "GBP")

        assert empty_store.fallback_count == 2
        assert "No exchange rate found for EUR to PLN" in caplog.text

    def test_unknown_codes_do_not_raise(self, rate_store):
        """The lenient path accepts any code."""
        assert rate_store.get_exchange_rate("XYZ", "EUR") == 1.0
        assert rate_store.get_exchange_rate("same", "SAME") == 1.0


@pytest.mark.unit
class TestBTCPrice:
    """Test suite for BTC price lookups."""

    def test_price_is_zero_before_first_update(self, empty_store):
        """No price set yet yields 0."""
        assert empty_store.get_btc_price("EUR") == 0.0
        assert empty_store.get_btc_price("JPY") == 0.0

    def test_eur_price_returned_directly(self, rate_store):
        """EUR price is authoritative."""
        assert rate_store.get_btc_price("EUR") == 50000
        assert rate_store.get_btc_price() == 50000

    def test_usd_price_derived_from_eur(self, rate_store):
        """Without a USD price, USD = EUR price * EUR/USD."""
        assert rate_store.get_btc_price("USD") == pytest.approx(57000)

    def test_usd_price_used_when_supplied(self, rate_store):
        """An explicit USD price wins over the derived one."""
        rate_store.update_btc_price(50000, 56500)

        assert rate_store.get_btc_price("usd") == 56500

    def test_derived_usd_price_follows_rate_updates(self):
        """A derived USD price tracks the current EUR/USD rate."""
        store = RateStore()
        store.update_exchange_rates({"USD": 1.14}, {})
        store.update_btc_price(50000)

        store.update_exchange_rates({"USD": 1.20}, {})

        assert store.snapshot.btc_price_usd is None
        assert store.get_btc_price("USD") == pytest.approx(60000)
        assert store.get_btc_price("USD") == pytest.approx(50000 * store.get_rate("EUR", "USD"))

    def test_supplied_usd_price_survives_rate_updates(self, rate_store):
        """A source-reported USD price is not recomputed from rates."""
        rate_store.update_btc_price(50000, 56500)

        rate_store.update_exchange_rates({"USD": 1.20}, {})

        assert rate_store.get_btc_price("USD") == 56500

    def test_jpy_price_scales_with_rate(self):
        """50,000 EUR at EUR/JPY 164 is about 8.2M JPY."""
        store = RateStore()
        store.update_exchange_rates({"USD": 1.14, "JPY": 164}, {"EUR": 0.874, "JPY": 143.45})
        store.update_btc_price(50000)

        assert store.get_btc_price("JPY") == pytest.approx(8_200_000)

    def test_relative_magnitudes(self, rate_store):
        """Small-unit currencies scale up, near-parity ones stay close to EUR."""
        eur_price = 50000
        for currency in SUPPORTED_CURRENCIES:
            price = rate_store.get_btc_price(currency)
            assert price > 0
            assert math.isfinite(price)
            if currency in BASE_CURRENCIES or currency in ("GBP", "CHF"):
                assert eur_price * 0.5 < price < eur_price * 2.5
            elif currency == "JPY":
                assert eur_price * 50 < price < eur_price * 300
            else:
                assert eur_price * 0.1 < price < eur_price * 200

    def test_unsupported_currency_raises(self, rate_store):
        """Unknown codes raise UnsupportedCurrencyPair."""
        with pytest.raises(UnsupportedCurrencyPair):
            rate_store.get_btc_price("NOK")

    @pytest.mark.parametrize("bad_price", [0, -50000, float("nan")])
    def test_invalid_price_rejected(self, rate_store, bad_price):
        """Unusable prices are rejected and the last price kept."""
        with pytest.raises(InvalidRateError):
            rate_store.update_btc_price(bad_price)

        assert rate_store.get_btc_price("EUR") == 50000


@pytest.mark.unit
class TestLegacyFieldsAndFreshness:
    """Test suite for legacy projections and staleness tracking."""

    def test_legacy_fields_mirror_eur_map(self, rate_store):
        """Flat eur_xxx fields reflect the EUR map."""
        fields = rate_store.legacy_fields()

        assert fields["eur_usd"] == 1.14
        assert fields["eur_pln"] == 4.28
        assert fields["eur_gbp"] == 0.843
        assert fields["eur_jpy"] == 164.14
        assert fields["eur_chf"] == 0.938
        assert fields["eur_brl"] == 6.43

    def test_legacy_fields_follow_updates(self, rate_store):
        """The projection never drifts from the structured map."""
        rate_store.update_exchange_rates({"USD": 1.2}, {})

        fields = rate_store.legacy_fields()
        assert fields["eur_usd"] == 1.2
        assert fields["eur_pln"] is None

    def test_load_snapshot(self, empty_store):
        """A restored snapshot becomes the current state."""
        empty_store.load_snapshot(RateSnapshot.from_legacy({"eurUsd": 1.1, "priceEUR": 40000}))

        assert empty_store.get_rate("EUR", "USD") == 1.1
        assert empty_store.get_btc_price("USD") == pytest.approx(44000)

    def test_needs_update_when_empty(self, empty_store):
        """An empty store always needs an update."""
        assert empty_store.needs_update() is True

    def test_needs_update_after_max_age(self):
        """Rates go stale after the configured age."""
        store = RateStore()
        with freeze_time("2025-01-01 12:00:00") as frozen:
            store.update_exchange_rates({"USD": 1.1}, {"EUR": 0.9})
            assert store.needs_update() is False

            frozen.tick(timedelta(minutes=30))
            assert store.needs_update() is False

            frozen.tick(timedelta(minutes=31))
            assert store.needs_update() is True

    def test_rates_last_updated(self):
        """Age information is reported in seconds and minutes."""
        store = RateStore()
        with freeze_time("2025-01-01 12:00:00") as frozen:
            store.update_exchange_rates({"USD": 1.1}, {"EUR": 0.9})
            frozen.tick(timedelta(seconds=150))

            info = store.get_rates_last_updated()

        assert info["timestamp"] == "2025-01-01T12:00:00+00:00"
        assert info["seconds_ago"] == 150
        assert info["minutes_ago"] == 2
