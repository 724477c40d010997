"""Rate refresh collaborator: fetches rates and the BTC price and pushes them into the store."""

import asyncio
from typing import Any, Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from btc_tracker.lib.api_client import APIClient
from btc_tracker.lib.api_models import BitcoinPrice, BtcPriceResponse, ExchangeRateResponse
from btc_tracker.lib.config import BTC_PRICE_API_URL, EXCHANGE_RATE_API_URL
from btc_tracker.lib.errors import APIConnectionError, BtcTrackerError
from btc_tracker.lib.logging_config import get_logger
from btc_tracker.models.currency import Currency
from btc_tracker.services.rate_store import RateStore

logger = get_logger(__name__)


class RateRefresher:
    """
    Keeps a RateStore up to date from external sources.

    Failures never touch the store: it keeps serving its last good snapshot
    until a later refresh succeeds.
    """

    def __init__(
        self,
        store: RateStore,
        api_client: Optional[APIClient] = None,
        rates_url: str = EXCHANGE_RATE_API_URL,
        price_url: str = BTC_PRICE_API_URL,
    ) -> None:
        """
        Initialize rate refresher.

        Args:
            store: Store that receives the fetched rates
            api_client: HTTP client (default: a new APIClient)
            rates_url: Base URL of the latest-rates endpoint (``{url}/{BASE}``)
            price_url: URL of the BTC simple-price endpoint
        """
        self.store = store
        self.api_client = api_client or APIClient(api_name="exchange rates")
        self.rates_url = rates_url.rstrip("/")
        self.price_url = price_url

    @retry(
        stop=(stop_after_attempt(3) | stop_after_delay(30)),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((APIConnectionError, asyncio.TimeoutError)),
        reraise=True,
    )
    async def _fetch_json(self, url: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Fetch a JSON document with retry logic.

        Raises:
            APIConnectionError: If the source keeps failing
            APIRateLimitError: If the source rate limits us
        """
        async with self.api_client as client:
            return await client.get(url, params=params)

    async def fetch_base_rates(self) -> tuple[dict[str, float], dict[str, float]]:
        """
        Fetch EUR- and USD-anchored rates for the supported currencies.

        Returns:
            Tuple of (eur_rates, usd_rates)
        """
        responses = []
        for base in (Currency.EUR, Currency.USD):
            payload = await self._fetch_json(f"{self.rates_url}/{base.value}")
            responses.append(ExchangeRateResponse.model_validate(payload))

        eur_response, usd_response = responses
        return self._supported_only(eur_response.rates), self._supported_only(usd_response.rates)

    async def fetch_btc_price(self) -> BitcoinPrice:
        """Fetch the BTC price in EUR and USD."""
        payload = await self._fetch_json(
            self.price_url, params={"ids": "bitcoin", "vs_currencies": "eur,usd"}
        )
        return BtcPriceResponse.model_validate(payload).bitcoin

    @staticmethod
    def _supported_only(rates: dict[str, float]) -> dict[str, float]:
        """Keep only currencies the store can resolve."""
        return {code: rate for code, rate in rates.items() if Currency.parse(code) is not None}

    async def refresh(self) -> bool:
        """
        Fetch rates and price and push them into the store.

        Returns:
            True on success, False if any source failed
        """
        try:
            eur_rates, usd_rates = await self.fetch_base_rates()
            self.store.update_exchange_rates(eur_rates, usd_rates)

            price = await self.fetch_btc_price()
            self.store.update_btc_price(price.eur, price.usd)

        except (BtcTrackerError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Rate refresh failed, keeping last known rates: {e}")
            return False

        logger.info("Exchange rates and BTC price refreshed")
        return True

    async def ensure_rates(self) -> bool:
        """Refresh only when the store's rates are missing or stale."""
        if self.store.needs_update():
            return await self.refresh()
        return True
