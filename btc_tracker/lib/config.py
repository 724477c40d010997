"""Application configuration constants."""

import os

# EUR rates mirrored as flat legacy fields (eur_usd, eur_pln, ...)
LEGACY_RATE_CURRENCIES = ("USD", "PLN", "GBP", "JPY", "CHF", "BRL", "INR")

# Rate freshness
RATES_MAX_AGE_SECONDS = 3600  # rates older than 1 hour need a refresh
PRICE_UPDATE_INTERVAL_SECONDS = 300  # scheduler cadence (5 minutes)

# Returned by the lenient legacy lookup when no rate resolves
FALLBACK_EXCHANGE_RATE = 1.0

# External rate sources (used by the refresh collaborator only)
EXCHANGE_RATE_API_URL = os.getenv(
    "BTC_TRACKER_RATES_API_URL", "https://api.exchangerate-api.com/v4/latest"
)
BTC_PRICE_API_URL = os.getenv(
    "BTC_TRACKER_PRICE_API_URL", "https://api.coingecko.com/api/v3/simple/price"
)
DEFAULT_HTTP_TIMEOUT = 10  # seconds
HTTP_MAX_RETRIES = 3
