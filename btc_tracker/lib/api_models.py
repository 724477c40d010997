"""Pydantic models for rate and price API responses."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ExchangeRateResponse(BaseModel):
    """exchangerate-api.com ``/v4/latest/{base}`` response."""

    base: str
    date: Optional[str] = None
    rates: dict[str, float]

    @field_validator("base")
    @classmethod
    def normalize_base(cls, v: str) -> str:
        """Upper-case the base currency code."""
        return v.strip().upper()

    @field_validator("rates")
    @classmethod
    def validate_rates_not_empty(cls, v: dict[str, float]) -> dict[str, float]:
        """Ensure the response actually carries rates."""
        if not v:
            raise ValueError("Rates cannot be empty")
        return v


class BitcoinPrice(BaseModel):
    """BTC price in both base currencies."""

    eur: float
    usd: Optional[float] = None

    @field_validator("eur", "usd")
    @classmethod
    def validate_price_positive(cls, v: Optional[float]) -> Optional[float]:
        """Ensure prices are positive."""
        if v is not None and v <= 0:
            raise ValueError(f"Price must be positive, got {v}")
        return v


class BtcPriceResponse(BaseModel):
    """CoinGecko ``/simple/price?ids=bitcoin&vs_currencies=eur,usd`` response."""

    bitcoin: BitcoinPrice = Field(...)
