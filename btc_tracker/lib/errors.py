"""Custom exception classes for btc-tracker."""


class BtcTrackerError(Exception):
    """Base exception for all btc-tracker errors."""

    def __init__(self, message: str):
        """Initialize with error message."""
        self.message = message
        super().__init__(message)


class CurrencyError(BtcTrackerError):
    """Currency code or exchange rate errors."""

    pass


class UnsupportedCurrencyPair(CurrencyError):
    """Currency pair contains a code outside the supported set."""

    def __init__(self, from_currency: str, to_currency: str, details: str = ""):
        """
        Initialize with the offending pair.

        Args:
            from_currency: Source currency code as given by the caller
            to_currency: Target currency code as given by the caller
            details: Optional extra explanation appended to the message
        """
        self.from_currency = from_currency
        self.to_currency = to_currency
        message = f"Unsupported currency pair: {from_currency}/{to_currency}"
        if details:
            message += f" ({details})"
        super().__init__(message)


class MissingRateError(UnsupportedCurrencyPair):
    """Both currencies are supported but no rate has been loaded for the pair."""

    def __init__(self, from_currency: str, to_currency: str):
        """
        Initialize with the unresolved pair.

        Args:
            from_currency: Source currency code
            to_currency: Target currency code
        """
        super().__init__(from_currency, to_currency, "no conversion rate available")


class TransactionError(BtcTrackerError):
    """Transaction valuation errors."""

    pass


class NoValuesAvailable(TransactionError):
    """Transaction has no cached values for the requested currency."""

    def __init__(self, currency: str):
        """
        Initialize with currency.

        Args:
            currency: The currency that has never been computed for the transaction
        """
        self.currency = currency
        message = f"No values available for currency: {currency}"
        super().__init__(message)


class InvalidBaseCurrency(TransactionError):
    """Base values were set for something other than EUR or USD."""

    def __init__(self, key: object):
        """
        Initialize with the rejected key.

        Args:
            key: The key passed instead of a base currency key
        """
        self.key = key
        message = f"Invalid base currency: {key}. Expected one of: eur, usd"
        super().__init__(message)


class InvalidTransactionError(TransactionError):
    """Transaction failed validation and must not be persisted."""

    def __init__(self, reason: str):
        """Initialize with the validation failure reason."""
        super().__init__(f"Invalid transaction: {reason}")


class DataError(BtcTrackerError):
    """Data validation or processing errors."""

    pass


class InvalidRateError(DataError):
    """Exchange rate or price update contains an unusable value."""

    def __init__(self, currency: str, value: object):
        """
        Initialize with the rejected value.

        Args:
            currency: Currency the value belongs to
            value: The rejected rate or price
        """
        message = f"Invalid rate for {currency}: {value!r} (must be a positive finite number)"
        super().__init__(message)


class APIError(BtcTrackerError):
    """API-related errors."""

    pass


class APIRateLimitError(APIError):
    """API rate limit exceeded."""

    def __init__(self, api_name: str, retry_after: str = "later"):
        """
        Initialize rate limit error.

        Args:
            api_name: Name of the API that hit rate limit
            retry_after: When to retry (e.g., "15 minutes", "tomorrow")
        """
        message = f"{api_name} API rate limit exceeded. Try again {retry_after}."
        super().__init__(message)


class APIConnectionError(APIError):
    """Failed to connect to API."""

    def __init__(self, api_name: str, details: str = ""):
        """
        Initialize connection error.

        Args:
            api_name: Name of the API
            details: Additional error details
        """
        message = f"Failed to connect to {api_name} API"
        if details:
            message += f": {details}"
        super().__init__(message)


# Error message helpers


def format_error_message(error: Exception) -> str:
    """
    Format exception into user-friendly error message.

    Args:
        error: The exception to format

    Returns:
        Formatted error message
    """
    if isinstance(error, BtcTrackerError):
        return error.message

    error_type = type(error).__name__
    return f"{error_type}: {str(error)}"


def get_error_color(error: Exception) -> str:
    """
    Get Rich color for error type.

    Args:
        error: The exception

    Returns:
        Rich color name
    """
    if isinstance(error, APIRateLimitError):
        return "yellow"
    elif isinstance(error, (CurrencyError, DataError)):
        return "red"
    elif isinstance(error, TransactionError):
        return "magenta"
    elif isinstance(error, APIError):
        return "orange"
    else:
        return "red"
