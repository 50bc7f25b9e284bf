"""
Currency Conversion

All calculations run in USD. Amounts are converted to the display currency
with an explicit exchange rate table.
"""

from typing import List, Dict, Optional
from datetime import datetime
from dataclasses import dataclass, field

BASE_CURRENCY = "USD"

SOURCE_LIVE = "live"
SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class Currency:
    code: str
    name: str
    symbol: str
    symbol_native: str
    decimal_digits: int


CURRENCIES: List[Currency] = [
    Currency("USD", "US Dollar", "$", "$", 2),
    Currency("EUR", "Euro", "€", "€", 2),
    Currency("AED", "UAE Dirham", "AED", "د.إ", 2),
    Currency("XOF", "CFA Franc", "CFA", "CFA", 0),
    Currency("GBP", "British Pound", "£", "£", 2),
    Currency("JPY", "Japanese Yen", "¥", "¥", 0),
    Currency("CAD", "Canadian Dollar", "CAD", "$", 2),
    Currency("NGN", "Nigerian Naira", "₦", "₦", 2),
    Currency("ZAR", "South African Rand", "R", "R", 2),
]

# Approximate rates used when live rates are unavailable
FALLBACK_RATES: Dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.85,
    "AED": 3.67,
    "XOF": 600.0,
    "GBP": 0.73,
    "JPY": 110.0,
    "CAD": 1.25,
    "NGN": 460.0,
    "ZAR": 15.5,
}


@dataclass
class ExchangeRateTable:
    """Units of each currency per 1 USD."""

    rates: Dict[str, float] = field(default_factory=lambda: {BASE_CURRENCY: 1.0})
    fetched_at: Optional[datetime] = None
    source: str = SOURCE_LIVE
    base: str = BASE_CURRENCY

    def rate_for(self, code: str) -> float:
        """Rate for a currency code; unknown or zero rates count as 1."""
        return self.rates.get(code) or 1.0


def get_currency(code: str) -> Currency:
    """
    Look up a supported currency.

    Raises:
        ValueError: If the currency is not supported
    """
    for currency in CURRENCIES:
        if currency.code == code.upper():
            return currency
    raise ValueError(f"Unsupported currency: {code}")


def convert_from_usd(amount: float, code: str, table: ExchangeRateTable) -> float:
    """Convert a USD amount into the given currency."""
    return amount * table.rate_for(code)


def convert_to_usd(amount: float, code: str, table: ExchangeRateTable) -> float:
    """Convert an amount in the given currency back to USD."""
    return amount / table.rate_for(code)


def format_amount(amount: float, currency: Currency) -> str:
    """Format an amount already expressed in the currency."""
    sign = "-" if amount < 0 else ""
    digits = f"{abs(amount):,.{currency.decimal_digits}f}"
    return f"{sign}{currency.symbol}{digits}"


def format_currency(amount_usd: float, currency: Currency, table: ExchangeRateTable) -> str:
    """Convert a USD amount and format it for display."""
    return format_amount(convert_from_usd(amount_usd, currency.code, table), currency)
