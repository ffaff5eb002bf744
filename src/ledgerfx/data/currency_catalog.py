"""Static currency metadata for catalog seeding and name-based lookup.

Yahoo Finance search results carry no currency name or symbol, so every
system currency the application knows about is listed here. The mapping is
built once at import time and exposed read-only.
"""

from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class CurrencyMetadata:
    """Display metadata for a currency."""

    name: str
    symbol: str
    decimal_places: int = 2


_METADATA = {
    "USD": CurrencyMetadata("US Dollar", "$"),
    "EUR": CurrencyMetadata("Euro", "€"),
    "JPY": CurrencyMetadata("Japanese Yen", "¥", 0),
    "GBP": CurrencyMetadata("British Pound", "£"),
    "AUD": CurrencyMetadata("Australian Dollar", "A$"),
    "CAD": CurrencyMetadata("Canadian Dollar", "CA$"),
    "CHF": CurrencyMetadata("Swiss Franc", "CHF"),
    "CNY": CurrencyMetadata("Chinese Yuan", "¥"),
    "HKD": CurrencyMetadata("Hong Kong Dollar", "HK$"),
    "NZD": CurrencyMetadata("New Zealand Dollar", "NZ$"),
    "SEK": CurrencyMetadata("Swedish Krona", "kr"),
    "KRW": CurrencyMetadata("South Korean Won", "₩", 0),
    "SGD": CurrencyMetadata("Singapore Dollar", "S$"),
    "NOK": CurrencyMetadata("Norwegian Krone", "kr"),
    "MXN": CurrencyMetadata("Mexican Peso", "MX$"),
    "INR": CurrencyMetadata("Indian Rupee", "₹"),
    "RUB": CurrencyMetadata("Russian Ruble", "₽"),
    "ZAR": CurrencyMetadata("South African Rand", "R"),
    "TRY": CurrencyMetadata("Turkish Lira", "₺"),
    "BRL": CurrencyMetadata("Brazilian Real", "R$"),
    "TWD": CurrencyMetadata("New Taiwan Dollar", "NT$"),
    "DKK": CurrencyMetadata("Danish Krone", "kr"),
    "PLN": CurrencyMetadata("Polish Zloty", "zł"),
    "THB": CurrencyMetadata("Thai Baht", "฿"),
    "IDR": CurrencyMetadata("Indonesian Rupiah", "Rp", 0),
    "HUF": CurrencyMetadata("Hungarian Forint", "Ft"),
    "CZK": CurrencyMetadata("Czech Koruna", "Kč"),
    "ILS": CurrencyMetadata("Israeli Shekel", "₪"),
    "CLP": CurrencyMetadata("Chilean Peso", "CL$", 0),
    "PHP": CurrencyMetadata("Philippine Peso", "₱"),
    "SAR": CurrencyMetadata("Saudi Riyal", "﷼"),
    "AED": CurrencyMetadata("UAE Dirham", "AED"),
    "COP": CurrencyMetadata("Colombian Peso", "COL$"),
    "MYR": CurrencyMetadata("Malaysian Ringgit", "RM"),
    "PEN": CurrencyMetadata("Peruvian Sol", "S/"),
    "ARS": CurrencyMetadata("Argentine Peso", "AR$"),
    "NGN": CurrencyMetadata("Nigerian Naira", "₦"),
    "EGP": CurrencyMetadata("Egyptian Pound", "E£"),
    "VND": CurrencyMetadata("Vietnamese Dong", "₫", 0),
    "PKR": CurrencyMetadata("Pakistani Rupee", "₨"),
    "BDT": CurrencyMetadata("Bangladeshi Taka", "৳"),
    "KWD": CurrencyMetadata("Kuwaiti Dinar", "KWD", 3),
    "BHD": CurrencyMetadata("Bahraini Dinar", "BHD", 3),
    "OMR": CurrencyMetadata("Omani Rial", "OMR", 3),
}

CURRENCY_METADATA: MappingProxyType[str, CurrencyMetadata] = MappingProxyType(_METADATA)
