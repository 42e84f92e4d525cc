from dataclasses import dataclass
from decimal import Decimal
from typing import Dict

from .exceptions import InvalidCurrency


@dataclass(frozen=True)
class CurrencyInfo:
    code: str
    exponent: int
    # approximate units per 1 USD; only used to express USD-denominated
    # provider costs and minimums in local money, never for reporting
    usd_rate: Decimal
    symbol: str = ""


# Stripe's zero-decimal list: the minor unit is the whole unit.
ZERO_DECIMAL_CURRENCIES = frozenset({
    "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
    "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
})


def _info(code: str, usd_rate: str, symbol: str = "") -> CurrencyInfo:
    exponent = 0 if code in ZERO_DECIMAL_CURRENCIES else 2
    return CurrencyInfo(code=code, exponent=exponent, usd_rate=Decimal(usd_rate), symbol=symbol)


CURRENCIES: Dict[str, CurrencyInfo] = {c.code: c for c in (
    # two-decimal
    _info("USD", "1", "$"),
    _info("EUR", "0.92", "€"),
    _info("GBP", "0.79", "£"),
    _info("CAD", "1.36", "CA$"),
    _info("AUD", "1.54", "A$"),
    _info("NZD", "1.68", "NZ$"),
    _info("SGD", "1.35", "S$"),
    _info("HKD", "7.8", "HK$"),
    _info("CHF", "0.885", "CHF "),
    _info("SEK", "10.6", "SEK "),
    _info("NOK", "11", "NOK "),
    _info("DKK", "6.9", "DKK "),
    _info("PLN", "4", "PLN "),
    _info("CZK", "23.3", "CZK "),
    _info("HUF", "370", "HUF "),
    _info("RON", "4.6", "RON "),
    _info("BGN", "1.8", "BGN "),
    _info("TRY", "34", "TRY "),
    _info("BRL", "5.9", "R$"),
    _info("MXN", "17.2", "MX$"),
    _info("INR", "83.5", "₹"),
    _info("IDR", "16100", "Rp"),
    _info("THB", "34.5", "฿"),
    _info("MYR", "4.55", "RM"),
    _info("PHP", "58.8", "₱"),
    _info("TWD", "32.3", "NT$"),
    _info("AED", "3.67", "AED "),
    _info("SAR", "3.75", "SAR "),
    _info("QAR", "3.64", "QAR "),
    _info("EGP", "50", "EGP "),
    _info("MAD", "10.1", "MAD "),
    _info("TZS", "2560", "TZS "),
    _info("LKR", "323", "LKR "),
    _info("PKR", "278", "PKR "),
    _info("BDT", "120", "BDT "),
    _info("NGN", "1600", "₦"),
    _info("GHS", "16.1", "GH₵"),
    _info("KES", "130", "KSh"),
    _info("ZAR", "18.2", "R"),
    # zero-decimal
    _info("JPY", "150", "¥"),
    _info("KRW", "1390", "₩"),
    _info("VND", "25000", "₫"),
    _info("RWF", "1370", "RWF "),
    _info("UGX", "3700", "USh"),
    _info("CLP", "940", "CLP "),
    _info("PYG", "7300", "PYG "),
    _info("XAF", "605", "FCFA "),
    _info("XOF", "605", "CFA "),
    _info("XPF", "110", "XPF "),
    _info("BIF", "2850", "BIF "),
    _info("DJF", "178", "DJF "),
    _info("GNF", "8600", "GNF "),
    _info("KMF", "455", "KMF "),
    _info("MGA", "4500", "MGA "),
    _info("VUV", "119", "VUV "),
)}


def normalize_currency_code(code) -> str:
    if not isinstance(code, str):
        raise InvalidCurrency(code)
    return code.strip().upper()


def get_currency(code) -> CurrencyInfo:
    """Look up a currency; unknown codes are rejected, never defaulted to USD."""
    info = CURRENCIES.get(normalize_currency_code(code))
    if info is None:
        raise InvalidCurrency(code)
    return info


def is_known_currency(code) -> bool:
    return isinstance(code, str) and code.strip().upper() in CURRENCIES
