"""ISO 4217 currencies accepted for contribution definitions, with their minor units."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    code: str
    decimal_places: int
    name: str

    @property
    def quantize_string(self) -> str:
        """Pattern for ``Decimal.quantize`` ("0.00" for cents, "1" for none)."""
        if self.decimal_places == 0:
            return "1"
        return "0." + "0" * self.decimal_places


# Direct debits always run in EUR.  The others are kept for associations in
# non-euro SEPA countries that define contributions in their own currency.
_SEPA_AREA_CURRENCIES = (
    CurrencyInfo("EUR", 2, "Euro"),
    CurrencyInfo("CHF", 2, "Swiss Franc"),
    CurrencyInfo("GBP", 2, "Pound Sterling"),
    CurrencyInfo("DKK", 2, "Danish Krone"),
    CurrencyInfo("SEK", 2, "Swedish Krona"),
    CurrencyInfo("NOK", 2, "Norwegian Krone"),
    CurrencyInfo("PLN", 2, "Polish Zloty"),
    CurrencyInfo("CZK", 2, "Czech Koruna"),
    CurrencyInfo("HUF", 2, "Hungarian Forint"),
    CurrencyInfo("RON", 2, "Romanian Leu"),
    CurrencyInfo("BGN", 2, "Bulgarian Lev"),
    CurrencyInfo("ISK", 0, "Icelandic Krona"),
    CurrencyInfo("USD", 2, "US Dollar"),
)


def _normalize(code: object) -> str | None:
    if not isinstance(code, str) or not code.strip():
        return None
    return code.strip().upper()


class CurrencyRegistry:
    """Lookup of known currencies; unknown codes round to two places."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        info.code: info for info in _SEPA_AREA_CURRENCIES
    }
    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        normalized = _normalize(code)
        return cls._CURRENCIES.get(normalized) if normalized else None

    @classmethod
    def is_valid(cls, code: str) -> bool:
        return cls.get_info(code) is not None

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    @classmethod
    def quantizer(cls, code: str) -> Decimal:
        """Exponent used to round amounts in ``code`` (``Decimal("0.01")`` for EUR)."""
        return Decimal(1).scaleb(-cls.get_decimal_places(code))

    @classmethod
    def validate(cls, code: str) -> str:
        """
        Normalised code, or ValueError.

        Raises:
            ValueError: Empty, not three letters, or not a known currency.
        """
        normalized = _normalize(code)
        if normalized is None:
            raise ValueError(f"Invalid currency code: {code!r}")
        if len(normalized) != 3:
            raise ValueError(f"Currency code must be 3 characters: {code!r}")
        if normalized not in cls._CURRENCIES:
            raise ValueError(f"Invalid ISO 4217 currency code: {code!r}")
        return normalized

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        return frozenset(cls._CURRENCIES)
