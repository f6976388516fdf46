from decimal import ROUND_HALF_UP, Decimal


SETTLEMENT_PRECISION = Decimal('0.01')

# ISO 4217 minor units for currencies that do not use two decimals
_MINOR_UNITS: dict[str, int] = {
    'JPY': 0,
    'KRW': 0,
    'XOF': 0,
    'XAF': 0,
    'UGX': 0,
    'RWF': 0,
    'KWD': 3,
    'BHD': 3,
}


def minor_units(currency: str) -> int:
    return _MINOR_UNITS.get(currency.upper(), 2)


def round_to_minor_units(amount: Decimal, currency: str) -> Decimal:
    """Round a display amount to the currency's conventional precision."""
    exponent = Decimal(1).scaleb(-minor_units(currency))
    return amount.quantize(exponent, rounding=ROUND_HALF_UP)


def round_settlement(amount: Decimal) -> Decimal:
    """Bookkeeping amounts in settlement currency keep two decimals."""
    return amount.quantize(SETTLEMENT_PRECISION, rounding=ROUND_HALF_UP)


def to_minor_unit_integer(amount: Decimal, currency: str) -> int:
    """Integer minor-unit encoding used by gateways that take e.g. kobo."""
    return int(round_to_minor_units(amount, currency).scaleb(minor_units(currency)))
