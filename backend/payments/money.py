"""
Currency arithmetic for order, check and payment amounts.

Rules followed everywhere money is computed:
1. Never use float for money.
2. Keep full Decimal precision through intermediate steps; quantize only
   the values that are stored or shown.
3. Quantize with ROUND_HALF_EVEN (banker's rounding).
4. When an amount is divided, do it in minor units and hand out the
   leftover units deterministically so the parts add back up exactly.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import List, Union

from core_backend.exceptions import ValidationFailure

Number = Union[Decimal, str, int]

# Minor unit exponents (decimal places) for the currencies a location may use.
CURRENCY_EXPONENT = {
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "CAD": 2,
    "AUD": 2,
    "MXN": 2,
    "JPY": 0,
    "KRW": 0,
    "KWD": 3,
    "BHD": 3,
}

CURRENCY_SYMBOL = {
    "USD": "$",
    "CAD": "$",
    "AUD": "$",
    "MXN": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}

ZERO = Decimal("0")


def currency_exponent(currency: str) -> int:
    """
    Number of decimal places for a currency; unknown codes default to 2.

    >>> currency_exponent("USD")
    2
    >>> currency_exponent("JPY")
    0
    """
    return CURRENCY_EXPONENT.get((currency or "USD").upper(), 2)


def quantize_decimal(currency: str) -> Decimal:
    return Decimal(10) ** -currency_exponent(currency)


def to_decimal(amount: Number) -> Decimal:
    if isinstance(amount, float):
        raise TypeError("Monetary amounts must not be floats")
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def parse_amount(name: str, value) -> Decimal:
    """Parse request input into a Decimal, rejecting floats, NaN and junk."""
    try:
        amount = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationFailure(f"{name} must be a decimal amount, got {value!r}")
    if not amount.is_finite():
        raise ValidationFailure(f"{name} must be a decimal amount, got {value!r}")
    return amount


def quantize(currency: str, amount: Number) -> Decimal:
    """
    Round to the currency's minor unit using banker's rounding.

    >>> quantize("USD", "1.9676")
    Decimal('1.97')
    >>> quantize("USD", "10.125")
    Decimal('10.12')
    """
    return to_decimal(amount).quantize(quantize_decimal(currency), rounding=ROUND_HALF_EVEN)


def to_minor(currency: str, amount: Number) -> int:
    """Quantize, then convert to an integer count of minor units (cents)."""
    quantized = quantize(currency, amount)
    return int((quantized * (10 ** currency_exponent(currency))).to_integral_value())


def from_minor(currency: str, minor: int) -> Decimal:
    return quantize(currency, Decimal(minor) / (10 ** currency_exponent(currency)))


def percentage_of(amount: Number, percent: Number) -> Decimal:
    """``percent`` is on a 0-100 scale. The result is not rounded."""
    return to_decimal(amount) * to_decimal(percent) / Decimal("100")


def allocate_minor(weights: List[int], total_minor: int) -> List[int]:
    """
    Split ``total_minor`` across ``weights`` proportionally.

    Integer arithmetic only. Each part gets the floor of its exact share, and
    the leftover units go to the largest remainders, ties broken by position.
    The result always sums to ``total_minor``.

    >>> allocate_minor([1, 1, 1], 2582)
    [861, 861, 860]
    >>> allocate_minor([2000, 650], 100)
    [75, 25]
    """
    total_weight = sum(weights)
    if total_weight == 0 or total_minor == 0:
        return [0] * len(weights)

    floors = []
    remainders = []
    for index, weight in enumerate(weights):
        share, remainder = divmod(weight * total_minor, total_weight)
        floors.append(share)
        remainders.append((remainder, index))

    leftover = total_minor - sum(floors)
    remainders.sort(key=lambda pair: (-pair[0], pair[1]))
    for _, index in remainders[:leftover]:
        floors[index] += 1
    return floors


def split_evenly(currency: str, amount: Number, parts: int) -> List[Decimal]:
    """
    Divide ``amount`` into ``parts`` shares that add back to ``amount`` exactly.
    Earlier shares absorb the odd cents.
    """
    if parts < 1:
        raise ValueError("parts must be at least 1")
    shares = allocate_minor([1] * parts, to_minor(currency, amount))
    return [from_minor(currency, share) for share in shares]


def format_money(currency: str, amount: Number) -> str:
    """
    >>> format_money("USD", Decimal("1234.5"))
    '$1,234.50'
    """
    value = quantize(currency, amount)
    symbol = CURRENCY_SYMBOL.get((currency or "USD").upper(), f"{currency} ")
    places = currency_exponent(currency)
    return f"{symbol}{value:,.{places}f}"
