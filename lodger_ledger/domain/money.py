"""Fixed-point GBP money value type backed by an integer pence count"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

PENNY = Decimal("0.01")

Number = Union[Decimal, int, str]


def _to_decimal(value: Number) -> Decimal:
    # Floats are rejected: their binary representation silently changes the amount
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Money cannot be built from {type(value).__name__}; use Decimal or str")
    try:
        return Decimal(value)
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid money amount: {value!r}") from e


@dataclass(frozen=True, order=True)
class Money:
    """
    Currency amount held as whole pence.

    Public values go in and out as Decimals rounded half-up to 2 places.
    Operators only accept Money or int so no arithmetic drops a fraction of a
    penny without saying so; use scaled() for ratios, which rounds once at
    the end.
    """

    pence: int

    def __post_init__(self) -> None:
        if not isinstance(self.pence, int) or isinstance(self.pence, bool):
            raise TypeError("Money.pence must be an int")

    @classmethod
    def of(cls, value: Number) -> Money:
        """Build from a decimal amount in pounds, rounding half-up to the penny"""
        amount = _to_decimal(value).quantize(PENNY, rounding=ROUND_HALF_UP)
        return cls(int(amount * 100))

    @classmethod
    def zero(cls) -> Money:
        return cls(0)

    @property
    def amount(self) -> Decimal:
        return (Decimal(self.pence) / 100).quantize(PENNY)

    def scaled(self, numerator: Number, denominator: Number = 1, rounding: str = ROUND_HALF_UP) -> Money:
        """
        Multiply by numerator / denominator with exact intermediate arithmetic.

        Rounds to the penny only once, on the final result.
        e.g. Money.of("800").scaled(7, "30.44") -> £183.97
        """
        den = _to_decimal(denominator)
        if den == 0:
            raise ZeroDivisionError("Money.scaled denominator is zero")
        exact = Decimal(self.pence) * _to_decimal(numerator) / den
        return Money(int(exact.quantize(Decimal(1), rounding=rounding)))

    def is_zero(self) -> bool:
        return self.pence == 0

    def is_negative(self) -> bool:
        return self.pence < 0

    def is_positive(self) -> bool:
        return self.pence > 0

    def within(self, other: Money, tolerance_pence: int) -> bool:
        return abs(self.pence - other.pence) <= tolerance_pence

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.pence + other.pence)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.pence - other.pence)

    def __neg__(self) -> Money:
        return Money(-self.pence)

    def __abs__(self) -> Money:
        return Money(abs(self.pence))

    def __mul__(self, factor: int) -> Money:
        if not isinstance(factor, int) or isinstance(factor, bool):
            raise TypeError("Money can only be multiplied by int; use scaled() for ratios")
        return Money(self.pence * factor)

    __rmul__ = __mul__

    def __truediv__(self, other):
        raise TypeError("Money division would lose precision; use scaled()")

    def __str__(self) -> str:
        sign = "-" if self.pence < 0 else ""
        return f"{sign}£{abs(self.amount)}"


def floor_money(value: Decimal) -> Money:
    """Truncate a non-negative amount to whole pence (never rounds up)"""
    return Money(int((value * 100).quantize(Decimal(1), rounding=ROUND_DOWN)))


def total(amounts) -> Money:
    result = Money.zero()
    for m in amounts:
        result = result + m
    return result
