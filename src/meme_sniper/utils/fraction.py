"""Arbitrary-precision rational arithmetic for price and market cap math.

Values are kept as an unreduced ``numerator / denominator`` pair of Python
ints. Arithmetic multiplies denominators instead of reducing, so long
chains of operations grow the operands; call :meth:`Fraction.reduced`
when that matters.
"""

from enum import Enum
from math import gcd

from ..errors import DivisionByZero

DISPLAY_DECIMALS = 18


class Rounding(Enum):
    """Rounding modes accepted by :meth:`Fraction.to_significant_digits`."""

    ROUND_DOWN = "round_down"
    ROUND_HALF_UP = "round_half_up"
    ROUND_UP = "round_up"


class Fraction:
    """Exact rational number.

    The sign always lives in the numerator and the denominator is never
    zero; both are enforced here so no code path can build an invalid value.
    """

    __slots__ = ("numerator", "denominator")

    def __init__(self, numerator: int, denominator: int = 1) -> None:
        numerator = int(numerator)
        denominator = int(denominator)
        if denominator == 0:
            raise DivisionByZero(f"Fraction denominator must be non-zero ({numerator}/0)")
        if denominator < 0:
            numerator, denominator = -numerator, -denominator
        self.numerator = numerator
        self.denominator = denominator

    @staticmethod
    def _coerce(value: "Fraction | int") -> "Fraction":
        if isinstance(value, Fraction):
            return value
        if isinstance(value, int):
            return Fraction(value)
        return NotImplemented

    def __add__(self, other: "Fraction | int") -> "Fraction":
        other = self._coerce(other)
        if other is NotImplemented:
            return NotImplemented
        if self.denominator == other.denominator:
            return Fraction(self.numerator + other.numerator, self.denominator)
        return Fraction(
            self.numerator * other.denominator + other.numerator * self.denominator,
            self.denominator * other.denominator,
        )

    __radd__ = __add__

    def __sub__(self, other: "Fraction | int") -> "Fraction":
        other = self._coerce(other)
        if other is NotImplemented:
            return NotImplemented
        if self.denominator == other.denominator:
            return Fraction(self.numerator - other.numerator, self.denominator)
        return Fraction(
            self.numerator * other.denominator - other.numerator * self.denominator,
            self.denominator * other.denominator,
        )

    def __rsub__(self, other: int) -> "Fraction":
        return Fraction(other) - self

    def __mul__(self, other: "Fraction | int") -> "Fraction":
        other = self._coerce(other)
        if other is NotImplemented:
            return NotImplemented
        return Fraction(
            self.numerator * other.numerator,
            self.denominator * other.denominator,
        )

    __rmul__ = __mul__

    def __truediv__(self, other: "Fraction | int") -> "Fraction":
        other = self._coerce(other)
        if other is NotImplemented:
            return NotImplemented
        if other.numerator == 0:
            raise DivisionByZero(f"Cannot divide {self} by zero")
        return Fraction(
            self.numerator * other.denominator,
            self.denominator * other.numerator,
        )

    def __rtruediv__(self, other: int) -> "Fraction":
        return Fraction(other) / self

    def __neg__(self) -> "Fraction":
        return Fraction(-self.numerator, self.denominator)

    def quotient(self) -> int:
        """Integer part, truncated toward zero."""
        q = abs(self.numerator) // self.denominator
        return -q if self.numerator < 0 else q

    def remainder(self) -> "Fraction":
        """What :meth:`quotient` dropped; carries the numerator's sign."""
        return Fraction(
            self.numerator - self.quotient() * self.denominator,
            self.denominator,
        )

    def invert(self) -> "Fraction":
        if self.numerator == 0:
            raise DivisionByZero("Cannot invert a zero fraction")
        return Fraction(self.denominator, self.numerator)

    def reduced(self) -> "Fraction":
        """Same value in lowest terms."""
        divisor = gcd(self.numerator, self.denominator) or 1
        return Fraction(self.numerator // divisor, self.denominator // divisor)

    def _cross(self, other: "Fraction | int") -> tuple[int, int] | None:
        other = self._coerce(other)
        if other is NotImplemented:
            return None
        return (
            self.numerator * other.denominator,
            other.numerator * self.denominator,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (Fraction, int)):
            return NotImplemented
        left, right = self._cross(other)
        return left == right

    def __lt__(self, other: "Fraction | int") -> bool:
        pair = self._cross(other)
        if pair is None:
            return NotImplemented
        return pair[0] < pair[1]

    def __le__(self, other: "Fraction | int") -> bool:
        pair = self._cross(other)
        if pair is None:
            return NotImplemented
        return pair[0] <= pair[1]

    def __gt__(self, other: "Fraction | int") -> bool:
        pair = self._cross(other)
        if pair is None:
            return NotImplemented
        return pair[0] > pair[1]

    def __ge__(self, other: "Fraction | int") -> bool:
        pair = self._cross(other)
        if pair is None:
            return NotImplemented
        return pair[0] >= pair[1]

    def __hash__(self) -> int:
        reduced = self.reduced()
        return hash((reduced.numerator, reduced.denominator))

    def __float__(self) -> float:
        return self.numerator / self.denominator

    def __repr__(self) -> str:
        return f"Fraction({self.numerator}, {self.denominator})"

    def __str__(self) -> str:
        return self.to_formatted_string()

    def to_formatted_string(self) -> str:
        """Decimal rendering with up to 18 fractional digits.

        The last digit is rounded half up, trailing fractional zeros are
        removed and the integer part gets thousands separators.
        """
        if self.numerator == 0:
            return "0"

        scaled, rest = divmod(abs(self.numerator) * 10**DISPLAY_DECIMALS, self.denominator)
        if rest * 2 >= self.denominator:
            scaled += 1

        digits = str(scaled).rjust(DISPLAY_DECIMALS + 1, "0")
        integer_part = f"{int(digits[:-DISPLAY_DECIMALS]):,}"
        fractional_part = digits[-DISPLAY_DECIMALS:].rstrip("0")

        rendered = f"{integer_part}.{fractional_part}" if fractional_part else integer_part
        if self.numerator < 0 and rendered != "0":
            rendered = f"-{rendered}"
        return rendered

    def to_significant_digits(self, digits: int, rounding: Rounding = Rounding.ROUND_DOWN) -> str:
        """Trim the formatted value to ``digits`` significant fractional digits.

        Integer digits are always kept. Every mode truncates; ROUND_DOWN
        additionally drops trailing fractional zeros.
        """
        formatted = self.to_formatted_string()
        if formatted == "0":
            return "0"

        result: list[str] = []
        seen_decimal = False
        count = 0
        for char in formatted:
            if char == ".":
                seen_decimal = True
                result.append(char)
            elif not char.isdigit():
                result.append(char)
            elif count < digits or not seen_decimal:
                if char != "0" or count > 0:
                    count += 1
                result.append(char)

        trimmed = "".join(result)
        if rounding is Rounding.ROUND_DOWN and seen_decimal:
            trimmed = trimmed.rstrip("0")
        trimmed = trimmed.rstrip(".")
        return trimmed or "0"
