"""Three multiplicative accumulators built on different fixed-point representations.

The manual accumulator keeps a plain u32 whose high 16 bits are the integer part
and whose low 16 bits are the fraction. The Permill accumulator uses parts per
million in [0, 1]. The U16F16 accumulator uses a fixed-point number type with
the same layout as the manual one but checked arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from runtimekit.runtime import DispatchError, Origin, System, ensure_signed

_U32_MAX = 2**32 - 1
_FRAC_BITS = 16
_ONE_BITS = 1 << _FRAC_BITS


class Overflow(DispatchError):
    """The product does not fit in the accumulator's representation."""


def _check_u32(value: int) -> int:
    if not isinstance(value, int) or not 0 <= value <= _U32_MAX:
        raise ValueError(f"{value!r} is not a valid u32")
    return value


@dataclass(frozen=True, order=True)
class Permill:
    """A fraction in [0, 1] held as parts per million."""

    parts: int

    ACCURACY = 1_000_000

    def __post_init__(self) -> None:
        if not isinstance(self.parts, int) or not 0 <= self.parts <= self.ACCURACY:
            raise ValueError(f"Permill parts must be in [0, {self.ACCURACY}]")

    @classmethod
    def from_percent(cls, percent: int) -> Permill:
        """Build from a whole percentage; values above 100 saturate to one."""
        if percent < 0:
            raise ValueError("percent cannot be negative")
        return cls(min(percent, 100) * (cls.ACCURACY // 100))

    @classmethod
    def from_parts(cls, parts: int) -> Permill:
        """Build from parts per million; values above one million saturate to one."""
        if parts < 0:
            raise ValueError("parts cannot be negative")
        return cls(min(parts, cls.ACCURACY))

    @classmethod
    def one(cls) -> Permill:
        return cls(cls.ACCURACY)

    def saturating_mul(self, other: Permill) -> Permill:
        """Multiply two fractions, rounding down; the result never leaves [0, 1]."""
        return Permill(self.parts * other.parts // self.ACCURACY)

    def __float__(self) -> float:
        return self.parts / self.ACCURACY


class U16F16:
    """An unsigned fixed-point number with 16 integer and 16 fractional bits."""

    __slots__ = ("_bits",)

    def __init__(self, bits: int) -> None:
        self._bits = _check_u32(bits)

    @property
    def bits(self) -> int:
        return self._bits

    @classmethod
    def from_num(cls, value: Union[int, float]) -> U16F16:
        """Convert an int or float; raises OverflowError if it is out of range."""
        if isinstance(value, bool):
            value = int(value)
        if isinstance(value, int):
            bits = value << _FRAC_BITS
        elif isinstance(value, float):
            if value != value:
                raise ValueError("cannot convert NaN to U16F16")
            bits = int(value * _ONE_BITS)
        else:
            raise TypeError(f"cannot convert {type(value).__name__} to U16F16")
        if not 0 <= bits <= _U32_MAX or value < 0:
            raise OverflowError(f"{value!r} does not fit in U16F16")
        return cls(bits)

    @classmethod
    def from_bits(cls, bits: int) -> U16F16:
        return cls(bits)

    def checked_mul(self, other: U16F16) -> U16F16 | None:
        """The truncated product, or None if it does not fit."""
        product = (self._bits * other._bits) >> _FRAC_BITS
        if product > _U32_MAX:
            return None
        return U16F16(product)

    def __truediv__(self, divisor: Union[int, U16F16]) -> U16F16:
        if isinstance(divisor, U16F16):
            if divisor._bits == 0:
                raise ZeroDivisionError("division by zero")
            quotient = (self._bits << _FRAC_BITS) // divisor._bits
            if quotient > _U32_MAX:
                raise OverflowError("quotient does not fit in U16F16")
            return U16F16(quotient)
        if isinstance(divisor, int) and not isinstance(divisor, bool):
            if divisor == 0:
                raise ZeroDivisionError("division by zero")
            if divisor < 0:
                raise ValueError("cannot divide an unsigned value by a negative number")
            return U16F16(self._bits // divisor)
        return NotImplemented

    def __float__(self) -> float:
        return self._bits / _ONE_BITS

    def __eq__(self, other: object) -> bool:
        if isinstance(other, U16F16):
            return self._bits == other._bits
        if isinstance(other, (int, float)) and not isinstance(other, bool):
            return float(self) == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(float(self))

    def __repr__(self) -> str:
        return f"U16F16({float(self)!r})"


@dataclass(frozen=True)
class PermillUpdated:
    new_factor: Permill
    new_product: Permill


@dataclass(frozen=True)
class FixedUpdated:
    new_factor: U16F16
    new_product: U16F16


@dataclass(frozen=True)
class ManualUpdated:
    new_factor: int
    new_product: int


class FixedPoint:
    """Three accumulators, each starting at one, multiplied by caller-supplied factors."""

    def __init__(self, system: System) -> None:
        self.system = system
        self._permill = Permill.one()
        self._fixed = U16F16.from_num(1)
        self._manual = _ONE_BITS

    def update_permill(self, origin: Origin, new_factor: Permill) -> None:
        ensure_signed(origin)
        new_product = self._permill.saturating_mul(new_factor)
        self._permill = new_product
        self.system.deposit_event(PermillUpdated(new_factor, new_product))

    def update_fixed(self, origin: Origin, new_factor: U16F16) -> None:
        ensure_signed(origin)
        new_product = self._fixed.checked_mul(new_factor)
        if new_product is None:
            raise Overflow("U16F16 accumulator overflowed")
        self._fixed = new_product
        self.system.deposit_event(FixedUpdated(new_factor, new_product))

    def update_manual(self, origin: Origin, new_factor: int) -> None:
        ensure_signed(origin)
        _check_u32(new_factor)
        # The raw product has 32 fractional bits; shifting restores 16 (lossy).
        shifted = (self._manual * new_factor) >> _FRAC_BITS
        if shifted > _U32_MAX:
            raise Overflow("manual accumulator overflowed")
        self._manual = shifted
        self.system.deposit_event(ManualUpdated(new_factor, shifted))

    def permill_value(self) -> Permill:
        return self._permill

    def fixed_value(self) -> U16F16:
        return self._fixed

    def manual_value(self) -> int:
        return self._manual