"""Parameter dataclasses — units, ranges, exact quantities."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from pllcompose.config import NUMERIC_RULES
from pllcompose.errors import InvalidValue, OutOfRange, RangeError, SchemaError, UnitMismatch

from .numeric import fmt, to_decimal


class Unit(str, Enum):
    """Unit tag carried by every quantity.  Tags are never converted."""

    VOLT = "V"
    AMPERE = "A"
    OHM = "Ohm"
    FARAD = "F"
    FEMTOFARAD = "fF"
    HERTZ = "Hz"
    SECOND = "s"
    UI = "UI"
    NONE = ""

    def __str__(self) -> str:
        return self.value


# ── Range ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Range:
    """Declared bounds.  ``None`` ends are unbounded; ``*_open`` excludes
    the boundary value itself (``<`` rather than ``<=``)."""

    lo: Decimal | None = None
    hi: Decimal | None = None
    lo_open: bool = False
    hi_open: bool = False

    def __post_init__(self) -> None:
        if self.lo is not None:
            object.__setattr__(self, "lo", to_decimal(self.lo))
        if self.hi is not None:
            object.__setattr__(self, "hi", to_decimal(self.hi))
        if self.lo is not None and self.hi is not None:
            if self.lo > self.hi or (self.lo == self.hi and (self.lo_open or self.hi_open)):
                raise SchemaError(f"empty range {self}")

    def contains(self, value: Decimal) -> bool:
        if self.lo is not None:
            if value < self.lo or (self.lo_open and value == self.lo):
                return False
        if self.hi is not None:
            if value > self.hi or (self.hi_open and value == self.hi):
                return False
        return True

    @property
    def bounded(self) -> bool:
        return self.lo is not None or self.hi is not None

    def __str__(self) -> str:
        left = "(" if self.lo_open or self.lo is None else "["
        right = ")" if self.hi_open or self.hi is None else "]"
        lo = "-inf" if self.lo is None else fmt(self.lo)
        hi = "inf" if self.hi is None else fmt(self.hi)
        return f"{left}{lo}, {hi}{right}"


UNBOUNDED = Range()


# ── Quantity ───────────────────────────────────────────────────────


def _lift(other):
    """Unwrap a Parameter to its Quantity; pass anything else through."""
    if isinstance(other, Parameter):
        return other.quantity
    return other


# Period and frequency cancel: s * Hz is dimensionless, 1 / Hz is s.
_RECIPROCAL = {Unit.HERTZ: Unit.SECOND, Unit.SECOND: Unit.HERTZ}


def product_unit(left: Unit, right: Unit) -> Unit:
    """Unit of ``left * right``; raises ``UnitMismatch`` if there is none."""
    if right is Unit.NONE:
        return left
    if left is Unit.NONE:
        return right
    if _RECIPROCAL.get(left) is right:
        return Unit.NONE
    raise UnitMismatch("multiply", left.value, right.value)


def ratio_unit(numerator: Unit, denominator: Unit) -> Unit:
    """Unit of ``numerator / denominator``; raises ``UnitMismatch`` if there is none."""
    if numerator is denominator:
        return Unit.NONE
    if denominator is Unit.NONE:
        return numerator
    if numerator is Unit.NONE and denominator in _RECIPROCAL:
        return _RECIPROCAL[denominator]
    raise UnitMismatch("divide", numerator.value, denominator.value)


def _scalar(other) -> Decimal | None:
    if isinstance(other, (int, Decimal)) and not isinstance(other, bool):
        return to_decimal(other)
    return None


@dataclass(frozen=True)
class Quantity:
    """An exact decimal value tagged with a unit.

    Addition, subtraction and comparison require equal units.
    Multiplication and division accept a plain number or a dimensionless
    quantity on one side; dividing two quantities of the same unit gives a
    dimensionless ratio, and seconds and hertz cancel.  Anything else raises
    ``UnitMismatch``.
    """

    value: Decimal
    unit: Unit = Unit.NONE

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", to_decimal(self.value))
        object.__setattr__(self, "unit", Unit(self.unit))

    def check_unit(self, other, operation: str) -> "Quantity":
        other = _lift(other)
        if not isinstance(other, Quantity):
            other = Quantity(other, Unit.NONE)
        if other.unit is not self.unit:
            raise UnitMismatch(operation, self.unit.value, other.unit.value)
        return other

    def __add__(self, other) -> "Quantity":
        other = self.check_unit(other, "add")
        return Quantity(NUMERIC_RULES.context().add(self.value, other.value), self.unit)

    __radd__ = __add__

    def __sub__(self, other) -> "Quantity":
        other = self.check_unit(other, "subtract")
        return Quantity(NUMERIC_RULES.context().subtract(self.value, other.value), self.unit)

    def __neg__(self) -> "Quantity":
        return Quantity(-self.value, self.unit)

    def _operand(self, other, operation: str) -> "Quantity":
        other = _lift(other)
        if isinstance(other, Quantity):
            return other
        factor = _scalar(other)
        if factor is None:
            raise UnitMismatch(operation, self.unit.value, type(other).__name__)
        return Quantity(factor, Unit.NONE)

    def __mul__(self, other) -> "Quantity":
        other = self._operand(other, "multiply")
        unit = product_unit(self.unit, other.unit)
        return Quantity(NUMERIC_RULES.context().multiply(self.value, other.value), unit)

    __rmul__ = __mul__

    def __truediv__(self, other) -> "Quantity":
        other = self._operand(other, "divide")
        unit = ratio_unit(self.unit, other.unit)
        return Quantity(NUMERIC_RULES.context().divide(self.value, other.value), unit)

    def __lt__(self, other) -> bool:
        return self.value < self.check_unit(other, "compare").value

    def __le__(self, other) -> bool:
        return self.value <= self.check_unit(other, "compare").value

    def __gt__(self, other) -> bool:
        return self.value > self.check_unit(other, "compare").value

    def __ge__(self, other) -> bool:
        return self.value >= self.check_unit(other, "compare").value

    def __str__(self) -> str:
        return f"{fmt(self.value)} {self.unit.value}".rstrip()


# ── Parameter ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Parameter:
    """A named, range-checked quantity bound to one block instance."""

    name: str
    value: Decimal
    unit: Unit = Unit.NONE
    range: Range = UNBOUNDED
    instance: str | None = None     # owning instance, for error reporting

    def __post_init__(self) -> None:
        try:
            value = to_decimal(self.value)
        except (TypeError, ValueError, RangeError) as exc:
            raise InvalidValue(self.name, self.value, str(exc), instance=self.instance) from None
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "unit", Unit(self.unit))
        if not self.range.contains(self.value):
            raise OutOfRange(self.name, self.value, f"{self.range} {self.unit.value}".rstrip(),
                             instance=self.instance)

    @property
    def quantity(self) -> Quantity:
        return Quantity(self.value, self.unit)

    def __add__(self, other) -> Quantity:
        return self.quantity + other

    __radd__ = __add__

    def __sub__(self, other) -> Quantity:
        return self.quantity - other

    def __mul__(self, other) -> Quantity:
        return self.quantity * other

    __rmul__ = __mul__

    def __truediv__(self, other) -> Quantity:
        return self.quantity / other

    def __str__(self) -> str:
        return f"{self.name}={self.quantity}"


# ── Schema entry ───────────────────────────────────────────────────


@dataclass(frozen=True)
class ParameterSpec:
    """One row of a block kind's parameter table."""

    name: str
    unit: Unit = Unit.NONE
    range: Range = UNBOUNDED
    default: Decimal | None = None
    optional: bool = False          # may be omitted with no default
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit", Unit(self.unit))
        if self.default is not None:
            default = to_decimal(self.default)
            object.__setattr__(self, "default", default)
            if not self.range.contains(default):
                raise SchemaError(
                    f"parameter '{self.name}': default {fmt(default)} outside {self.range}")

    @property
    def required(self) -> bool:
        return self.default is None and not self.optional

    def bind(self, value, instance: str | None = None) -> Parameter:
        """Build the instance-level Parameter; raises ``InvalidValue`` or ``OutOfRange``."""
        return Parameter(self.name, value, self.unit, self.range, instance=instance)
