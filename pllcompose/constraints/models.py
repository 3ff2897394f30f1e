"""Constraint dataclasses — parameter references, expressions, predicates,
and the violation report.

Constraints are plain data: they can be listed, printed and serialized
without being evaluated.  ``ParamRef.owner`` is ``None`` for the block the
constraint is declared on; otherwise it names another block (a kind name
for constraints declared on a composite kind, an instance name for
constraints added to a single builder).
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field

from pllcompose.errors import UnitMismatch
from pllcompose.params import (
    Quantity, Range, Unit, fmt, is_power_of_two, product_unit, ratio_unit, to_decimal,
)


@dataclass(frozen=True)
class ParamRef:
    owner: str | None
    name: str

    @classmethod
    def parse(cls, text: str) -> "ParamRef":
        """``"fmax"`` -> own parameter, ``"Vco.fmax"`` -> another block's."""
        owner, _, name = text.rpartition(".")
        return cls(owner or None, name)

    def __str__(self) -> str:
        return f"{self.owner}.{self.name}" if self.owner else self.name


Env = Mapping[ParamRef, Quantity]
UnitLookup = Callable[[ParamRef], Unit]


# ── Expressions ────────────────────────────────────────────────────


class Expr:
    """Base class for constraint expressions."""

    def refs(self) -> Iterator[ParamRef]:
        return iter(())

    def evaluate(self, env: Env) -> Quantity:
        raise NotImplementedError

    def unit(self, lookup: UnitLookup) -> Unit:
        """Result unit from declared parameter units, without values.

        Follows the ``Quantity`` arithmetic rules and raises
        ``UnitMismatch`` where evaluation would.
        """
        raise NotImplementedError


@dataclass(frozen=True)
class Ref(Expr):
    ref: ParamRef

    def refs(self) -> Iterator[ParamRef]:
        yield self.ref

    def evaluate(self, env: Env) -> Quantity:
        return env[self.ref]

    def unit(self, lookup: UnitLookup) -> Unit:
        return lookup(self.ref)

    def __str__(self) -> str:
        return str(self.ref)


@dataclass(frozen=True)
class Const(Expr):
    value: Quantity

    def evaluate(self, env: Env) -> Quantity:
        return self.value

    def unit(self, lookup: UnitLookup) -> Unit:
        return self.value.unit

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Sum(Expr):
    terms: tuple[Expr, ...]

    def refs(self) -> Iterator[ParamRef]:
        for t in self.terms:
            yield from t.refs()

    def evaluate(self, env: Env) -> Quantity:
        values = [t.evaluate(env) for t in self.terms]
        acc = values[0]
        for v in values[1:]:
            acc = acc + v
        return acc

    def unit(self, lookup: UnitLookup) -> Unit:
        units = [t.unit(lookup) for t in self.terms]
        for u in units[1:]:
            if u is not units[0]:
                raise UnitMismatch("add", units[0].value, u.value)
        return units[0]

    def __str__(self) -> str:
        return "(" + " + ".join(str(t) for t in self.terms) + ")"


@dataclass(frozen=True)
class Product(Expr):
    left: Expr
    right: Expr

    def refs(self) -> Iterator[ParamRef]:
        yield from self.left.refs()
        yield from self.right.refs()

    def evaluate(self, env: Env) -> Quantity:
        return self.left.evaluate(env) * self.right.evaluate(env)

    def unit(self, lookup: UnitLookup) -> Unit:
        return product_unit(self.left.unit(lookup), self.right.unit(lookup))

    def __str__(self) -> str:
        return f"{self.left} * {self.right}"


@dataclass(frozen=True)
class Ratio(Expr):
    numerator: Expr
    denominator: Expr

    def refs(self) -> Iterator[ParamRef]:
        yield from self.numerator.refs()
        yield from self.denominator.refs()

    def evaluate(self, env: Env) -> Quantity:
        return self.numerator.evaluate(env) / self.denominator.evaluate(env)

    def unit(self, lookup: UnitLookup) -> Unit:
        return ratio_unit(self.numerator.unit(lookup), self.denominator.unit(lookup))

    def __str__(self) -> str:
        return f"{self.numerator} / {self.denominator}"


def as_expr(x) -> Expr:
    """Expr passthrough; ``str`` -> parameter ref; number -> dimensionless const."""
    if isinstance(x, Expr):
        return x
    if isinstance(x, str):
        return Ref(ParamRef.parse(x))
    if isinstance(x, Quantity):
        return Const(x)
    return Const(Quantity(to_decimal(x), Unit.NONE))


def param(name: str, owner: str | None = None) -> Ref:
    return Ref(ParamRef(owner, name))


def const(value, unit: Unit | str = Unit.NONE) -> Const:
    return Const(Quantity(value, unit))


def total(*terms) -> Sum:
    return Sum(tuple(as_expr(t) for t in terms))


def product(left, right) -> Product:
    return Product(as_expr(left), as_expr(right))


def ratio(numerator, denominator) -> Ratio:
    return Ratio(as_expr(numerator), as_expr(denominator))


# ── Predicates ─────────────────────────────────────────────────────

_OPS = {
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "==": lambda a, b: a.value == b.value,
}


@dataclass(frozen=True)
class Compare:
    """``left op right``.  ``<``/``>`` are open bounds, ``<=``/``>=`` closed."""

    left: Expr
    op: str
    right: Expr

    def __post_init__(self) -> None:
        if self.op not in _OPS:
            raise ValueError(f"unknown comparison '{self.op}'")

    def refs(self) -> Iterator[ParamRef]:
        yield from self.left.refs()
        yield from self.right.refs()

    def check(self, env: Env) -> tuple[bool, str]:
        a = self.left.evaluate(env)
        b = self.right.evaluate(env)
        a.check_unit(b, "compare")
        return _OPS[self.op](a, b), f"{a} {self.op} {b}"

    def check_units(self, lookup: UnitLookup) -> None:
        left, right = self.left.unit(lookup), self.right.unit(lookup)
        if left is not right:
            raise UnitMismatch("compare", left.value, right.value)

    def __str__(self) -> str:
        return f"{self.left} {self.op} {self.right}"


@dataclass(frozen=True)
class Within:
    expr: Expr
    range: Range
    unit: Unit = Unit.NONE

    def refs(self) -> Iterator[ParamRef]:
        yield from self.expr.refs()

    def check(self, env: Env) -> tuple[bool, str]:
        q = self.expr.evaluate(env)
        q.check_unit(Quantity(0, self.unit), "compare")
        return self.range.contains(q.value), f"{q} in {self.range}"

    def check_units(self, lookup: UnitLookup) -> None:
        actual = self.expr.unit(lookup)
        if actual is not self.unit:
            raise UnitMismatch("compare", actual.value, self.unit.value)

    def __str__(self) -> str:
        return f"{self.expr} in {self.range} {self.unit.value}".rstrip()


@dataclass(frozen=True)
class PowerOfTwo:
    expr: Expr

    def refs(self) -> Iterator[ParamRef]:
        yield from self.expr.refs()

    def check(self, env: Env) -> tuple[bool, str]:
        q = self.expr.evaluate(env)
        return is_power_of_two(q.value), f"{fmt(q.value)} is a power of two"

    def check_units(self, lookup: UnitLookup) -> None:
        self.expr.unit(lookup)

    def __str__(self) -> str:
        return f"{self.expr} is a power of two"


Predicate = Compare | Within | PowerOfTwo


def at_most(left, right) -> Compare:
    return Compare(as_expr(left), "<=", as_expr(right))


def below(left, right) -> Compare:
    return Compare(as_expr(left), "<", as_expr(right))


def at_least(left, right) -> Compare:
    return Compare(as_expr(left), ">=", as_expr(right))


def above(left, right) -> Compare:
    return Compare(as_expr(left), ">", as_expr(right))


def equal(left, right) -> Compare:
    return Compare(as_expr(left), "==", as_expr(right))


def within(expr, lo=None, hi=None, *, lo_open: bool = False, hi_open: bool = False,
           unit: Unit | str = Unit.NONE) -> Within:
    return Within(as_expr(expr), Range(lo, hi, lo_open, hi_open), Unit(unit))


def power_of_two(expr) -> PowerOfTwo:
    return PowerOfTwo(as_expr(expr))


# ── Constraint ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Constraint:
    name: str
    predicate: Predicate
    description: str = ""

    def refs(self) -> tuple[ParamRef, ...]:
        seen: dict[ParamRef, None] = {}
        for r in self.predicate.refs():
            seen.setdefault(r, None)
        return tuple(seen)

    @property
    def owners(self) -> tuple[str, ...]:
        """Other blocks referenced, in first-use order."""
        seen: dict[str, None] = {}
        for r in self.refs():
            if r.owner is not None:
                seen.setdefault(r.owner, None)
        return tuple(seen)

    @property
    def is_local(self) -> bool:
        return not self.owners

    def check_units(self, lookup: UnitLookup) -> None:
        """Raise ``UnitMismatch`` if the declared units can never line up."""
        self.predicate.check_units(lookup)

    def __str__(self) -> str:
        return f"{self.name}: {self.predicate}"


# ── Results ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Violation:
    """One failed constraint, with enough structure to render or act on."""

    constraint: str
    instances: tuple[str, ...]
    description: str
    stage: str = "cross"            # "structural" | "local" | "cross"
    values: tuple[tuple[str, str], ...] = ()    # (param ref, value) pairs

    def __str__(self) -> str:
        where = ", ".join(self.instances) or "-"
        return f"[{self.constraint}] ({where}) {self.description}"


@dataclass(frozen=True)
class Skipped:
    """A constraint that was not evaluated, and why."""

    constraint: str
    instances: tuple[str, ...]
    reason: str


@dataclass(frozen=True)
class ValidationReport:
    violations: tuple[Violation, ...] = ()
    skipped: tuple[Skipped, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return len(self.violations) == 0

    def names(self) -> list[str]:
        return [v.constraint for v in self.violations]
