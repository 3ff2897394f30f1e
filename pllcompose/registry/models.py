"""Registry dataclasses — block kinds, instances, range-table entries."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from pllcompose.constraints.models import Constraint
from pllcompose.params import Parameter, ParameterSpec, Range, Unit
from pllcompose.ports import PortBundle


@dataclass(frozen=True, eq=False)
class BlockKind:
    """A named schema: fixed port shape, parameter table, constraints.

    Constraints on a leaf kind may only reference its own parameters.
    A composite kind (``composite=True``) may also reference parameters of
    other kinds by kind name; those are its cross-block constraints.
    """

    name: str
    ports: PortBundle
    parameters: tuple[ParameterSpec, ...]
    constraints: tuple[Constraint, ...] = ()
    description: str = ""
    composite: bool = False

    def parameter(self, name: str) -> ParameterSpec | None:
        for p in self.parameters:
            if p.name == name:
                return p
        return None

    @property
    def parameter_names(self) -> list[str]:
        return [p.name for p in self.parameters]

    @property
    def local_constraints(self) -> tuple[Constraint, ...]:
        return tuple(c for c in self.constraints if c.is_local)

    @property
    def cross_constraints(self) -> tuple[Constraint, ...]:
        return tuple(c for c in self.constraints if not c.is_local)


@dataclass(frozen=True, eq=False)
class BlockInstance:
    """A named, concrete kind instantiation.  Parameters are read-only."""

    name: str
    kind: str
    parameters: Mapping[str, Parameter] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    def __getitem__(self, name: str) -> Parameter:
        return self.parameters[name]

    def value(self, name: str) -> Decimal | None:
        p = self.parameters.get(name)
        return p.value if p is not None else None


# ── Range tables (configuration surface) ───────────────────────────


@dataclass
class RangeEntry:
    """One parameter row from a range table file."""

    parameter: str
    unit: Unit
    range: Range
    default: Decimal | None = None


@dataclass
class RangeTable:
    kind: str
    entries: list[RangeEntry]
    source_file: str = ""               # path of the JSON file (for error reporting)


@dataclass
class TableError:
    kind: str
    field: str
    message: str

    def __str__(self) -> str:
        return f"[{self.kind}] {self.field}: {self.message}"


@dataclass
class RangeTableResult:
    """Result of loading range tables — tables + any validation errors."""
    tables: list[RangeTable]
    errors: list[TableError]

    @property
    def ok(self) -> bool:
        return len(self.errors) == 0

    def as_mapping(self) -> dict[str, dict[str, RangeEntry]]:
        """kind name -> parameter name -> entry."""
        return {t.kind: {e.parameter: e for e in t.entries} for t in self.tables}
