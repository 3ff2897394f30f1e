"""Composite design dataclasses — builder states, the frozen design, results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pllcompose.constraints.models import Constraint, ValidationReport
from pllcompose.ports import Connection, PortRef
from pllcompose.registry.models import BlockInstance


class BuilderState(Enum):
    EMPTY = "empty"
    ASSEMBLING = "assembling"
    VALIDATED = "validated"
    REJECTED = "rejected"

    @property
    def terminal(self) -> bool:
        return self in (BuilderState.VALIDATED, BuilderState.REJECTED)


@dataclass(frozen=True, eq=False)
class CompositeDesign:
    """A validated graph of block instances — immutable, safe to share."""

    name: str
    kind: str | None
    parameters: BlockInstance | None            # the composite's own record
    instances: tuple[BlockInstance, ...]
    connections: tuple[Connection, ...]
    constraints: tuple[Constraint, ...]         # cross-block constraints that were checked

    def instance(self, name: str) -> BlockInstance:
        for inst in self.instances:
            if inst.name == name:
                return inst
        raise KeyError(name)

    def instances_of(self, kind: str) -> list[BlockInstance]:
        return [i for i in self.instances if i.kind == kind]

    def driver_of(self, target: str | PortRef) -> PortRef | None:
        """Source driving ``target`` (e.g. ``"vco:tune"``), or None."""
        ref = PortRef.parse(target)
        for c in self.connections:
            if c.target == ref:
                return c.source
        return None

    def fanout_of(self, source: str | PortRef) -> list[PortRef]:
        ref = PortRef.parse(source)
        return [c.target for c in self.connections if c.source == ref]


@dataclass(frozen=True)
class BuildResult:
    """Outcome of ``finalize()``: terminal state, design (if validated), report."""

    state: BuilderState
    design: CompositeDesign | None
    report: ValidationReport

    @property
    def ok(self) -> bool:
        return self.state is BuilderState.VALIDATED
