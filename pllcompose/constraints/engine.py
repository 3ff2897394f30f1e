"""Constraint engine — structural, local and cross-block passes.

Evaluation order is fixed:

  structural  required inputs driven, cross-block owners resolvable
  local       each instance against its own kind's constraints
  cross       composite constraints, only for participants that passed
              the local pass and are wired into one connected graph

Every pass runs to completion and all violations are collected; the
engine never raises for a failed constraint.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pllcompose.errors import UnitMismatch
from pllcompose.params import Quantity, fmt
from pllcompose.ports import Connection

from .models import Constraint, ParamRef, Skipped, ValidationReport, Violation

if TYPE_CHECKING:
    from pllcompose.registry.models import BlockInstance, BlockKind


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Binding:
    """A cross-block constraint with its owner names resolved to instances.

    ``owners`` maps each owner used in the constraint to an instance name;
    the ``None`` owner maps to the composite's own parameter record.
    """

    constraint: Constraint
    owners: Mapping[str | None, str]

    def participants(self) -> tuple[str, ...]:
        seen: dict[str, None] = {}
        for ref in self.constraint.refs():
            seen.setdefault(self.owners[ref.owner], None)
        return tuple(seen)


# ── Helpers ────────────────────────────────────────────────────────


def _check(constraint: Constraint, env: Mapping[ParamRef, Quantity]) -> tuple[bool, str]:
    """Evaluate one predicate; arithmetic/unit failures count as a failed check."""
    try:
        return constraint.predicate.check(env)
    except (ArithmeticError, UnitMismatch) as exc:
        return False, f"could not be evaluated ({type(exc).__name__}: {exc})"


def _values(env: Mapping[ParamRef, Quantity], owners: Mapping[str | None, str]) -> tuple[tuple[str, str], ...]:
    out = []
    for ref, q in env.items():
        owner = owners.get(ref.owner, ref.owner)
        key = f"{owner}.{ref.name}" if owner else ref.name
        out.append((key, f"{fmt(q.value)} {q.unit.value}".rstrip()))
    return tuple(out)


def _components(connections: Sequence[Connection], boundary: str | None) -> dict[str, str]:
    """Union-find over instance names; boundary ports map to ``boundary``."""
    parent: dict[str, str] = {}

    def find(x: str) -> str:
        parent.setdefault(x, x)
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    for conn in connections:
        a = conn.source.instance or boundary
        b = conn.target.instance or boundary
        if a is None or b is None:
            continue
        ra, rb = find(a), find(b)
        if ra != rb:
            parent[ra] = rb
    return {x: find(x) for x in list(parent)}


# ── Passes ─────────────────────────────────────────────────────────


def undriven_inputs(
    instances: Sequence["BlockInstance"],
    kinds: Mapping[str, "BlockKind"],
    connections: Sequence[Connection],
) -> list[Violation]:
    """Every required input (each bit of an array) must have a driver."""
    driven: set[tuple[str | None, str, int | None]] = {
        (c.target.instance, c.target.port, c.target.index) for c in connections
    }
    violations: list[Violation] = []
    for inst in instances:
        for port in kinds[inst.kind].ports.inputs():
            if not port.required:
                continue
            if (inst.name, port.name, None) in driven:
                continue
            if port.is_array and all((inst.name, port.name, i) in driven for i in range(port.bits)):
                continue
            violations.append(Violation(
                "undriven_input", (inst.name,),
                f"required input '{inst.name}:{port.name}' is not driven",
                stage="structural",
            ))
    return violations


def _local_pass(
    inst: "BlockInstance",
    kind: "BlockKind",
    violations: list[Violation],
    skipped: list[Skipped],
) -> bool:
    ok = True
    for c in kind.local_constraints:
        missing = [r.name for r in c.refs() if r.name not in inst.parameters]
        if missing:
            skipped.append(Skipped(c.name, (inst.name,),
                                   f"optional parameter(s) not supplied: {', '.join(missing)}"))
            continue
        env = {r: inst.parameters[r.name].quantity for r in c.refs()}
        passed, detail = _check(c, env)
        if not passed:
            ok = False
            violations.append(Violation(
                c.name, (inst.name,),
                f"{c.description}: {detail}" if c.description else detail,
                stage="local",
                values=_values(env, {None: inst.name}),
            ))
    return ok


def validate(
    instances: Sequence["BlockInstance"],
    kinds: Mapping[str, "BlockKind"],
    connections: Sequence[Connection],
    bindings: Sequence[Binding] = (),
    *,
    composite: "BlockInstance | None" = None,
    structural: Sequence[Violation] = (),
    skipped: Sequence[Skipped] = (),
) -> ValidationReport:
    """Run all passes and return the full report.

    ``structural`` carries violations the caller already found (e.g. a
    composite constraint whose owner kind has no instance); they are
    reported first, ahead of the undriven-input check; ``skipped`` lists
    constraints the caller could not bind.
    """
    violations: list[Violation] = list(structural)
    skipped = list(skipped)

    violations.extend(undriven_inputs(instances, kinds, connections))

    # ── Pass 1: local ──
    failed: set[str] = set()
    subjects = ([composite] if composite is not None else []) + list(instances)
    by_name = {inst.name: inst for inst in subjects}
    for inst in subjects:
        if not _local_pass(inst, kinds[inst.kind], violations, skipped):
            failed.add(inst.name)

    # ── Pass 2: cross-block ──
    boundary = composite.name if composite is not None else None
    roots = _components(connections, boundary)
    for b in bindings:
        c = b.constraint
        participants = b.participants()

        bad = [p for p in participants if p in failed]
        if bad:
            skipped.append(Skipped(c.name, participants,
                                   f"participant(s) failed local checks: {', '.join(bad)}"))
            continue

        missing = [str(r) for r in c.refs() if r.name not in by_name[b.owners[r.owner]].parameters]
        if missing:
            skipped.append(Skipped(c.name, participants,
                                   f"optional parameter(s) not supplied: {', '.join(missing)}"))
            continue

        if len(participants) > 1 and len({roots.get(p, p) for p in participants}) > 1:
            violations.append(Violation(
                c.name, participants,
                "participating instances are not connected: " + ", ".join(participants),
                stage="cross",
            ))
            continue

        env = {r: by_name[b.owners[r.owner]].parameters[r.name].quantity for r in c.refs()}
        passed, detail = _check(c, env)
        if not passed:
            violations.append(Violation(
                c.name, participants,
                f"{c.description}: {detail}" if c.description else detail,
                stage="cross",
                values=_values(env, b.owners),
            ))

    report = ValidationReport(violations=tuple(violations), skipped=tuple(skipped))
    log.debug("Validation: %d violations, %d skipped", len(report.violations), len(report.skipped))
    return report
