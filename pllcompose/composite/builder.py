"""Composite builder — assembles instances and wiring, then validates.

States::

    EMPTY --add_instance--> ASSEMBLING --finalize--> VALIDATED
                                       \\-finalize--> REJECTED

``finalize()`` is idempotent once terminal.  A rejected builder drops its
partial graph; callers start over with a new builder.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pllcompose.constraints.engine import Binding, validate
from pllcompose.constraints.models import Constraint, ParamRef, Skipped, Violation
from pllcompose.errors import (
    BuilderStateError, DuplicateInstance, MalformedConstraint, SchemaError, UnitMismatch,
    UnknownInstance, UnknownPort,
)
from pllcompose.params import Unit
from pllcompose.ports import Connection, Endpoint, PortRef, check_connection, resolve_endpoint
from pllcompose.ports.wiring import BitKey
from pllcompose.registry.models import BlockInstance, BlockKind
from pllcompose.registry.registry import BlockRegistry

from .models import BuilderState, BuildResult, CompositeDesign


log = logging.getLogger(__name__)


class CompositeBuilder:
    """Builds one CompositeDesign against a caller-owned registry.

    ``kind`` names an optional composite BlockKind: its ports become the
    design's boundary ports, ``parameters`` bind its own parameter record,
    and its cross-block constraints are resolved by kind name.
    """

    def __init__(
        self,
        registry: BlockRegistry,
        name: str,
        kind: str | None = None,
        parameters: Mapping[str, object] | None = None,
    ) -> None:
        if kind is None and parameters:
            raise SchemaError(f"design '{name}': parameters given without a composite kind")
        self.registry = registry
        self.name = name
        self.kind: BlockKind | None = registry.get(kind) if kind else None
        self.own: BlockInstance | None = (
            registry.instantiate(kind, name, parameters) if kind else None
        )

        self._instances: dict[str, BlockInstance] = {}
        self._connections: list[Connection] = []
        self._driven: dict[BitKey, str] = {}
        self._constraints: list[Constraint] = []
        self._state = BuilderState.EMPTY
        self._result: BuildResult | None = None

    # ── Introspection ──────────────────────────────────────────────

    @property
    def state(self) -> BuilderState:
        return self._state

    @property
    def instances(self) -> tuple[BlockInstance, ...]:
        return tuple(self._instances.values())

    @property
    def connections(self) -> tuple[Connection, ...]:
        return tuple(self._connections)

    def _require(self, operation: str, *states: BuilderState) -> None:
        if self._state not in states:
            raise BuilderStateError(operation, self._state.name)

    # ── Hooks for fixed-topology subclasses ────────────────────────

    def _check_instance(self, kind: BlockKind, instance_name: str) -> None:
        """Raise to refuse an instance of ``kind``.  Open by default."""

    def _check_topology(self, source: PortRef, target: PortRef) -> None:
        """Raise to refuse an edge before its ports are resolved.  Open by default."""

    # ── Assembly ───────────────────────────────────────────────────

    def add_instance(
        self,
        kind_name: str,
        instance_name: str,
        parameters: Mapping[str, object] | None = None,
    ) -> BlockInstance:
        self._require("add_instance", BuilderState.EMPTY, BuilderState.ASSEMBLING)
        if instance_name in self._instances or instance_name == self.name:
            raise DuplicateInstance(instance_name)

        kind = self.registry.get(kind_name)
        self._check_instance(kind, instance_name)
        inst = self.registry.instantiate(kind_name, instance_name, parameters)

        self._instances[instance_name] = inst
        self._state = BuilderState.ASSEMBLING
        return inst

    def _endpoint(self, ref: PortRef, source: str, target: str) -> Endpoint:
        if ref.is_boundary:
            if self.kind is None:
                raise UnknownPort(source, target,
                                  f"design '{self.name}' has no boundary ports (no composite kind)")
            return resolve_endpoint(self.kind.ports, ref, source, target)
        inst = self._instances.get(ref.instance)
        if inst is None:
            raise UnknownInstance(source, target, f"no instance named '{ref.instance}'")
        return resolve_endpoint(self.registry.get(inst.kind).ports, ref, source, target)

    def connect(self, source: str | PortRef, target: str | PortRef) -> Connection:
        """Record ``source -> target``.

        Raises ``UnknownInstance``/``UnknownPort`` for bad references,
        ``TopologyViolation`` (fixed-topology builders), ``DirectionMismatch``,
        ``WidthMismatch`` or ``PortAlreadyDriven``.  A refused edge leaves
        the design unchanged.
        """
        self._require("connect", BuilderState.ASSEMBLING)
        try:
            src, dst = PortRef.parse(source), PortRef.parse(target)
        except ValueError as exc:
            raise UnknownPort(str(source), str(target), str(exc)) from None
        s, t = str(src), str(dst)

        self._check_topology(src, dst)
        src_ep = self._endpoint(src, s, t)
        dst_ep = self._endpoint(dst, s, t)
        check_connection(src_ep, dst_ep, self._driven)

        conn = Connection(src, dst)
        self._connections.append(conn)
        for key in dst_ep.bit_keys():
            self._driven[key] = s
        log.debug("%s: connected %s", self.name, conn)
        return conn

    def add_constraint(self, constraint: Constraint) -> None:
        """Attach an extra cross-block constraint to this design only.

        Owners are instance names already added to the builder; ``None``
        refers to the composite's own parameters.  Bad references raise
        ``MalformedConstraint`` immediately, as do units that can never
        line up.
        """
        self._require("add_constraint", BuilderState.EMPTY, BuilderState.ASSEMBLING)
        taken = {c.name for c in self._constraints}
        if self.kind is not None:
            taken |= {c.name for c in self.kind.constraints}
        if constraint.name in taken:
            raise MalformedConstraint(constraint.name, "name already used in this design")

        for ref in constraint.refs():
            if ref.owner is None:
                if self.kind is None or self.kind.parameter(ref.name) is None:
                    raise MalformedConstraint(
                        constraint.name, f"design '{self.name}' has no parameter '{ref.name}'")
                continue
            inst = self._instances.get(ref.owner)
            if inst is None:
                raise MalformedConstraint(constraint.name, f"unknown instance '{ref.owner}'")
            if self.registry.get(inst.kind).parameter(ref.name) is None:
                raise MalformedConstraint(
                    constraint.name, f"'{ref.owner}' ({inst.kind}) has no parameter '{ref.name}'")

        def unit_of(ref: ParamRef) -> Unit:
            if ref.owner is None:
                return self.kind.parameter(ref.name).unit
            kind = self.registry.get(self._instances[ref.owner].kind)
            return kind.parameter(ref.name).unit

        try:
            constraint.check_units(unit_of)
        except UnitMismatch as exc:
            raise MalformedConstraint(constraint.name, f"unit mismatch: {exc}") from None
        self._constraints.append(constraint)

    # ── Finalize ───────────────────────────────────────────────────

    def _bind(self) -> tuple[list[Binding], list[Violation], list[Skipped]]:
        """Resolve constraint owners to instance names."""
        bindings: list[Binding] = []
        structural: list[Violation] = []
        skipped: list[Skipped] = []

        if self.kind is not None:
            by_kind: dict[str, list[str]] = {}
            for inst in self._instances.values():
                by_kind.setdefault(inst.kind, []).append(inst.name)

            reported: set[str] = set()
            for c in self.kind.cross_constraints:
                owners: dict[str | None, str] = {None: self.name}
                unresolved = []
                for owner in c.owners:
                    names = by_kind.get(owner, [])
                    if len(names) == 1:
                        owners[owner] = names[0]
                        continue
                    unresolved.append(owner)
                    if owner in reported:
                        continue
                    reported.add(owner)
                    if not names:
                        structural.append(Violation(
                            "missing_instance", (self.name,),
                            f"'{self.kind.name}' needs one {owner} instance, found none",
                            stage="structural",
                        ))
                    else:
                        structural.append(Violation(
                            "ambiguous_instance", tuple(names),
                            f"'{self.kind.name}' needs one {owner} instance, found {len(names)}",
                            stage="structural",
                        ))
                if unresolved:
                    skipped.append(Skipped(c.name, (self.name,),
                                           f"no unique instance for: {', '.join(unresolved)}"))
                else:
                    bindings.append(Binding(c, owners))

        for c in self._constraints:
            owners = {owner: owner for owner in c.owners}
            owners[None] = self.name
            bindings.append(Binding(c, owners))

        return bindings, structural, skipped

    def finalize(self) -> BuildResult:
        """Validate and move to a terminal state.  Repeat calls return the
        same result without re-running validation."""
        if self._result is not None:
            return self._result
        self._require("finalize", BuilderState.ASSEMBLING)

        bindings, structural, skipped = self._bind()
        kinds = {k.name: k for k in self.registry}
        report = validate(
            list(self._instances.values()),
            kinds,
            self._connections,
            bindings,
            composite=self.own,
            structural=structural,
            skipped=skipped,
        )

        if report.ok:
            design = CompositeDesign(
                name=self.name,
                kind=self.kind.name if self.kind else None,
                parameters=self.own,
                instances=tuple(self._instances.values()),
                connections=tuple(self._connections),
                constraints=tuple(b.constraint for b in bindings),
            )
            self._state = BuilderState.VALIDATED
            log.info("%s: validated (%d instances, %d connections, %d skipped constraints)",
                     self.name, len(design.instances), len(design.connections),
                     len(report.skipped))
        else:
            design = None
            self._state = BuilderState.REJECTED
            log.warning("%s: rejected with %d violation(s): %s",
                        self.name, len(report.violations), ", ".join(report.names()))
            # Partial graph is not kept for further mutation.
            self._instances.clear()
            self._connections.clear()
            self._driven.clear()
            self._constraints.clear()

        self._result = BuildResult(state=self._state, design=design, report=report)
        return self._result
