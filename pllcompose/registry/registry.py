"""Block registry — per-caller table of block kinds and the instantiation
entry point.

There is no module-level registry: every sweep or request
creates its own ``BlockRegistry`` (see :func:`pllcompose.registry.kinds.pll_registry`).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping

from pllcompose.constraints.models import Constraint, ParamRef
from pllcompose.errors import (
    DuplicateKind, MalformedConstraint, MissingParameter, SchemaError, UnitMismatch,
    UnknownKind, UnknownParameter,
)
from pllcompose.params import Parameter, ParameterSpec, Unit
from pllcompose.ports import Port, PortBundle, PortGroup

from .models import BlockInstance, BlockKind


log = logging.getLogger(__name__)


class BlockRegistry:
    """Named block kinds, each with a fixed port shape and parameter table."""

    def __init__(self) -> None:
        self._kinds: dict[str, BlockKind] = {}

    # ── Registration ───────────────────────────────────────────────

    def register(
        self,
        kind_name: str,
        ports: PortBundle | Iterable[Port | PortGroup],
        parameters: Iterable[ParameterSpec],
        constraints: Iterable[Constraint] = (),
        *,
        description: str = "",
        composite: bool = False,
    ) -> BlockKind:
        """Declare a new block kind.

        Raises ``DuplicateKind`` if the name is taken and
        ``MalformedConstraint`` if any constraint references a parameter
        (or, for composites, a kind) that does not exist, or whose declared
        units can never line up.  Nothing is registered when a check fails.
        """
        if kind_name in self._kinds:
            raise DuplicateKind(kind_name)

        bundle = ports if isinstance(ports, PortBundle) else PortBundle(ports)
        kind = BlockKind(
            name=kind_name,
            ports=bundle,
            parameters=tuple(parameters),
            constraints=tuple(constraints),
            description=description,
            composite=composite,
        )
        self._check_kind(kind)
        self._kinds[kind_name] = kind
        log.debug("Registered kind %s (%d ports, %d parameters, %d constraints)",
                  kind_name, len(bundle), len(kind.parameters), len(kind.constraints))
        return kind

    def _check_kind(self, kind: BlockKind) -> None:
        names: set[str] = set()
        for spec in kind.parameters:
            if spec.name in names:
                raise SchemaError(f"kind '{kind.name}': duplicate parameter '{spec.name}'")
            names.add(spec.name)

        def unit_of(ref: ParamRef) -> Unit:
            owner = kind if ref.owner is None else self._kinds[ref.owner]
            return owner.parameter(ref.name).unit

        seen: set[str] = set()
        for c in kind.constraints:
            if c.name in seen:
                raise MalformedConstraint(c.name, f"declared twice on '{kind.name}'")
            seen.add(c.name)
            for ref in c.refs():
                if ref.owner is None:
                    if kind.parameter(ref.name) is None:
                        raise MalformedConstraint(
                            c.name, f"'{kind.name}' has no parameter '{ref.name}'")
                    continue
                if not kind.composite:
                    raise MalformedConstraint(
                        c.name, f"leaf kind '{kind.name}' may only reference its own parameters "
                                f"(got '{ref}')")
                other = self._kinds.get(ref.owner)
                if other is None:
                    raise MalformedConstraint(c.name, f"references unknown kind '{ref.owner}'")
                if other.parameter(ref.name) is None:
                    raise MalformedConstraint(
                        c.name, f"'{ref.owner}' has no parameter '{ref.name}'")

            try:
                c.check_units(unit_of)
            except UnitMismatch as exc:
                raise MalformedConstraint(c.name, f"unit mismatch: {exc}") from None

    # ── Lookup ─────────────────────────────────────────────────────

    def get(self, kind_name: str) -> BlockKind:
        try:
            return self._kinds[kind_name]
        except KeyError:
            raise UnknownKind(kind_name) from None

    def __contains__(self, kind_name: object) -> bool:
        return kind_name in self._kinds

    def __iter__(self) -> Iterator[BlockKind]:
        return iter(self._kinds.values())

    def __len__(self) -> int:
        return len(self._kinds)

    def kind_names(self) -> list[str]:
        return list(self._kinds)

    # ── Instantiation ──────────────────────────────────────────────

    def instantiate(
        self,
        kind_name: str,
        instance_name: str,
        parameter_values: Mapping[str, object] | None = None,
    ) -> BlockInstance:
        """Bind concrete values to a kind's parameter table.

        Raises ``UnknownKind``, ``UnknownParameter``, ``MissingParameter``,
        ``InvalidValue`` or ``OutOfRange`` (the last two from the parameter
        model).  Omitted parameters with a default take the default; optional
        ones are left unbound.
        """
        kind = self.get(kind_name)
        values = {k: v for k, v in (parameter_values or {}).items() if v is not None}

        for name in values:
            if kind.parameter(name) is None:
                raise UnknownParameter(kind_name, name, instance_name)

        bound: dict[str, Parameter] = {}
        for spec in kind.parameters:
            if spec.name in values:
                bound[spec.name] = spec.bind(values[spec.name], instance=instance_name)
            elif spec.default is not None:
                bound[spec.name] = spec.bind(spec.default, instance=instance_name)
            elif spec.required:
                raise MissingParameter(kind_name, spec.name, instance_name)

        log.debug("Instantiated %s '%s' with %d parameters", kind_name, instance_name, len(bound))
        return BlockInstance(name=instance_name, kind=kind_name, parameters=bound)
