"""PLL composite — fixed four-block topology on top of CompositeBuilder.

The loop is::

    ref --> Pfd.a
    Pfd.q_a --> ChargePump.up        Pfd.q_b --> ChargePump.down
    ChargePump.vcont --> Vco.tune
    Vco.out --> Divider.clk_in
    Divider.clk_out --> Pfd.b        (feedback)

plus the boundary ``pwr`` rails fanned out to every sub-block.  Any other
edge, a second instance of a sub-kind, or a kind outside the four is
refused with ``TopologyViolation`` (``InstanceNotAllowed`` for instances)
at the call that attempted it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from pllcompose.errors import InstanceNotAllowed, TopologyViolation
from pllcompose.params import Range
from pllcompose.ports import PortRef
from pllcompose.registry.kinds import CHARGE_PUMP, DIVIDER, PFD, PLL, PLL_SUB_KINDS, VCO
from pllcompose.registry.models import BlockKind
from pllcompose.registry.registry import BlockRegistry

from .builder import CompositeBuilder
from .models import BuildResult, CompositeDesign


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TopologyEdge:
    """Allowed edge between kinds; ``None`` kind means the PLL boundary."""

    source_kind: str | None
    source_port: str
    target_kind: str | None
    target_port: str

    def __str__(self) -> str:
        src = f"{self.source_kind}.{self.source_port}" if self.source_kind else self.source_port
        dst = f"{self.target_kind}.{self.target_port}" if self.target_kind else self.target_port
        return f"{src} -> {dst}"


_SIGNAL_EDGES = (
    TopologyEdge(None, "ref", PFD, "a"),
    TopologyEdge(PFD, "q_a", CHARGE_PUMP, "up"),
    TopologyEdge(PFD, "q_b", CHARGE_PUMP, "down"),
    TopologyEdge(CHARGE_PUMP, "vcont", VCO, "tune"),
    TopologyEdge(VCO, "out", DIVIDER, "clk_in"),
    TopologyEdge(DIVIDER, "clk_out", PFD, "b"),
)

CANONICAL_TOPOLOGY: tuple[TopologyEdge, ...] = _SIGNAL_EDGES + tuple(
    TopologyEdge(None, rail, kind, rail)
    for kind in PLL_SUB_KINDS
    for rail in ("pwr.vdd", "pwr.vss")
)

_ALLOWED = frozenset((e.source_kind, e.source_port, e.target_kind, e.target_port)
                     for e in CANONICAL_TOPOLOGY)

# Default instance names used by build_pll / wire_canonical.
INSTANCE_NAMES = {PFD: "pfd", CHARGE_PUMP: "cp", VCO: "vco", DIVIDER: "div"}


class PllBuilder(CompositeBuilder):
    """CompositeBuilder restricted to the canonical charge-pump PLL."""

    def __init__(self, registry: BlockRegistry, name: str = "pll",
                 parameters: Mapping[str, object] | None = None) -> None:
        super().__init__(registry, name, kind=PLL, parameters=parameters)

    def _check_instance(self, kind: BlockKind, instance_name: str) -> None:
        if kind.name not in PLL_SUB_KINDS:
            raise InstanceNotAllowed(
                instance_name, kind.name, self.name,
                f"a PLL contains only {', '.join(PLL_SUB_KINDS)}")
        for inst in self._instances.values():
            if inst.kind == kind.name:
                raise InstanceNotAllowed(
                    instance_name, kind.name, self.name,
                    f"a PLL has exactly one {kind.name} (already have '{inst.name}')")

    def _check_topology(self, source: PortRef, target: PortRef) -> None:
        # unknown instances are left to endpoint resolution
        if any(not r.is_boundary and r.instance not in self._instances for r in (source, target)):
            return
        key = (self._kind_of(source), source.port, self._kind_of(target), target.port)
        if key not in _ALLOWED or source.index is not None or target.index is not None:
            raise TopologyViolation(str(source), str(target),
                                    "edge is not part of the canonical PLL loop")

    def _kind_of(self, ref: PortRef) -> str | None:
        if ref.is_boundary:
            return None
        return self._instances[ref.instance].kind

    def instance_for(self, kind: str) -> str | None:
        for inst in self._instances.values():
            if inst.kind == kind:
                return inst.name
        return None

    def wire_canonical(self) -> None:
        """Connect every canonical edge whose two ends are present.

        Boundary edges are always attempted.  Edges already made are left
        alone, so this may be called after some manual ``connect`` calls.
        """
        made = {(str(c.source), str(c.target)) for c in self._connections}
        for edge in CANONICAL_TOPOLOGY:
            ends = []
            for kind, port in ((edge.source_kind, edge.source_port),
                               (edge.target_kind, edge.target_port)):
                if kind is None:
                    ends.append(port)
                    continue
                inst = self.instance_for(kind)
                if inst is None:
                    break
                ends.append(f"{inst}:{port}")
            if len(ends) != 2 or tuple(ends) in made:
                continue
            self.connect(ends[0], ends[1])
        log.debug("%s: canonical wiring done (%d connections)", self.name, len(self._connections))


def build_pll(
    registry: BlockRegistry,
    *,
    f_ref,
    vco: Mapping[str, object],
    charge_pump: Mapping[str, object],
    pfd: Mapping[str, object],
    divider: Mapping[str, object],
    name: str = "pll",
    f_out=None,
    jitter_budget=None,
    wire: bool = True,
) -> BuildResult:
    """One-call PLL assembly: instantiate the four sub-blocks, wire the
    canonical loop and finalize.

    Schema and range errors raise as usual; constraint failures come back
    in the result's report.
    """
    builder = PllBuilder(registry, name, {
        "f_ref": f_ref, "f_out": f_out, "jitter_budget": jitter_budget,
    })
    for kind, values in ((PFD, pfd), (CHARGE_PUMP, charge_pump), (VCO, vco), (DIVIDER, divider)):
        builder.add_instance(kind, INSTANCE_NAMES[kind], values)
    if wire:
        builder.wire_canonical()
    return builder.finalize()


def pll_output_range(design: CompositeDesign) -> Range:
    """Reachable output frequencies: ``[f_ref * div_min, f_ref * div_max]``."""
    if design.kind != PLL or design.parameters is None:
        raise ValueError(f"design '{design.name}' is not a PLL")
    f_ref = design.parameters["f_ref"]
    div = design.instances_of(DIVIDER)[0]
    return Range((f_ref * div["div_min"]).value, (f_ref * div["div_max"]).value)
