"""Built-in PLL block kinds — port shapes, parameter tables, constraints.

Ranges are *not* written here: they come from a range table (by default
the JSON files in ``registry/ranges/``) so that process-specific numbers
stay out of the schema.  A parameter the table does not mention is
unbounded and has no default.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pllcompose.constraints.models import (
    Constraint, at_least, at_most, below, power_of_two, product, ratio, total,
)
from pllcompose.errors import SchemaError, UnknownKind, UnknownParameter
from pllcompose.params import ParameterSpec, Unit
from pllcompose.ports import Direction, Port, PortGroup, power_group

from .models import RangeEntry
from .registry import BlockRegistry


log = logging.getLogger(__name__)

VCO = "Vco"
CHARGE_PUMP = "ChargePump"
DFF = "Dff"
PFD = "Pfd"
DIVIDER = "Divider"
PLL = "Pll"

IN, OUT = Direction.INPUT, Direction.OUTPUT


def _p(name: str, unit: Unit, description: str, *, optional: bool = False) -> dict:
    return {"name": name, "unit": unit, "description": description, "optional": optional}


# (kind, description, ports, parameters, constraints, composite)
_KINDS: list[tuple[str, str, list[Port | PortGroup], list[dict], list[Constraint], bool]] = [
    (
        VCO, "Voltage-controlled oscillator",
        [Port("tune", IN, description="control voltage"),
         Port("out", OUT, description="oscillator output"),
         power_group()],
        [_p("fmin", Unit.HERTZ, "lowest tunable frequency"),
         _p("fmax", Unit.HERTZ, "highest tunable frequency"),
         _p("jitter", Unit.SECOND, "rms jitter contribution"),
         _p("maxcap", Unit.FEMTOFARAD, "maximum output load"),
         _p("tr", Unit.SECOND, "output rise time"),
         _p("tf", Unit.SECOND, "output fall time")],
        [Constraint("fmax_ge_fmin", at_least("fmax", "fmin"),
                    "tuning range must not be inverted")],
        False,
    ),
    (
        CHARGE_PUMP, "Charge pump with passive loop filter (R1 + C1 || C2)",
        [Port("up", IN), Port("down", IN),
         Port("vcont", OUT, description="filtered control voltage"),
         power_group()],
        [_p("i_pump", Unit.AMPERE, "pump current"),
         _p("r1", Unit.OHM, "loop filter series resistor"),
         _p("c1", Unit.FARAD, "loop filter series capacitor"),
         _p("c2", Unit.FARAD, "loop filter shunt capacitor"),
         _p("jitter", Unit.SECOND, "rms jitter contribution")],
        [],
        False,
    ),
    (
        DFF, "D flip-flop",
        [Port("d", IN), Port("clk", IN),
         Port("rst", IN, required=False, description="async reset"),
         Port("q", OUT), Port("qb", OUT),
         power_group()],
        [_p("t_setup", Unit.SECOND, "setup time"),
         _p("t_hold", Unit.SECOND, "hold time"),
         _p("t_clk_q", Unit.SECOND, "clock-to-q delay"),
         _p("max_frequency", Unit.HERTZ, "maximum clock frequency")],
        [Constraint("timing_closure",
                    at_most(product(total("t_setup", "t_clk_q"), "max_frequency"), 1),
                    "setup + clock-to-q must fit in one clock period")],
        False,
    ),
    (
        PFD, "Phase/frequency detector",
        [Port("a", IN, description="reference clock"),
         Port("b", IN, description="feedback clock"),
         Port("q_a", OUT, description="up pulse"),
         Port("q_b", OUT, description="down pulse"),
         power_group()],
        [_p("max_frequency", Unit.HERTZ, "maximum input frequency"),
         _p("dead_zone", Unit.SECOND, "reset pulse width"),
         _p("jitter", Unit.SECOND, "rms jitter contribution")],
        [Constraint("dead_zone_within_period", below(product("dead_zone", "max_frequency"), 1),
                    "reset pulse must be strictly shorter than the input period")],
        False,
    ),
    (
        DIVIDER, "Programmable power-of-two frequency divider",
        [Port("clk_in", IN), Port("clk_out", OUT),
         Port("sel", IN, width=4, required=False, description="ratio select"),
         power_group()],
        [_p("div_min", Unit.NONE, "smallest division ratio"),
         _p("div_max", Unit.NONE, "largest division ratio"),
         _p("max_frequency", Unit.HERTZ, "maximum input frequency"),
         _p("jitter", Unit.SECOND, "rms jitter contribution")],
        [Constraint("div_min_power_of_two", power_of_two("div_min"),
                    "division ratios must be powers of two"),
         Constraint("div_max_power_of_two", power_of_two("div_max"),
                    "division ratios must be powers of two"),
         Constraint("div_min_le_div_max", at_most("div_min", "div_max"),
                    "ratio range must not be inverted")],
        False,
    ),
    (
        PLL, "Charge-pump PLL frequency synthesizer",
        [Port("ref", IN, description="reference clock"),
         power_group()],
        [_p("f_ref", Unit.HERTZ, "reference frequency"),
         _p("f_out", Unit.HERTZ, "requested output frequency", optional=True),
         _p("jitter_budget", Unit.SECOND, "total allowed rms jitter")],
        [Constraint("f_out_ge_f_ref", at_least("f_out", "f_ref"),
                    "a divider in the feedback path can only multiply"),
         Constraint("ref_within_pfd", at_most("f_ref", f"{PFD}.max_frequency"),
                    "reference must not exceed the PFD input range"),
         Constraint("fout_max_within_vco",
                    at_most(product("f_ref", f"{DIVIDER}.div_max"), f"{VCO}.fmax"),
                    "highest output (f_ref x div_max) must be reachable by the VCO"),
         Constraint("fout_min_within_vco",
                    at_least(product("f_ref", f"{DIVIDER}.div_min"), f"{VCO}.fmin"),
                    "lowest output (f_ref x div_min) must be reachable by the VCO"),
         Constraint("vco_within_divider", at_most(f"{VCO}.fmax", f"{DIVIDER}.max_frequency"),
                    "divider must accept the full VCO range"),
         Constraint("jitter_budget",
                    at_most(total(f"{VCO}.jitter", f"{CHARGE_PUMP}.jitter",
                                  f"{PFD}.jitter", f"{DIVIDER}.jitter"),
                            "jitter_budget"),
                    "sum of sub-block jitter must fit the budget"),
         Constraint("target_ratio_power_of_two", power_of_two(ratio("f_out", "f_ref")),
                    "f_out / f_ref must be a power-of-two multiplier"),
         Constraint("target_above_div_min", at_least(ratio("f_out", "f_ref"), f"{DIVIDER}.div_min"),
                    "multiplier must be reachable by the divider"),
         Constraint("target_below_div_max", at_most(ratio("f_out", "f_ref"), f"{DIVIDER}.div_max"),
                    "multiplier must be reachable by the divider")],
        True,
    ),
]

PLL_SUB_KINDS = (PFD, CHARGE_PUMP, VCO, DIVIDER)


def _spec(row: dict, kind: str, entries: Mapping[str, RangeEntry]) -> ParameterSpec:
    entry = entries.get(row["name"])
    if entry is None:
        return ParameterSpec(row["name"], row["unit"], optional=row["optional"],
                             description=row["description"])
    if entry.unit is not row["unit"]:
        raise SchemaError(
            f"range table for '{kind}.{row['name']}' uses unit '{entry.unit.value}', "
            f"expected '{row['unit'].value}'")
    return ParameterSpec(row["name"], row["unit"], entry.range, entry.default,
                         optional=row["optional"], description=row["description"])


def register_pll_kinds(
    registry: BlockRegistry,
    ranges: Mapping[str, Mapping[str, RangeEntry]] | None = None,
) -> None:
    """Register Vco, ChargePump, Dff, Pfd, Divider and Pll on ``registry``.

    ``ranges`` maps kind -> parameter -> RangeEntry.  Entries for unknown
    kinds or parameters raise, so a typo in a table never goes unnoticed.
    """
    ranges = ranges or {}
    known = {name: {row["name"] for row in params} for name, _, _, params, _, _ in _KINDS}
    for kind, table in ranges.items():
        if kind not in known:
            raise UnknownKind(kind)
        for pname in table:
            if pname not in known[kind]:
                raise UnknownParameter(kind, pname)

    for name, description, ports, params, constraints, composite in _KINDS:
        entries = ranges.get(name, {})
        registry.register(
            name,
            ports,
            [_spec(row, name, entries) for row in params],
            constraints,
            description=description,
            composite=composite,
        )
    log.debug("Registered %d PLL kinds", len(_KINDS))


def pll_registry(ranges: Mapping[str, Mapping[str, RangeEntry]] | None = None) -> BlockRegistry:
    """Fresh registry seeded with the PLL kinds.

    With ``ranges=None`` the bundled range tables are loaded; pass an
    explicit mapping (possibly empty) to use other numbers.
    """
    if ranges is None:
        from .loader import load_ranges
        result = load_ranges()
        if not result.ok:
            raise SchemaError("; ".join(str(e) for e in result.errors))
        ranges = result.as_mapping()
    registry = BlockRegistry()
    register_pll_kinds(registry, ranges)
    return registry
