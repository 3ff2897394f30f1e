"""Tests for constraint expressions, predicates and the validation engine.

The engine tests drive ``validate`` directly with Dff instances so the
structural, local and cross passes can be exercised one at a time.
"""

from __future__ import annotations

import unittest
from decimal import Decimal

from pllcompose.constraints import (
    Binding, Constraint, ParamRef, ValidationReport, Violation,
    above, at_least, at_most, below, const, equal, param, power_of_two, product, ratio,
    total, undriven_inputs, validate, within,
)
from pllcompose.errors import MalformedConstraint, UnitMismatch
from pllcompose.params import ParameterSpec, Quantity, Unit
from pllcompose.ports import Connection, PortRef
from pllcompose.registry import pll_registry


def _env(**values):
    return {ParamRef.parse(k.replace("__", ".")): v for k, v in values.items()}


HZ = Unit.HERTZ
S = Unit.SECOND


class TestExpressions(unittest.TestCase):

    def test_param_ref_parse(self):
        self.assertEqual(ParamRef.parse("fmax"), ParamRef(None, "fmax"))
        self.assertEqual(ParamRef.parse("Vco.fmax"), ParamRef("Vco", "fmax"))
        self.assertEqual(str(ParamRef("Vco", "fmax")), "Vco.fmax")

    def test_sum_product_ratio(self):
        env = _env(a=Quantity("20e-12", S), b=Quantity("30e-12", S), f=Quantity("1e10", HZ))
        self.assertEqual(product(total("a", "b"), "f").evaluate(env).value, Decimal("0.5"))
        self.assertEqual(ratio("a", "b").evaluate(env).unit, Unit.NONE)

    def test_refs_and_owners(self):
        c = Constraint("x", at_most(product("f_ref", "Divider.div_max"), "Vco.fmax"))
        self.assertEqual([str(r) for r in c.refs()], ["f_ref", "Divider.div_max", "Vco.fmax"])
        self.assertEqual(c.owners, ("Divider", "Vco"))
        self.assertFalse(c.is_local)
        self.assertTrue(Constraint("y", at_most("a", "b")).is_local)

    def test_param_and_const_helpers(self):
        env = _env(a=Quantity(3, HZ))
        self.assertEqual(param("a").evaluate(env), Quantity(3, HZ))
        self.assertEqual(const("1e9", HZ).evaluate(env).unit, HZ)

    def test_static_units(self):
        units = {"t": S, "f": HZ, "n": Unit.NONE}
        lookup = lambda ref: units[ref.name]
        self.assertIs(product("t", "f").unit(lookup), Unit.NONE)
        self.assertIs(product("n", "f").unit(lookup), HZ)
        self.assertIs(ratio(1, "f").unit(lookup), S)
        self.assertIs(ratio("f", "f").unit(lookup), Unit.NONE)
        self.assertIs(total("t", const("1e-12", S)).unit(lookup), S)
        with self.assertRaises(UnitMismatch):
            total("t", "f").unit(lookup)
        with self.assertRaises(UnitMismatch):
            ratio("t", "f").unit(lookup)
        with self.assertRaises(UnitMismatch):
            at_most("t", "f").check_units(lookup)
        power_of_two(ratio("f", "f")).check_units(lookup)

    def test_str(self):
        c = Constraint("timing", at_most(product(total("t_setup", "t_clk_q"), "max_frequency"), 1))
        self.assertEqual(str(c), "timing: (t_setup + t_clk_q) * max_frequency <= 1")


class TestPredicates(unittest.TestCase):

    def test_open_vs_closed(self):
        env = _env(a=Quantity(1), b=Quantity(1))
        self.assertTrue(at_most("a", "b").check(env)[0])
        self.assertTrue(at_least("a", "b").check(env)[0])
        self.assertFalse(below("a", "b").check(env)[0])
        self.assertFalse(above("a", "b").check(env)[0])
        self.assertTrue(equal("a", "b").check(env)[0])

    def test_detail_shows_values(self):
        ok, detail = at_most("a", "b").check(_env(a=Quantity("8e9", HZ), b=Quantity("6e9", HZ)))
        self.assertFalse(ok)
        self.assertEqual(detail, "8E+9 Hz <= 6E+9 Hz")

    def test_compare_unit_mismatch_raises(self):
        with self.assertRaises(UnitMismatch):
            at_most("a", "b").check(_env(a=Quantity(1, HZ), b=Quantity(1, S)))

    def test_within(self):
        pred = within("f", "1e6", "5e10", hi_open=True, unit=HZ)
        self.assertTrue(pred.check(_env(f=Quantity("1e6", HZ)))[0])
        self.assertFalse(pred.check(_env(f=Quantity("5e10", HZ)))[0])
        with self.assertRaises(UnitMismatch):
            pred.check(_env(f=Quantity("1e6", S)))

    def test_power_of_two(self):
        for n, expected in ((1, True), (3, False), (4, True), (8, True), (16, True)):
            self.assertIs(power_of_two("n").check(_env(n=Quantity(n)))[0], expected)

    def test_power_of_two_of_ratio(self):
        pred = power_of_two(ratio("f_out", "f_ref"))
        self.assertTrue(pred.check(_env(f_out=Quantity("8e9", HZ), f_ref=Quantity("1e9", HZ)))[0])
        self.assertFalse(pred.check(_env(f_out=Quantity("3e9", HZ), f_ref=Quantity("1e9", HZ)))[0])

    def test_unknown_operator(self):
        with self.assertRaises(ValueError):
            from pllcompose.constraints import Compare
            Compare(param("a"), "!=", param("b"))


class TestReport(unittest.TestCase):

    def test_ok_and_names(self):
        self.assertTrue(ValidationReport().ok)
        r = ValidationReport(violations=(Violation("a", ("x",), "bad"),))
        self.assertFalse(r.ok)
        self.assertEqual(r.names(), ["a"])
        self.assertEqual(str(r.violations[0]), "[a] (x) bad")


class TestEngine(unittest.TestCase):

    def setUp(self):
        self.reg = pll_registry()
        self.kinds = {k.name: k for k in self.reg}
        self.ff0 = self.reg.instantiate("Dff", "ff0")
        self.ff1 = self.reg.instantiate("Dff", "ff1")
        self.chain = [Connection(PortRef("ff0", "q"), PortRef("ff1", "d"))]

    def test_undriven_inputs(self):
        violations = undriven_inputs([self.ff0, self.ff1], self.kinds, self.chain)
        self.assertEqual(
            [v.description for v in violations],
            ["required input 'ff0:d' is not driven",
             "required input 'ff0:clk' is not driven",
             "required input 'ff1:clk' is not driven"],
        )
        self.assertTrue(all(v.stage == "structural" for v in violations))

    def test_optional_inputs_not_required(self):
        violations = undriven_inputs([self.ff0], self.kinds, [])
        self.assertNotIn("ff0:rst", " ".join(v.description for v in violations))

    def test_local_violation_carries_values(self):
        slow = self.reg.instantiate("Dff", "slow", {"t_setup": "60e-12", "t_clk_q": "60e-12"})
        report = validate([slow], self.kinds, [])
        local = [v for v in report.violations if v.stage == "local"]
        self.assertEqual([v.constraint for v in local], ["timing_closure"])
        self.assertIn(("slow.t_setup", "6.0E-11 s"), local[0].values)

    def test_cross_constraint_checked(self):
        c = Constraint("hold_after_clk_q", at_least("a.t_clk_q", "b.t_hold"))
        report = validate([self.ff0, self.ff1], self.kinds, self.chain,
                          [Binding(c, {"a": "ff0", "b": "ff1"})])
        self.assertNotIn("hold_after_clk_q", report.names())

        c = Constraint("hold_after_clk_q", at_most("a.t_clk_q", "b.t_hold"))
        report = validate([self.ff0, self.ff1], self.kinds, self.chain,
                          [Binding(c, {"a": "ff0", "b": "ff1"})])
        [v] = [v for v in report.violations if v.constraint == "hold_after_clk_q"]
        self.assertEqual(v.instances, ("ff0", "ff1"))
        self.assertEqual(v.stage, "cross")

    def test_cross_skipped_when_participant_failed_locally(self):
        slow = self.reg.instantiate("Dff", "ff1", {"t_setup": "60e-12", "t_clk_q": "60e-12"})
        c = Constraint("hold_after_clk_q", at_most("a.t_clk_q", "b.t_hold"))
        report = validate([self.ff0, slow], self.kinds, self.chain,
                          [Binding(c, {"a": "ff0", "b": "ff1"})])
        self.assertNotIn("hold_after_clk_q", report.names())
        self.assertEqual([s.constraint for s in report.skipped], ["hold_after_clk_q"])

    def test_unconnected_participants(self):
        c = Constraint("hold_after_clk_q", at_least("a.t_clk_q", "b.t_hold"))
        report = validate([self.ff0, self.ff1], self.kinds, [],
                          [Binding(c, {"a": "ff0", "b": "ff1"})])
        [v] = [v for v in report.violations if v.constraint == "hold_after_clk_q"]
        self.assertIn("not connected", v.description)

    def test_unit_mismatch_rejected_at_registration(self):
        c = Constraint("nonsense", at_most("t_setup", "Dff.max_frequency"))
        with self.assertRaises(MalformedConstraint) as ctx:
            self.reg.register("Bad", [], [ParameterSpec("t_setup", S)], [c], composite=True)
        self.assertIn("compare", ctx.exception.reason)
        self.assertNotIn("Bad", self.reg)

    def test_arithmetic_error_is_a_violation(self):
        zero_hold = self.reg.instantiate("Dff", "ff1", {"t_hold": 0})
        c = Constraint("hold_ratio", at_most(ratio("a.t_clk_q", "b.t_hold"), 10))
        report = validate([self.ff0, zero_hold], self.kinds, self.chain,
                          [Binding(c, {"a": "ff0", "b": "ff1"})])
        [v] = [v for v in report.violations if v.constraint == "hold_ratio"]
        self.assertIn("could not be evaluated", v.description)

    def test_all_violations_collected(self):
        slow = self.reg.instantiate("Dff", "slow", {"t_setup": "60e-12", "t_clk_q": "60e-12"})
        report = validate([self.ff0, slow], self.kinds, [])
        stages = [v.stage for v in report.violations]
        self.assertEqual(stages.count("structural"), 4)
        self.assertEqual(stages.count("local"), 1)
        # structural violations come first
        self.assertEqual(stages, sorted(stages, key=["structural", "local", "cross"].index))


if __name__ == "__main__":
    unittest.main()
