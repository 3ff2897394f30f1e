"""Tests for the port bundle model and single-edge connection checks."""

from __future__ import annotations

import unittest

from pllcompose.errors import (
    DirectionMismatch, DuplicatePort, PortAlreadyDriven, SchemaError, UnknownPort, WidthMismatch,
)
from pllcompose.ports import (
    Direction, Port, PortBundle, PortGroup, PortRef, check_connection, power_group, resolve_endpoint,
)


def _bundle():
    return PortBundle([
        Port("clk_in", Direction.INPUT),
        Port("clk_out", Direction.OUTPUT),
        Port("sel", Direction.INPUT, width=4, required=False),
        power_group(),
    ])


class TestPortBundle(unittest.TestCase):

    def test_groups_are_flattened(self):
        b = _bundle()
        self.assertEqual(list(b), ["clk_in", "clk_out", "sel", "pwr.vdd", "pwr.vss"])
        self.assertIs(b["pwr.vdd"].direction, Direction.INOUT)

    def test_duplicate_port(self):
        with self.assertRaises(DuplicatePort) as ctx:
            PortBundle([Port("a", "in"), PortGroup("a", ()), Port("a", "out")])
        self.assertEqual(ctx.exception.port, "a")

    def test_duplicate_inside_group(self):
        with self.assertRaises(DuplicatePort):
            PortBundle([Port("pwr.vdd", "inout"), power_group()])

    def test_inputs_outputs(self):
        b = _bundle()
        self.assertEqual([p.name for p in b.inputs()], ["clk_in", "sel"])
        self.assertEqual([p.name for p in b.outputs()], ["clk_out"])

    def test_array_width(self):
        self.assertEqual(_bundle()["sel"].bits, 4)
        self.assertEqual(_bundle()["clk_in"].bits, 1)
        with self.assertRaises(SchemaError):
            Port("bus", Direction.INPUT, width=0)

    def test_direction_from_string(self):
        self.assertIs(Port("x", "out").direction, Direction.OUTPUT)


class TestPortRef(unittest.TestCase):

    def test_parse_forms(self):
        self.assertEqual(PortRef.parse("vco:out"), PortRef("vco", "out"))
        self.assertEqual(PortRef.parse("div:sel[3]"), PortRef("div", "sel", 3))
        self.assertEqual(PortRef.parse("ref"), PortRef(None, "ref"))
        self.assertEqual(PortRef.parse("cp:pwr.vdd"), PortRef("cp", "pwr.vdd"))

    def test_str_round_trips(self):
        for text in ("vco:out", "div:sel[3]", "pwr.vss"):
            self.assertEqual(str(PortRef.parse(text)), text)

    def test_boundary(self):
        self.assertTrue(PortRef.parse("ref").is_boundary)
        self.assertFalse(PortRef.parse("vco:out").is_boundary)

    def test_invalid(self):
        for bad in ("", "vco:", ":out", "vco::out", "div:sel[x]"):
            with self.subTest(bad=bad), self.assertRaises(ValueError):
                PortRef.parse(bad)


class TestCheckConnection(unittest.TestCase):

    def setUp(self):
        self.b = _bundle()

    def ep(self, text):
        ref = PortRef.parse(text)
        return resolve_endpoint(self.b, ref, text, text)

    def test_output_to_input(self):
        check_connection(self.ep("a:clk_out"), self.ep("b:clk_in"), {})

    def test_input_cannot_drive(self):
        with self.assertRaises(DirectionMismatch):
            check_connection(self.ep("a:clk_in"), self.ep("b:clk_in"), {})

    def test_output_cannot_be_driven(self):
        with self.assertRaises(DirectionMismatch):
            check_connection(self.ep("a:clk_out"), self.ep("b:clk_out"), {})

    def test_boundary_input_drives_inside(self):
        check_connection(self.ep("clk_in"), self.ep("a:clk_in"), {})

    def test_boundary_output_is_driven_from_inside(self):
        check_connection(self.ep("a:clk_out"), self.ep("clk_out"), {})
        with self.assertRaises(DirectionMismatch):
            check_connection(self.ep("clk_out"), self.ep("a:clk_in"), {})

    def test_single_to_array(self):
        with self.assertRaises(WidthMismatch):
            check_connection(self.ep("a:clk_out"), self.ep("b:sel"), {})

    def test_single_to_array_bit(self):
        check_connection(self.ep("a:clk_out"), self.ep("b:sel[2]"), {})

    def test_already_driven(self):
        driven = {("b", "clk_in", 0): "a:clk_out"}
        with self.assertRaises(PortAlreadyDriven) as ctx:
            check_connection(self.ep("c:clk_out"), self.ep("b:clk_in"), driven)
        self.assertIn("a:clk_out", str(ctx.exception))

    def test_whole_array_needs_array_source(self):
        driven = {("b", "sel", 1): "a:clk_out"}
        with self.assertRaises(WidthMismatch):
            check_connection(self.ep("a:clk_out"), self.ep("b:sel"), driven)

    def test_unknown_port(self):
        with self.assertRaises(UnknownPort):
            self.ep("a:nope")

    def test_index_on_single(self):
        with self.assertRaises(UnknownPort):
            self.ep("a:clk_in[0]")

    def test_index_out_of_range(self):
        with self.assertRaises(UnknownPort):
            self.ep("a:sel[4]")


if __name__ == "__main__":
    unittest.main()
