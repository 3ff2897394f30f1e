"""Tests for design documents and JSON-safe serialization."""

from __future__ import annotations

import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from pllcompose.__main__ import _kinds, _validate
from pllcompose.composite import (
    build_design, design_to_dict, parse_design, report_to_dict, result_to_dict,
)
from pllcompose.errors import TopologyViolation
from pllcompose.registry import pll_registry
from tests.pll_fixture import build_reference_pll, reference_design_doc


class TestParseDesign(unittest.TestCase):

    def test_parse(self):
        doc = parse_design(reference_design_doc())
        self.assertEqual(doc.kind, "Pll")
        self.assertEqual([i.name for i in doc.instances], ["pfd", "cp", "vco", "div"])
        self.assertTrue(doc.wire_canonical)

    def test_connection_forms(self):
        doc = parse_design({
            "name": "x",
            "connections": [["ref", "pfd:a"], {"from": "pfd:q_a", "to": "cp:up"}],
        })
        self.assertEqual(doc.connections, [("ref", "pfd:a"), ("pfd:q_a", "cp:up")])
        self.assertIsNone(doc.kind)

    def test_missing_name(self):
        with self.assertRaises(KeyError):
            parse_design({"instances": []})

    def test_build_reference(self):
        result = build_design(parse_design(reference_design_doc()), pll_registry())
        self.assertTrue(result.ok, result.report.names())

    def test_build_explicit_connections(self):
        data = reference_design_doc()
        data["wire_canonical"] = False
        data["connections"] = [
            ["ref", "pfd:a"], ["pfd:q_a", "cp:up"], ["pfd:q_b", "cp:down"],
            ["cp:vcont", "vco:tune"], ["vco:out", "div:clk_in"], ["div:clk_out", "pfd:b"],
        ]
        result = build_design(parse_design(data), pll_registry())
        self.assertTrue(result.ok, result.report.names())

    def test_build_propagates_wiring_errors(self):
        data = reference_design_doc()
        data["connections"] = [["vco:out", "ref"]]
        with self.assertRaises(TopologyViolation):
            build_design(parse_design(data), pll_registry())

    def test_wire_canonical_needs_pll(self):
        doc = parse_design({
            "name": "x",
            "instances": [{"name": "ff0", "kind": "Dff"}],
            "wire_canonical": True,
        })
        with self.assertRaises(ValueError):
            build_design(doc, pll_registry())


class TestSerialization(unittest.TestCase):

    def test_design_to_dict(self):
        d = design_to_dict(build_reference_pll().design)
        self.assertEqual(d["kind"], "Pll")
        self.assertEqual(d["parameters"]["f_ref"], {"value": "2E+9", "unit": "Hz"})
        vco = [i for i in d["instances"] if i["name"] == "vco"][0]
        self.assertEqual(vco["parameters"]["fmax"]["value"], "8E+9")
        self.assertIn({"from": "ref", "to": "pfd:a"}, d["connections"])
        json.dumps(d)

    def test_report_to_dict(self):
        result = build_reference_pll(vco={"fmax": "6e9"})
        d = report_to_dict(result.report)
        self.assertFalse(d["ok"])
        [v] = d["violations"]
        self.assertEqual(v["constraint"], "fout_max_within_vco")
        self.assertEqual(v["values"]["vco.fmax"], "6E+9 Hz")
        self.assertTrue(d["skipped"])

    def test_result_to_dict(self):
        ok = result_to_dict(build_reference_pll())
        self.assertEqual(ok["state"], "validated")
        self.assertIn("design", ok)
        bad = result_to_dict(build_reference_pll(vco={"fmax": "6e9"}))
        self.assertEqual(bad["state"], "rejected")
        self.assertNotIn("design", bad)
        json.dumps(bad)


class TestCli(unittest.TestCase):

    def _run(self, fn, *args):
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            code = fn(*args)
        return code, out.getvalue(), err.getvalue()

    def test_validate_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "pll.json"
            path.write_text(json.dumps(reference_design_doc()), encoding="utf-8")
            code, out, _ = self._run(_validate, str(path))
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["state"], "validated")

    def test_validate_rejected(self):
        data = reference_design_doc()
        data["instances"][2]["parameters"]["fmax"] = 6e9
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "pll.json"
            path.write_text(json.dumps(data), encoding="utf-8")
            code, out, err = self._run(_validate, str(path))
        self.assertEqual(code, 1)
        self.assertIn("fout_max_within_vco", err)

    def test_validate_non_numeric_parameter(self):
        for bad in (True, [8e9]):
            data = reference_design_doc()
            data["instances"][2]["parameters"]["fmax"] = bad
            with tempfile.TemporaryDirectory() as tmp:
                path = Path(tmp) / "pll.json"
                path.write_text(json.dumps(data), encoding="utf-8")
                code, out, err = self._run(_validate, str(path))
            with self.subTest(bad=bad):
                self.assertEqual(code, 1)
                self.assertEqual(out, "")
                self.assertIn("error: InvalidValue", err)
                self.assertIn("'vco'.fmax", err)

    def test_validate_missing_file(self):
        code, _, err = self._run(_validate, "/nonexistent/pll.json")
        self.assertEqual(code, 1)
        self.assertIn("error:", err)

    def test_kinds(self):
        code, out, _ = self._run(_kinds)
        self.assertEqual(code, 0)
        self.assertIn("Pll (composite)", out)
        self.assertIn("div_min", out)


if __name__ == "__main__":
    unittest.main()
