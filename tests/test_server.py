"""Tests for the HTTP surface (FastAPI TestClient)."""

from __future__ import annotations

import unittest

from fastapi.testclient import TestClient

from pllcompose.web.server import app
from tests.pll_fixture import reference_design_doc


class TestServer(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(app)

    def test_kinds(self):
        r = self.client.get("/api/kinds")
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["kind_count"], 6)
        self.assertEqual([k["name"] for k in body["kinds"]][-1], "Pll")

    def test_topology(self):
        r = self.client.get("/api/topology")
        edges = r.json()["edges"]
        self.assertEqual(len(edges), 14)
        self.assertIn({"from": {"kind": None, "port": "ref"}, "to": {"kind": "Pfd", "port": "a"}}, edges)

    def test_validate_ok(self):
        r = self.client.post("/api/validate", json=reference_design_doc())
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["state"], "validated")
        self.assertEqual(len(body["design"]["connections"]), 14)

    def test_validate_rejected_is_not_an_http_error(self):
        doc = reference_design_doc()
        doc["instances"][2]["parameters"]["fmax"] = "6e9"
        r = self.client.post("/api/validate", json=doc)
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["state"], "rejected")
        self.assertEqual([v["constraint"] for v in body["report"]["violations"]],
                         ["fout_max_within_vco"])

    def test_out_of_range_is_422(self):
        doc = reference_design_doc()
        doc["parameters"]["f_ref"] = "6e10"
        r = self.client.post("/api/validate", json=doc)
        self.assertEqual(r.status_code, 422)
        self.assertEqual(r.json()["detail"]["error"], "OutOfRange")

    def test_non_numeric_parameter_is_422(self):
        for bad in (True, [8e9], "eight GHz"):
            with self.subTest(bad=bad):
                doc = reference_design_doc()
                doc["instances"][2]["parameters"]["fmax"] = bad
                r = self.client.post("/api/validate", json=doc)
                self.assertEqual(r.status_code, 422)
                detail = r.json()["detail"]
                self.assertEqual(detail["error"], "InvalidValue")
                self.assertIn("'vco'.fmax", detail["message"])

    def test_topology_violation_is_422(self):
        doc = reference_design_doc()
        doc["connections"] = [["vco:out", "ref"]]
        r = self.client.post("/api/validate", json=doc)
        self.assertEqual(r.status_code, 422)
        self.assertEqual(r.json()["detail"]["error"], "TopologyViolation")

    def test_malformed_body(self):
        r = self.client.post("/api/validate", json={"instances": []})
        self.assertEqual(r.status_code, 422)


if __name__ == "__main__":
    unittest.main()
