"""Composite serialization — convert designs, reports and build results to
JSON-safe dicts.  Decimal values are rendered as strings so they survive
a JSON round trip exactly."""

from __future__ import annotations

from pllcompose.constraints.models import ValidationReport
from pllcompose.params import fmt
from pllcompose.registry.models import BlockInstance

from .models import BuildResult, CompositeDesign


def _parameters(inst: BlockInstance) -> dict:
    return {
        name: {"value": fmt(p.value), "unit": p.unit.value}
        for name, p in inst.parameters.items()
    }


def design_to_dict(design: CompositeDesign) -> dict:
    """Convert a validated CompositeDesign to a JSON-serializable dict."""
    return {
        "name": design.name,
        **({"kind": design.kind} if design.kind else {}),
        **({"parameters": _parameters(design.parameters)} if design.parameters else {}),
        "instances": [
            {
                "name": inst.name,
                "kind": inst.kind,
                "parameters": _parameters(inst),
            }
            for inst in design.instances
        ],
        "connections": [
            {"from": str(c.source), "to": str(c.target)}
            for c in design.connections
        ],
        "constraints": [c.name for c in design.constraints],
    }


def report_to_dict(report: ValidationReport) -> dict:
    return {
        "ok": report.ok,
        "violations": [
            {
                "constraint": v.constraint,
                "stage": v.stage,
                "instances": list(v.instances),
                "description": v.description,
                **({"values": dict(v.values)} if v.values else {}),
            }
            for v in report.violations
        ],
        "skipped": [
            {
                "constraint": s.constraint,
                "instances": list(s.instances),
                "reason": s.reason,
            }
            for s in report.skipped
        ],
    }


def result_to_dict(result: BuildResult) -> dict:
    """State, report, and the design when it validated."""
    return {
        "state": result.state.value,
        "report": report_to_dict(result.report),
        **({"design": design_to_dict(result.design)} if result.design else {}),
    }
