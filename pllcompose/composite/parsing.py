"""Design document parsing — convert raw dicts/JSON into DesignDoc and
drive the matching builder."""

from __future__ import annotations

from dataclasses import dataclass, field

from pllcompose.registry.kinds import PLL
from pllcompose.registry.registry import BlockRegistry

from .builder import CompositeBuilder
from .models import BuildResult
from .pll import PllBuilder


@dataclass
class InstanceDoc:
    name: str
    kind: str
    parameters: dict = field(default_factory=dict)


@dataclass
class DesignDoc:
    """A composite described as data.

    ``connections`` are ``(source, target)`` port-reference strings.
    ``wire_canonical`` asks a PLL builder to add its canonical loop after
    the explicit connections.
    """

    name: str
    kind: str | None = None
    parameters: dict = field(default_factory=dict)
    instances: list[InstanceDoc] = field(default_factory=list)
    connections: list[tuple[str, str]] = field(default_factory=list)
    wire_canonical: bool = False


def parse_design(data: dict) -> DesignDoc:
    """Parse a raw dict (from JSON / request body) into a DesignDoc.

    Connections may be written as ``["src", "dst"]`` pairs or as
    ``{"from": "src", "to": "dst"}`` objects.
    """
    instances = [
        InstanceDoc(
            name=i["name"],
            kind=i["kind"],
            parameters=dict(i.get("parameters") or {}),
        )
        for i in data.get("instances", [])
    ]

    connections = []
    for c in data.get("connections", []):
        if isinstance(c, dict):
            connections.append((c["from"], c["to"]))
        else:
            src, dst = c
            connections.append((src, dst))

    return DesignDoc(
        name=data["name"],
        kind=data.get("kind"),
        parameters=dict(data.get("parameters") or {}),
        instances=instances,
        connections=connections,
        wire_canonical=bool(data.get("wire_canonical", False)),
    )


def build_design(doc: DesignDoc, registry: BlockRegistry) -> BuildResult:
    """Replay ``doc`` through a builder and finalize it.

    Schema, range and wiring errors raise at the offending step; constraint
    failures are returned in the result's report.
    """
    if doc.kind == PLL:
        builder: CompositeBuilder = PllBuilder(registry, doc.name, doc.parameters)
    else:
        builder = CompositeBuilder(registry, doc.name, doc.kind, doc.parameters)

    for inst in doc.instances:
        builder.add_instance(inst.kind, inst.name, inst.parameters)
    for src, dst in doc.connections:
        builder.connect(src, dst)
    if doc.wire_canonical:
        if not isinstance(builder, PllBuilder):
            raise ValueError(f"design '{doc.name}': wire_canonical needs kind '{PLL}'")
        builder.wire_canonical()
    return builder.finalize()
