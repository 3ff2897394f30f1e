"""Registry serialization — convert block kinds to JSON-safe dicts."""

from __future__ import annotations

from typing import Any

from pllcompose.params import fmt

from .models import BlockKind
from .registry import BlockRegistry


def registry_to_dict(registry: BlockRegistry) -> dict:
    """Serialize every registered kind, in registration order."""
    return {
        "kind_count": len(registry),
        "kinds": [kind_to_dict(k) for k in registry],
    }


def kind_to_dict(kind: BlockKind) -> dict:
    """Serialize a BlockKind to a JSON-safe dict."""
    d: dict[str, Any] = {
        "name": kind.name,
        "description": kind.description,
        "composite": kind.composite,
        "ports": [
            {
                "name": p.name,
                "direction": p.direction.value,
                "required": p.required,
                **({"width": p.width} if p.width is not None else {}),
            }
            for p in kind.ports.values()
        ],
        "parameters": [
            {
                "name": s.name,
                "unit": s.unit.value,
                "range": str(s.range),
                "required": s.required,
                **({"default": fmt(s.default)} if s.default is not None else {}),
                **({"description": s.description} if s.description else {}),
            }
            for s in kind.parameters
        ],
        "constraints": [
            {
                "name": c.name,
                "expression": str(c.predicate),
                "scope": "local" if c.is_local else "cross",
                **({"description": c.description} if c.description else {}),
            }
            for c in kind.constraints
        ],
    }
    return d
