"""
FastAPI web server — read-only registry views and design validation.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from pllcompose.composite import CANONICAL_TOPOLOGY, build_design, parse_design, result_to_dict
from pllcompose.errors import PllComposeError
from pllcompose.registry import pll_registry, registry_to_dict


log = logging.getLogger(__name__)

# ── App ────────────────────────────────────────────────────────────

app = FastAPI(title="pllcompose")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Models ─────────────────────────────────────────────────────────

class InstanceRequest(BaseModel):
    name: str
    kind: str
    parameters: dict[str, Any] = {}


class ValidateRequest(BaseModel):
    name: str
    kind: str | None = None
    parameters: dict[str, Any] = {}
    instances: list[InstanceRequest] = []
    connections: list[tuple[str, str]] = []
    wire_canonical: bool = False


# ── Routes ─────────────────────────────────────────────────────────

@app.get("/api/kinds")
def list_kinds():
    return registry_to_dict(pll_registry())


@app.get("/api/topology")
def topology():
    return {
        "edges": [
            {
                "from": {"kind": e.source_kind, "port": e.source_port},
                "to": {"kind": e.target_kind, "port": e.target_port},
            }
            for e in CANONICAL_TOPOLOGY
        ],
    }


@app.post("/api/validate")
def validate_design(req: ValidateRequest):
    """Build the posted design against a fresh registry.

    A design that fails its constraints is a normal 200 response with
    ``state == "rejected"``; schema, range and wiring errors are 422.
    """
    doc = parse_design(req.model_dump())
    try:
        result = build_design(doc, pll_registry())
    except (PllComposeError, ValueError) as e:
        log.info("Design '%s' refused: %s", doc.name, e)
        raise HTTPException(422, {"error": type(e).__name__, "message": str(e)})
    return result_to_dict(result)


def main(host: str = "127.0.0.1", port: int = 8000):
    import uvicorn
    uvicorn.run("pllcompose.web.server:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
