"""
pllcompose — entry point.

Usage:
    python -m pllcompose validate DESIGN.json     # build + validate a design document
    python -m pllcompose kinds                    # list registered block kinds
    python -m pllcompose serve                    # start web server on :8000
    python -m pllcompose serve --port 3000 --host 0.0.0.0

Add -v for debug logging.
"""

import json
import logging
import sys
from decimal import Decimal
from pathlib import Path

from pllcompose.errors import PllComposeError

USAGE = "Usage: python -m pllcompose [-v] (validate FILE | kinds | serve [--port PORT] [--host HOST])"


def _validate(path: str) -> int:
    from pllcompose.composite import build_design, parse_design, result_to_dict
    from pllcompose.registry import pll_registry

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"), parse_float=Decimal)
        result = build_design(parse_design(data), pll_registry())
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, PllComposeError) as e:
        print(f"error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result_to_dict(result), indent=2))
    for v in result.report.violations:
        print(f"  {v}", file=sys.stderr)
    return 0 if result.ok else 1


def _kinds() -> int:
    from pllcompose.registry import pll_registry

    for kind in pll_registry():
        tag = " (composite)" if kind.composite else ""
        print(f"{kind.name}{tag} — {kind.description}")
        for spec in kind.parameters:
            unit = f" {spec.unit.value}" if spec.unit.value else ""
            print(f"    {spec.name:<14} {spec.range}{unit}")
    return 0


def main():
    args = sys.argv[1:]
    verbose = "-v" in args
    args = [a for a in args if a != "-v"]
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    cmd = args[0] if args else "serve"

    if cmd == "serve":
        port = 8000
        host = "127.0.0.1"
        for i, a in enumerate(args):
            if a == "--port" and i + 1 < len(args):
                port = int(args[i + 1])
            elif a == "--host" and i + 1 < len(args):
                host = args[i + 1]

        from pllcompose.web.server import main as serve
        serve(host=host, port=port)
    elif cmd == "validate" and len(args) == 2:
        sys.exit(_validate(args[1]))
    elif cmd == "kinds":
        sys.exit(_kinds())
    else:
        print(f"Unknown command: {' '.join(args)}")
        print(USAGE)
        sys.exit(1)


if __name__ == "__main__":
    main()
