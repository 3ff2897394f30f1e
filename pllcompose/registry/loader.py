"""Range-table loader — reads registry/ranges/*.json, parses and validates them.

One file per block kind::

    {
      "kind": "Vco",
      "parameters": {
        "fmin": {"unit": "Hz", "min": 1e6, "max": 5e10},
        "tr":   {"unit": "s", "min": 0, "min_open": true, "max": 1e-9, "default": 2e-12}
      }
    }

Numbers are parsed straight to ``Decimal`` (``parse_float=Decimal``) so a
table value is never rounded through binary floating point.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path

from pllcompose.config import NUMERIC_RULES
from pllcompose.errors import PllComposeError
from pllcompose.params import Range, Unit, to_decimal

from .models import RangeEntry, RangeTable, RangeTableResult, TableError


log = logging.getLogger(__name__)

RANGES_DIR = NUMERIC_RULES.ranges_dir

_ENTRY_KEYS = {"unit", "min", "max", "min_open", "max_open", "default"}


# ── Parsing ────────────────────────────────────────────────────────

def _parse_entry(name: str, data: dict) -> RangeEntry:
    unknown = set(data) - _ENTRY_KEYS
    if unknown:
        raise ValueError(f"unknown keys {sorted(unknown)}")
    rng = Range(
        lo=data.get("min"),
        hi=data.get("max"),
        lo_open=bool(data.get("min_open", False)),
        hi_open=bool(data.get("max_open", False)),
    )
    default = data.get("default")
    if default is not None:
        default = to_decimal(default)
        if not rng.contains(default):
            raise ValueError(f"default {default} outside {rng}")
    return RangeEntry(
        parameter=name,
        unit=Unit(data.get("unit", "")),
        range=rng,
        default=default,
    )


def parse_table(data: dict, source_file: str = "") -> tuple[RangeTable, list[TableError]]:
    """Parse one decoded table.  Bad rows are dropped and reported."""
    kind = data["kind"]
    entries: list[RangeEntry] = []
    errors: list[TableError] = []
    for name, row in data.get("parameters", {}).items():
        try:
            entries.append(_parse_entry(name, row))
        except (ValueError, TypeError, KeyError, PllComposeError) as exc:
            errors.append(TableError(kind, f"parameters.{name}", str(exc)))
    return RangeTable(kind=kind, entries=entries, source_file=source_file), errors


# ── Public API ─────────────────────────────────────────────────────

def load_ranges(ranges_dir: Path | None = None) -> RangeTableResult:
    """Load all range tables, parse and validate.

    Returns a RangeTableResult with tables and any validation errors.
    Files that fail to decode are skipped (error recorded).
    """
    d = ranges_dir or RANGES_DIR
    tables: list[RangeTable] = []
    errors: list[TableError] = []

    json_files = sorted(d.glob("*.json"))
    if not json_files:
        errors.append(TableError("_ranges", "files", f"No .json files found in {d}"))
        return RangeTableResult(tables=tables, errors=errors)

    for path in json_files:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"), parse_float=Decimal)
        except json.JSONDecodeError as exc:
            errors.append(TableError(path.stem, "json", f"Parse error: {exc}"))
            continue
        except OSError as exc:
            errors.append(TableError(path.stem, "file", f"Read error: {exc}"))
            continue

        try:
            table, table_errors = parse_table(raw, source_file=str(path))
        except (KeyError, TypeError, AttributeError) as exc:
            errors.append(TableError(
                path.stem, "parse", f"Missing/invalid field: {exc}"))
            continue

        errors.extend(table_errors)
        tables.append(table)

    # Check for duplicate kinds across files
    counts: dict[str, int] = {}
    for t in tables:
        counts[t.kind] = counts.get(t.kind, 0) + 1
    for kind, count in counts.items():
        if count > 1:
            errors.append(TableError(kind, "kind", f"Duplicate range table (appears {count} times)"))

    log.debug("Loaded %d range tables from %s (%d errors)", len(tables), d, len(errors))
    return RangeTableResult(tables=tables, errors=errors)
