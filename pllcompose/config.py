"""Shared numeric settings for parameter arithmetic and range loading.

Both the **parameter model** (which does all unit-checked arithmetic) and
the **constraint engine** (which compares derived quantities against
limits) evaluate inside the decimal context built here.  Changing the
precision in one place keeps every comparison consistent.
"""

from __future__ import annotations

import decimal
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class NumericRules:
    """Exact-arithmetic settings for parameter values."""

    precision: int = 50
    """Significant digits kept by every intermediate result.
    Far above anything a datasheet table carries, so sums and products of
    table values are exact."""

    rounding: str = decimal.ROUND_HALF_EVEN
    """Only reached by ratios that do not terminate (e.g. 1 / 3)."""

    ranges_dir: Path = Path(__file__).resolve().parent / "registry" / "ranges"
    """Directory of the default per-kind range tables (*.json)."""

    # ── Derived helpers ────────────────────────────────────────────

    def context(self) -> decimal.Context:
        """Fresh decimal context; division by zero and invalid operations
        raise instead of producing Infinity / NaN."""
        return decimal.Context(
            prec=self.precision,
            rounding=self.rounding,
            traps=[decimal.DivisionByZero, decimal.InvalidOperation, decimal.Overflow],
        )


# Module-level singleton, importable everywhere.
NUMERIC_RULES = NumericRules()
