"""Constraint engine — declarative numeric constraints and their evaluation."""

from .models import (
    ParamRef, UnitLookup, Expr, Ref, Const, Sum, Product, Ratio,
    Compare, Within, PowerOfTwo, Constraint,
    Violation, Skipped, ValidationReport,
    as_expr, param, const, total, product, ratio,
    at_most, below, at_least, above, equal, within, power_of_two,
)
from .engine import Binding, validate, undriven_inputs

__all__ = [
    # References / expressions
    "ParamRef", "UnitLookup", "Expr", "Ref", "Const", "Sum", "Product", "Ratio",
    "as_expr", "param", "const", "total", "product", "ratio",
    # Predicates
    "Compare", "Within", "PowerOfTwo",
    "at_most", "below", "at_least", "above", "equal", "within", "power_of_two",
    # Constraints / results
    "Constraint", "Violation", "Skipped", "ValidationReport",
    # Engine
    "Binding", "validate", "undriven_inputs",
]
