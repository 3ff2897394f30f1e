"""Parameter & unit model — exact decimal quantities with declared ranges."""

from .models import (
    Unit, Range, UNBOUNDED, Quantity, Parameter, ParameterSpec, product_unit, ratio_unit,
)
from .numeric import to_decimal, is_integral, is_power_of_two, fmt

__all__ = [
    # Models
    "Unit", "Range", "UNBOUNDED", "Quantity", "Parameter", "ParameterSpec",
    # Unit algebra
    "product_unit", "ratio_unit",
    # Numeric helpers
    "to_decimal", "is_integral", "is_power_of_two", "fmt",
]
