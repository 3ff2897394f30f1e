"""Block registry — block kinds, instantiation, and range-table seeding."""

from .models import (
    BlockKind, BlockInstance, RangeEntry, RangeTable, TableError, RangeTableResult,
)
from .registry import BlockRegistry
from .loader import load_ranges, parse_table, RANGES_DIR
from .kinds import (
    VCO, CHARGE_PUMP, DFF, PFD, DIVIDER, PLL, PLL_SUB_KINDS,
    register_pll_kinds, pll_registry,
)
from .serialization import kind_to_dict, registry_to_dict

__all__ = [
    # Models
    "BlockKind", "BlockInstance", "RangeEntry", "RangeTable", "TableError", "RangeTableResult",
    # Registry
    "BlockRegistry",
    # Loader
    "load_ranges", "parse_table", "RANGES_DIR",
    # Built-in kinds
    "VCO", "CHARGE_PUMP", "DFF", "PFD", "DIVIDER", "PLL", "PLL_SUB_KINDS",
    "register_pll_kinds", "pll_registry",
    # Serialization
    "kind_to_dict", "registry_to_dict",
]
