"""pllcompose — typed block schemas, constrained parameters and validated
composite assembly for PLL frequency synthesizers."""

from pllcompose.composite import BuilderState, CompositeBuilder, PllBuilder, build_pll
from pllcompose.errors import PllComposeError
from pllcompose.registry import BlockRegistry, pll_registry

__all__ = [
    "BlockRegistry", "pll_registry",
    "CompositeBuilder", "PllBuilder", "BuilderState", "build_pll",
    "PllComposeError",
]
