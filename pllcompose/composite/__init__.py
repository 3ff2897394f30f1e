"""Composite assembly — builder state machine, PLL topology, design documents."""

from .models import BuilderState, CompositeDesign, BuildResult
from .builder import CompositeBuilder
from .pll import (
    TopologyEdge, CANONICAL_TOPOLOGY, INSTANCE_NAMES,
    PllBuilder, build_pll, pll_output_range,
)
from .parsing import InstanceDoc, DesignDoc, parse_design, build_design
from .serialization import design_to_dict, report_to_dict, result_to_dict

__all__ = [
    # Models
    "BuilderState", "CompositeDesign", "BuildResult",
    # Builders
    "CompositeBuilder", "PllBuilder", "build_pll", "pll_output_range",
    # Topology
    "TopologyEdge", "CANONICAL_TOPOLOGY", "INSTANCE_NAMES",
    # Documents
    "InstanceDoc", "DesignDoc", "parse_design", "build_design",
    # Serialization
    "design_to_dict", "report_to_dict", "result_to_dict",
]
