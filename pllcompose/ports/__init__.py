"""Port bundle model — directional ports, arrays, grouped power rails."""

from .models import Direction, Port, PortGroup, PortBundle, PortRef, Connection, power_group
from .wiring import Endpoint, resolve_endpoint, check_connection

__all__ = [
    # Models
    "Direction", "Port", "PortGroup", "PortBundle", "PortRef", "Connection", "power_group",
    # Wiring
    "Endpoint", "resolve_endpoint", "check_connection",
]
