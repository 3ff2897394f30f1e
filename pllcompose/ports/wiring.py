"""Connection checks — direction, width, and single-driver rules.

Boundary ports are seen from *inside* the composite: an external Input
(e.g. the reference clock) drives sub-block inputs, and an external Output
is driven by a sub-block output.  InOut rails work both ways.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from pllcompose.errors import (
    DirectionMismatch, PortAlreadyDriven, UnknownPort, WidthMismatch,
)

from .models import Direction, Port, PortBundle, PortRef


# (instance or None for boundary, port name, bit index)
BitKey = tuple[str | None, str, int]


@dataclass(frozen=True)
class Endpoint:
    """A resolved PortRef: the schema Port plus which bits it covers."""

    ref: PortRef
    port: Port

    @property
    def width(self) -> int:
        return 1 if self.ref.index is not None else self.port.bits

    @property
    def is_array(self) -> bool:
        return self.ref.index is None and self.port.is_array

    def bit_keys(self) -> list[BitKey]:
        if self.ref.index is not None:
            return [(self.ref.instance, self.port.name, self.ref.index)]
        return [(self.ref.instance, self.port.name, i) for i in range(self.port.bits)]

    @property
    def can_drive(self) -> bool:
        if self.ref.is_boundary:
            return self.port.direction in (Direction.INPUT, Direction.INOUT)
        return self.port.direction in (Direction.OUTPUT, Direction.INOUT)

    @property
    def can_receive(self) -> bool:
        if self.ref.is_boundary:
            return self.port.direction in (Direction.OUTPUT, Direction.INOUT)
        return self.port.direction in (Direction.INPUT, Direction.INOUT)


def resolve_endpoint(bundle: PortBundle, ref: PortRef, source: str, target: str) -> Endpoint:
    """Look ``ref`` up in ``bundle``; raises ``UnknownPort``.

    ``source``/``target`` are the textual refs of the whole connect call,
    carried into the error for reporting.
    """
    owner = f"'{ref.instance}'" if ref.instance else "the design boundary"
    if ref.port not in bundle:
        raise UnknownPort(source, target, f"{owner} has no port '{ref.port}'")
    port = bundle[ref.port]
    if ref.index is not None:
        if not port.is_array:
            raise UnknownPort(source, target, f"port '{ref}' is not an array")
        if ref.index >= port.bits:
            raise UnknownPort(source, target,
                              f"index {ref.index} out of range for '{ref.port}' (width {port.bits})")
    return Endpoint(ref, port)


def check_connection(
    src: Endpoint,
    dst: Endpoint,
    driven: Mapping[BitKey, str],
) -> None:
    """Raise a WiringError subclass if ``src -> dst`` is not a legal edge.

    ``driven`` maps every already-driven bit to the source that drives it.
    """
    s, t = str(src.ref), str(dst.ref)

    if not src.can_drive:
        raise DirectionMismatch(s, t, f"source '{s}' is {src.port.direction.value}, cannot drive")
    if not dst.can_receive:
        raise DirectionMismatch(s, t, f"target '{t}' is {dst.port.direction.value}, cannot be driven")

    if src.width != dst.width or src.is_array != dst.is_array:
        raise WidthMismatch(
            s, t,
            f"width {src.width}{' (array)' if src.is_array else ''} vs "
            f"{dst.width}{' (array)' if dst.is_array else ''}",
        )

    for key in dst.bit_keys():
        if key in driven:
            raise PortAlreadyDriven(s, t, f"'{t}' is already driven by '{driven[key]}'")
