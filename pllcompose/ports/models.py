"""Port dataclasses — directions, single/array signals, grouped rails."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum

from pllcompose.errors import DuplicatePort, SchemaError


class Direction(str, Enum):
    INPUT = "in"
    OUTPUT = "out"
    INOUT = "inout"       # power rails

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Port:
    name: str
    direction: Direction
    width: int | None = None        # None = single Signal, N = Array of N
    required: bool = True           # inputs only: must be driven when finalized
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "direction", Direction(self.direction))
        if self.width is not None and self.width < 1:
            raise SchemaError(f"port '{self.name}': array width must be >= 1, got {self.width}")

    @property
    def is_array(self) -> bool:
        return self.width is not None

    @property
    def bits(self) -> int:
        """Number of individually drivable signals."""
        return self.width or 1


@dataclass(frozen=True)
class PortGroup:
    """Named group of ports, flattened into the bundle as ``group.port``."""

    name: str
    ports: tuple[Port, ...] = field(default_factory=tuple)


def power_group(name: str = "pwr") -> PortGroup:
    """The vdd/vss rail pair every analog block carries."""
    return PortGroup(name, (
        Port("vdd", Direction.INOUT, description="positive supply"),
        Port("vss", Direction.INOUT, description="ground"),
    ))


class PortBundle(Mapping):
    """Immutable ordered mapping port name -> Port.

    Built once from a fixed schema.  Groups are flattened with a dot, so
    ``power_group()`` contributes ``pwr.vdd`` and ``pwr.vss``.
    """

    def __init__(self, ports: Iterable[Port | PortGroup] = ()) -> None:
        flat: dict[str, Port] = {}
        for item in ports:
            if isinstance(item, PortGroup):
                members = [
                    Port(f"{item.name}.{p.name}", p.direction, p.width, p.required, p.description)
                    for p in item.ports
                ]
            else:
                members = [item]
            for port in members:
                if port.name in flat:
                    raise DuplicatePort(port.name)
                flat[port.name] = port
        self._ports = flat

    def __getitem__(self, name: str) -> Port:
        return self._ports[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._ports)

    def __len__(self) -> int:
        return len(self._ports)

    def __repr__(self) -> str:
        return f"PortBundle({list(self._ports.values())!r})"

    def inputs(self) -> list[Port]:
        return [p for p in self._ports.values() if p.direction is Direction.INPUT]

    def outputs(self) -> list[Port]:
        return [p for p in self._ports.values() if p.direction is Direction.OUTPUT]


# ── References ─────────────────────────────────────────────────────

_REF_RE = re.compile(
    r"^(?:(?P<instance>[A-Za-z_][\w]*):)?(?P<port>[A-Za-z_][\w.]*)(?:\[(?P<index>\d+)\])?$"
)


@dataclass(frozen=True)
class PortRef:
    """``instance:port``, ``instance:port[i]``, or a bare boundary ``port``."""

    instance: str | None
    port: str
    index: int | None = None

    @classmethod
    def parse(cls, text: "str | PortRef") -> "PortRef":
        if isinstance(text, PortRef):
            return text
        m = _REF_RE.match(text.strip())
        if not m:
            raise ValueError(f"invalid port reference '{text}' (expected 'instance:port[index]')")
        index = m.group("index")
        return cls(m.group("instance"), m.group("port"), int(index) if index is not None else None)

    @property
    def is_boundary(self) -> bool:
        return self.instance is None

    def __str__(self) -> str:
        head = f"{self.instance}:{self.port}" if self.instance else self.port
        return head if self.index is None else f"{head}[{self.index}]"


@dataclass(frozen=True)
class Connection:
    """Directed edge: ``source`` drives ``target``."""

    source: PortRef
    target: PortRef

    def __str__(self) -> str:
        return f"{self.source} -> {self.target}"
