"""Exception taxonomy for schema, wiring, range and builder failures.

Constraint violations are *not* exceptions: they are collected into a
:class:`~pllcompose.constraints.models.ValidationReport` by the engine.
Everything here is fatal to the single call that raised it.
"""

from __future__ import annotations


class PllComposeError(Exception):
    """Base class for every error raised by this package."""


# ── Schema ─────────────────────────────────────────────────────────


class SchemaError(PllComposeError):
    """A block-kind, parameter or constraint declaration is malformed."""


class DuplicateKind(SchemaError):
    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"Block kind '{kind}' is already registered")


class UnknownKind(SchemaError):
    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"Unknown block kind '{kind}'")


class UnknownParameter(SchemaError):
    def __init__(self, kind: str, parameter: str, instance: str | None = None) -> None:
        self.kind = kind
        self.parameter = parameter
        self.instance = instance
        where = f"'{instance}' ({kind})" if instance else f"'{kind}'"
        super().__init__(f"{where} has no parameter '{parameter}'")


class MissingParameter(SchemaError):
    def __init__(self, kind: str, parameter: str, instance: str | None = None) -> None:
        self.kind = kind
        self.parameter = parameter
        self.instance = instance
        where = f"'{instance}' ({kind})" if instance else f"'{kind}'"
        super().__init__(f"{where}: required parameter '{parameter}' was not supplied")


class MalformedConstraint(SchemaError):
    def __init__(self, constraint: str, reason: str) -> None:
        self.constraint = constraint
        self.reason = reason
        super().__init__(f"Constraint '{constraint}': {reason}")


class DuplicatePort(SchemaError):
    def __init__(self, port: str) -> None:
        self.port = port
        super().__init__(f"Duplicate port name '{port}'")


class DuplicateInstance(SchemaError):
    def __init__(self, instance: str) -> None:
        self.instance = instance
        super().__init__(f"Instance name '{instance}' is already used")


# ── Wiring ─────────────────────────────────────────────────────────


class WiringError(PllComposeError):
    """A single ``connect`` call was rejected; the design is unchanged."""

    def __init__(self, source: str, target: str, reason: str) -> None:
        self.source = source
        self.target = target
        self.reason = reason
        super().__init__(f"Cannot connect {source} -> {target}: {reason}")


class DirectionMismatch(WiringError):
    pass


class WidthMismatch(WiringError):
    pass


class PortAlreadyDriven(WiringError):
    pass


class TopologyViolation(WiringError):
    pass


class InstanceNotAllowed(TopologyViolation):
    """``add_instance`` was refused by a fixed-topology composite."""

    def __init__(self, instance: str, kind: str, composite: str, reason: str) -> None:
        self.source = self.target = None
        self.instance = instance
        self.kind = kind
        self.composite = composite
        self.reason = reason
        PllComposeError.__init__(
            self, f"Cannot add {kind} instance '{instance}' to '{composite}': {reason}")


class UnknownPort(WiringError):
    pass


class UnknownInstance(WiringError):
    pass


# ── Ranges / units ─────────────────────────────────────────────────


class RangeError(PllComposeError):
    """A parameter value lies outside its declared range."""


class OutOfRange(RangeError):
    def __init__(self, parameter: str, value, expected: str, instance: str | None = None) -> None:
        self.parameter = parameter
        self.value = value
        self.expected = expected
        self.instance = instance
        where = f"'{instance}'.{parameter}" if instance else parameter
        super().__init__(f"{where} = {value} is outside {expected}")


class InvalidValue(RangeError):
    """A parameter value is not a finite number at all."""

    def __init__(self, parameter: str, value, reason: str, instance: str | None = None) -> None:
        self.parameter = parameter
        self.value = value
        self.reason = reason
        self.instance = instance
        where = f"'{instance}'.{parameter}" if instance else parameter
        super().__init__(f"{where} = {value!r} is not a valid value: {reason}")


class UnitMismatch(PllComposeError):
    def __init__(self, operation: str, left: str, right: str) -> None:
        self.operation = operation
        self.left = left
        self.right = right
        super().__init__(f"Cannot {operation} quantities in '{left}' and '{right}'")


# ── Builder ────────────────────────────────────────────────────────


class BuilderStateError(PllComposeError):
    """An operation is not legal in the builder's current state."""

    def __init__(self, operation: str, state: str) -> None:
        self.operation = operation
        self.state = state
        super().__init__(f"'{operation}' is not allowed in state {state}")
