"""Errors raised while building and dispatching anonymous implementations.

Every error carries a stable ``code`` so callers can branch on the failure
without parsing messages. Configuration errors are raised at registration
time; ``UnimplementedError`` is raised at call time.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from anonymous.catalog import Operation


class InterfaceError(ValueError):
    """Base error with stable error code."""

    code = "interface_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotAnInterfaceError(InterfaceError, TypeError):
    """The target type is not an abstract interface."""

    code = "not_an_interface"

    def __init__(self, target: Any) -> None:
        name = getattr(target, "__qualname__", repr(target))
        super().__init__(
            f"{name} is not an interface (expected an abstract ABC or a Protocol)"
        )
        self.target = target


class NotAMemberError(InterfaceError):
    """An explicit operation reference is not part of the interface."""

    code = "not_a_member"

    def __init__(self, reference: Any, interface: type) -> None:
        super().__init__(
            f"{reference!r} is not a member of interface {interface.__qualname__}"
        )
        self.reference = reference
        self.interface = interface


class NoMatchError(InterfaceError):
    """A candidate implementation matched no operation."""

    code = "no_match"


class AmbiguousMatchError(InterfaceError):
    """A candidate implementation matched more than one operation."""

    code = "ambiguous_match"

    def __init__(self, name: str, candidates: list[Operation]) -> None:
        listing = ", ".join(op.describe() for op in candidates)
        super().__init__(f'"{name}" matched multiple interface operations: {listing}')
        self.name = name
        self.candidates = tuple(candidates)


class SignatureMismatchError(InterfaceError):
    """An implementation does not fit the operation it was bound to."""

    code = "signature_mismatch"

    def __init__(self, operation: Operation, reason: str) -> None:
        super().__init__(
            f"Implementation does not match {operation.describe()}: {reason}"
        )
        self.operation = operation
        self.reason = reason


class DuplicateBindingError(InterfaceError):
    """An operation already has a registered implementation."""

    code = "duplicate_binding"

    def __init__(self, operation: Operation) -> None:
        super().__init__(
            f"Interface already has an implementation for {operation.describe()}"
        )
        self.operation = operation


class UnimplementedError(InterfaceError, NotImplementedError):
    """An operation was invoked with no implementation and no default target."""

    code = "unimplemented"

    def __init__(self, operation: Operation) -> None:
        super().__init__(
            f"{operation.describe()} has no implementation and no default target"
        )
        self.operation = operation


class BuilderClosedError(InterfaceError):
    """A single-use builder was used after it built."""

    code = "builder_closed"

    def __init__(self, interface: type) -> None:
        super().__init__(
            f"Builder for {interface.__qualname__} has already built an instance"
        )
        self.interface = interface
