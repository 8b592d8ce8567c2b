"""Call dispatcher: routes each intercepted call to its implementation.

The dispatcher is built once from a builder's table and never changes. For
every call it looks up the exact operation that was invoked; signatures were
matched during registration and are not re-examined here.

Resolution order:

1. the registered implementation for the operation
2. the default target's own member
3. ``UnimplementedError``

Whatever the implementation or default target raises propagates unchanged.
The dispatcher takes no locks; it is safe to share between threads when the
implementations and default target are.
"""

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from anonymous.catalog import Operation
from anonymous.errors import UnimplementedError

Implementation = Callable[..., Any]


class CallDispatcher:
    """Immutable operation -> implementation router."""

    __slots__ = ("_interface", "_table", "_default_target")

    def __init__(
        self,
        interface: type,
        table: Mapping[Operation, Implementation],
        default_target: Any = None,
    ) -> None:
        self._interface = interface
        self._table = MappingProxyType(dict(table))
        self._default_target = default_target

    @property
    def interface(self) -> type:
        return self._interface

    @property
    def table(self) -> Mapping[Operation, Implementation]:
        return self._table

    @property
    def default_target(self) -> Any:
        return self._default_target

    def handles(self, operation: Operation) -> bool:
        """True if ``operation`` has a registered implementation."""
        return operation in self._table

    def implementation_for(self, operation: Operation) -> Implementation | None:
        return self._table.get(operation)

    def invoke(
        self,
        operation: Operation,
        args: tuple[Any, ...] = (),
        kwargs: dict[str, Any] | None = None,
    ) -> Any:
        """Route one call.

        Args:
            operation: The operation that was invoked.
            args: Positional arguments, by-reference cells included.
            kwargs: Keyword arguments.

        Returns:
            Whatever the chosen implementation returns.

        Raises:
            UnimplementedError: No implementation and no default target.
        """
        implementation = self._table.get(operation)
        if implementation is not None:
            return implementation(*args, **(kwargs or {}))
        if self._default_target is not None:
            return operation.invoke_on(self._default_target, args, kwargs)
        raise UnimplementedError(operation)

    __call__ = invoke

    def __repr__(self) -> str:
        return (
            f"<CallDispatcher {self._interface.__qualname__} "
            f"bound={len(self._table)} default={self._default_target is not None}>"
        )
