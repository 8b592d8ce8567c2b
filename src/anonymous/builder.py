"""Builder: collects implementations and produces anonymous instances.

    greeter = (
        implement(Greeter)
        .method("say_hi", lambda name: f"Hi, {name}")
        .create()
    )

Every registration form funnels into the same two steps: resolve exactly one
operation, then bind it at most once. The accessor helpers (``property_get``,
``index_set``, ``event_subscribe`` and friends) are shorthands for
``method("get_<name>", ...)`` and friends.

Builders are configured from a single thread. Each ``build()`` / ``create()``
snapshots the table: registrations made afterwards only affect objects
created afterwards. With ``single_use_builders`` enabled the builder is
closed after its first build instead.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any, Generic, TypeVar

from anonymous.catalog import Catalog, Operation, OperationKind, catalog
from anonymous.config import AnonymousSettings, get_settings
from anonymous.dispatch import CallDispatcher, Implementation
from anonymous.errors import BuilderClosedError, DuplicateBindingError, NotAMemberError
from anonymous.events import event
from anonymous.matcher import (
    READ_KINDS,
    check_signature,
    match_operation,
    pick,
    references,
    select,
)
from anonymous.proxy import ProxyFactory, shared_factory
from anonymous.signature import Signature, signature_of

logger = logging.getLogger(__name__)

TInterface = TypeVar("TInterface")

_PROPERTY_GET = frozenset({OperationKind.PROPERTY_GET})
_PROPERTY_SET = frozenset({OperationKind.PROPERTY_SET})
_EVENT_ADD = frozenset({OperationKind.EVENT_ADD})
_EVENT_REMOVE = frozenset({OperationKind.EVENT_REMOVE})


def _is_selector(target: Any) -> bool:
    return inspect.isfunction(target) and target.__name__ == "<lambda>"


class Builder(Generic[TInterface]):
    """Defines an anonymous implementation of one interface."""

    def __init__(
        self,
        interface: type[TInterface],
        default_target: TInterface | None = None,
        *,
        settings: AnonymousSettings | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            interface: The interface to implement.
            default_target: Optional object already implementing the
                interface. Unbound operations are forwarded to it.
            settings: Overrides the process-wide settings.
        """
        self._catalog = catalog(interface)
        self._default_target = default_target
        self._settings = settings or get_settings()
        self._implementations: dict[Operation, Implementation] = {}
        self._closed = False

    @property
    def interface(self) -> type[TInterface]:
        return self._catalog.interface

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def default_target(self) -> TInterface | None:
        return self._default_target

    @property
    def operations(self) -> tuple[Operation, ...]:
        return self._catalog.operations

    @property
    def bound_operations(self) -> Mapping[Operation, Implementation]:
        return MappingProxyType(self._implementations)

    def is_bound(self, operation: Operation) -> bool:
        return operation in self._implementations

    # -- resolution --------------------------------------------------------

    def _candidate(self, implementation: Implementation) -> Signature:
        if not callable(implementation):
            raise TypeError(f"Implementation is not callable: {implementation!r}")
        return signature_of(implementation)

    def match(self, name: str, implementation: Implementation) -> Operation:
        """Resolve the operation ``implementation`` would bind to under ``name``.

        Raises:
            NoMatchError: No operation called ``name`` fits the implementation.
            AmbiguousMatchError: Several do.
        """
        return match_operation(
            self._catalog,
            self._candidate(implementation),
            name,
            strict=self._settings.strict_annotations,
        )

    def _resolve(
        self,
        candidates: list[Operation],
        label: str,
        implementation: Implementation,
    ) -> Operation:
        candidate = self._candidate(implementation)
        strict = self._settings.strict_annotations
        if len(candidates) == 1:
            check_signature(candidates[0], candidate, strict=strict)
            return candidates[0]
        # Several declarations behind one reference: fall back to signatures.
        return pick(candidates, candidate, label, strict=strict)

    # -- registration ------------------------------------------------------

    def register(
        self, operation: Operation, implementation: Implementation
    ) -> Builder[TInterface]:
        """Bind ``implementation`` to an already resolved operation.

        Raises:
            NotAMemberError: The operation belongs to another interface.
            SignatureMismatchError: The implementation does not fit.
            DuplicateBindingError: The operation is already bound.
        """
        if operation not in self._catalog:
            raise NotAMemberError(operation, self.interface)
        operation = self._resolve([operation], operation.name, implementation)
        return self._bind(operation, implementation)

    def method(self, target: Any, implementation: Implementation) -> Builder[TInterface]:
        """Bind an implementation to the operation ``target`` names.

        Args:
            target: One of
                - a synthesized operation name (``"say_hi"``, ``"get_count"``),
                  matched by name and signature;
                - an ``Operation`` or a declaration (``Greeter.say_hi``,
                  ``Counter.count``), matched by identity;
                - a selector such as ``lambda g: g.say_hi``.
                A reference covering several overloads falls back to
                signature matching among them.
            implementation: The callable to run for that operation.
        """
        return self._method(target, implementation, READ_KINDS)

    def _method(
        self,
        target: Any,
        implementation: Implementation,
        kinds: frozenset[OperationKind],
    ) -> Builder[TInterface]:
        if isinstance(target, str):
            return self._bind(self.match(target, implementation), implementation)

        candidates = references(self._catalog, target)
        if candidates and not isinstance(target, Operation):
            candidates = [op for op in candidates if op.kind in kinds]
            if not candidates:
                raise NotAMemberError(target, self.interface)
        elif not candidates:
            if isinstance(target, Operation) or not _is_selector(target):
                raise NotAMemberError(target, self.interface)
            candidates = select(self._catalog, target, kinds=kinds)

        operation = self._resolve(candidates, candidates[0].name, implementation)
        return self._bind(operation, implementation)

    def _bind(
        self, operation: Operation, implementation: Implementation
    ) -> Builder[TInterface]:
        if self._closed:
            raise BuilderClosedError(self.interface)
        if operation in self._implementations:
            raise DuplicateBindingError(operation)
        self._implementations[operation] = implementation
        logger.debug(f"Bound {operation.describe()}")
        return self

    # -- accessor shorthands -------------------------------------------------

    def property_get(
        self, target: Any, implementation: Callable[[], Any]
    ) -> Builder[TInterface]:
        """Bind a property getter: a name, the property, or ``lambda x: x.prop``."""
        if isinstance(target, str):
            return self.method(f"get_{target}", implementation)
        return self._method(target, implementation, _PROPERTY_GET)

    def property_set(
        self, target: Any, implementation: Callable[[Any], Any]
    ) -> Builder[TInterface]:
        """Bind a property setter: a name, the property, or ``lambda x: x.prop``."""
        if isinstance(target, str):
            return self.method(f"set_{target}", implementation)
        return self._method(target, implementation, _PROPERTY_SET)

    def index_get(self, implementation: Implementation) -> Builder[TInterface]:
        """Bind ``__getitem__``."""
        return self.method("get_Item", implementation)

    def index_set(self, implementation: Implementation) -> Builder[TInterface]:
        """Bind ``__setitem__``."""
        return self.method("set_Item", implementation)

    def event_subscribe(
        self, target: str | event, implementation: Callable[[Any], Any]
    ) -> Builder[TInterface]:
        """Bind the subscription side of an event."""
        if isinstance(target, str):
            return self.method(f"add_{target}", implementation)
        return self._method(target, implementation, _EVENT_ADD)

    def event_unsubscribe(
        self, target: str | event, implementation: Callable[[Any], Any]
    ) -> Builder[TInterface]:
        """Bind the unsubscription side of an event."""
        if isinstance(target, str):
            return self.method(f"remove_{target}", implementation)
        return self._method(target, implementation, _EVENT_REMOVE)

    # -- terminal operations ---------------------------------------------------

    def build(self) -> CallDispatcher:
        """Freeze the current table into a dispatcher.

        Unbound operations are not an error: they forward to the default
        target, or raise UnimplementedError when called.
        """
        if self._closed:
            raise BuilderClosedError(self.interface)
        dispatcher = CallDispatcher(
            self.interface, self._implementations, self._default_target
        )
        if self._settings.single_use_builders:
            self._closed = True
        logger.debug(
            f"Built dispatcher for {self.interface.__qualname__}",
            extra={"bound": len(self._implementations)},
        )
        return dispatcher

    def create(self, factory: ProxyFactory | None = None) -> TInterface:
        """Create the anonymous instance.

        Args:
            factory: Proxy factory to use. Defaults to the shared factory.
        """
        dispatcher = self.build()
        return (factory or shared_factory()).create(self._catalog, dispatcher)


def implement(
    interface: type[TInterface],
    default_target: TInterface | None = None,
    *,
    settings: AnonymousSettings | None = None,
) -> Builder[TInterface]:
    """Start implementing ``interface``.

    Args:
        interface: An abstract ABC or a Protocol class.
        default_target: Optional object that already implements the
            interface. Calls the builder does not override are forwarded to it.
        settings: Overrides the process-wide settings.

    Returns:
        A builder used to define the anonymous implementation.
    """
    return Builder(interface, default_target, settings=settings)
