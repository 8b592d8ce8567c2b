"""Proxy generation: live objects that route every call into a dispatcher.

``ProxyFactory`` builds one subclass per catalog. The subclass overrides every
public member of the interface with a thin route that hands the invoked
operation and its arguments to the instance's ``CallDispatcher``:

- methods call ``dispatcher.invoke(op, args, kwargs)``
- overloaded methods first bind the arguments to pick the overload invoked
- properties and Protocol data members become properties
- ``__getitem__`` / ``__setitem__`` route to the indexer operations
- events become ``EventAccessor`` attributes

A member shadowed by a more derived interface is only reachable through the
dispatcher; the attribute on the proxy always names the most-derived
declaration.
"""

from __future__ import annotations

import functools
import inspect
import logging
import threading
import types
import typing
from typing import Any

from anonymous.catalog import Catalog, Operation, OperationKind, catalog
from anonymous.dispatch import CallDispatcher
from anonymous.events import EventAccessor
from anonymous.signature import UNSPECIFIED, ParameterDescriptor, ParameterMode, Ref

logger = logging.getLogger(__name__)

DISPATCHER_ATTRIBUTE = "_anonymous_dispatcher"


def dispatcher_of(instance: Any) -> CallDispatcher:
    """Return the dispatcher behind an anonymous proxy."""
    try:
        return object.__getattribute__(instance, DISPATCHER_ATTRIBUTE)
    except AttributeError:
        raise TypeError(f"{instance!r} is not an anonymous proxy") from None


def is_proxy(instance: Any) -> bool:
    return getattr(type(instance), "__anonymous_catalog__", None) is not None


def _value_fits(value: Any, descriptor: ParameterDescriptor) -> bool:
    if descriptor.mode in (ParameterMode.OUT, ParameterMode.IN_OUT):
        return isinstance(value, Ref)
    return _type_fits(value, descriptor.type)


def _type_fits(value: Any, tp: Any) -> bool:
    if tp is UNSPECIFIED or tp is Any:
        return True
    if tp is type(None):
        return value is None
    origin = typing.get_origin(tp)
    if origin in (typing.Union, types.UnionType):
        return any(_type_fits(value, arg) for arg in typing.get_args(tp))
    if isinstance(origin, type):
        return isinstance(value, origin)
    if isinstance(tp, type):
        return isinstance(value, tp)
    # TypeVars, Literals, Callables and string annotations are not checked.
    return True


class _Overloads:
    """Picks the overload a call was meant for by binding its arguments."""

    def __init__(self, operations: list[Operation]) -> None:
        self.operations = operations
        self._bindings = [
            (op, inspect.signature(op.declaration)) for op in operations
        ]

    def resolve(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Operation:
        found = []
        for op, sig in self._bindings:
            try:
                bound = sig.bind(None, *args, **kwargs)
            except TypeError:
                continue
            params = op.signature.parameters or ()
            if all(
                _value_fits(bound.arguments[p.name], p)
                for p in params
                if p.name in bound.arguments
            ):
                found.append(op)
        if len(found) == 1:
            return found[0]
        name = self.operations[0].name
        if not found:
            raise TypeError(f"No overload of {name} accepts the given arguments")
        raise TypeError(
            f"Call to {name} matches several overloads: "
            + ", ".join(op.describe() for op in found)
        )


def _route(operations: list[Operation]) -> Any:
    """Build the function installed on the proxy for one member."""
    if len(operations) == 1:
        (op,) = operations

        def route(self: Any, *args: Any, **kwargs: Any) -> Any:
            return getattr(self, DISPATCHER_ATTRIBUTE).invoke(op, args, kwargs)

    else:
        overloads = _Overloads(operations)
        op = operations[0]

        def route(self: Any, *args: Any, **kwargs: Any) -> Any:
            target = overloads.resolve(args, kwargs)
            return getattr(self, DISPATCHER_ATTRIBUTE).invoke(target, args, kwargs)

    # Copy name and docs only; the declaration's __dict__ carries the
    # abstract marker, which would keep the proxy class abstract.
    return functools.wraps(op.member, updated=())(route)


def _property(getter: Operation | None, setter: Operation | None) -> property:
    fget = fset = None
    if getter is not None:

        def fget(self: Any) -> Any:
            return getattr(self, DISPATCHER_ATTRIBUTE).invoke(getter, ())

    if setter is not None:

        def fset(self: Any, value: Any) -> None:
            getattr(self, DISPATCHER_ATTRIBUTE).invoke(setter, (value,))

    member = (getter or setter).member
    return property(fget, fset, doc=getattr(member, "__doc__", None))


class _EventSlot:
    """Class-level descriptor producing an EventAccessor per access."""

    def __init__(self, name: str, add: Operation | None, remove: Operation | None):
        self.name = name
        self.add = add
        self.remove = remove

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return EventAccessor(
            getattr(instance, DISPATCHER_ATTRIBUTE), self.name, self.add, self.remove
        )

    def __set__(self, instance: Any, value: Any) -> None:
        # ``proxy.evt += handler`` assigns the accessor back after __iadd__.
        if isinstance(value, EventAccessor) and value.name == self.name:
            return
        raise AttributeError(f"cannot assign to event {self.name!r}")


def _first(operations: list[Operation], kind: OperationKind) -> Operation | None:
    return next((op for op in operations if op.kind is kind), None)


def _member_for(operations: list[Operation]) -> Any:
    kinds = {op.kind for op in operations}
    if kinds <= {OperationKind.PROPERTY_GET, OperationKind.PROPERTY_SET}:
        return _property(
            _first(operations, OperationKind.PROPERTY_GET),
            _first(operations, OperationKind.PROPERTY_SET),
        )
    if kinds <= {OperationKind.EVENT_ADD, OperationKind.EVENT_REMOVE}:
        return _EventSlot(
            operations[0].attribute,
            _first(operations, OperationKind.EVENT_ADD),
            _first(operations, OperationKind.EVENT_REMOVE),
        )
    return _route(operations)


def _init(self: Any, dispatcher: CallDispatcher) -> None:
    object.__setattr__(self, DISPATCHER_ATTRIBUTE, dispatcher)


def _repr(self: Any) -> str:
    return f"<{type(self).__name__} at {id(self):#x}>"


class ProxyFactory:
    """Generates and caches proxy classes, one per interface."""

    def __init__(self, *, class_prefix: str = "Anonymous") -> None:
        self.class_prefix = class_prefix
        self._classes: dict[type, tuple[Catalog, type]] = {}
        self._lock = threading.Lock()

    def create(self, target: Catalog | type, dispatcher: CallDispatcher) -> Any:
        """Create a live object for ``target`` backed by ``dispatcher``."""
        cat = target if isinstance(target, Catalog) else catalog(target)
        return self.proxy_class(cat)(dispatcher)

    def proxy_class(self, cat: Catalog) -> type:
        """Return the proxy class for ``cat``.

        One class is kept per interface. A rebuilt catalog (after
        ``clear_catalog_cache()``) replaces the class generated for the old one.
        """
        with self._lock:
            cached = self._classes.get(cat.interface)
            if cached is not None and cached[0] is cat:
                return cached[1]
            cls = self._build_class(cat)
            self._classes[cat.interface] = (cat, cls)
            return cls

    def _build_class(self, cat: Catalog) -> type:
        namespace: dict[str, Any] = {
            "__init__": _init,
            "__repr__": _repr,
            "__anonymous_catalog__": cat,
        }
        for attribute in cat.attributes:
            operations = cat.for_attribute(attribute)
            if operations:
                namespace[attribute] = _member_for(operations)

        interface = cat.interface
        name = f"{self.class_prefix}{interface.__name__}"
        cls = types.new_class(name, (interface,), exec_body=lambda ns: ns.update(namespace))
        cls.__module__ = interface.__module__
        logger.debug(f"Generated proxy class {name}", extra={"members": len(namespace)})
        return cls


_shared: ProxyFactory | None = None
_shared_lock = threading.Lock()


def shared_factory() -> ProxyFactory:
    """Return the process-wide factory, creating it on first use."""
    global _shared
    with _shared_lock:
        if _shared is None:
            _shared = ProxyFactory()
        return _shared


def set_shared_factory(factory: ProxyFactory | None) -> None:
    """Replace the process-wide factory. None recreates it on next use."""
    global _shared
    with _shared_lock:
        _shared = factory
