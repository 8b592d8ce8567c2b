"""Interface catalog: the flattened operation set of an interface.

The catalog is built once per interface and cached for the life of the
process. Operations declared directly on the interface come first, followed
by those of every extended interface in MRO order. A member re-declared on a
more specific interface stays a separate operation from the one it shadows.

Operation names follow the accessor convention used by the matcher:

- methods keep their own name (one operation per ``@overload`` variant)
- properties become ``get_<name>`` / ``set_<name>``
- ``__getitem__`` / ``__setitem__`` become ``get_Item`` / ``set_Item``
- events become ``add_<name>`` / ``remove_<name>``

Extension graphs are assumed acyclic; Python's MRO cannot express a cycle.
"""

from __future__ import annotations

import abc
import inspect
import logging
import sys
import threading
import typing
from collections.abc import Collection, Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from anonymous.errors import AmbiguousMatchError, NoMatchError, NotAnInterfaceError
from anonymous.events import event
from anonymous.signature import (
    ParameterDescriptor,
    ParameterMode,
    Signature,
    resolve_annotation,
    signature_of,
    split_annotation,
)

logger = logging.getLogger(__name__)

INDEXER_NAME = "Item"

_INDEXER_METHODS = {"__getitem__", "__setitem__"}
_SKIPPED_BASES = (object, typing.Generic, typing.Protocol, abc.ABC)


class OperationKind(StrEnum):
    """What kind of member an operation was synthesized from."""

    METHOD = "method"
    PROPERTY_GET = "property_get"
    PROPERTY_SET = "property_set"
    INDEX_GET = "index_get"
    INDEX_SET = "index_set"
    EVENT_ADD = "event_add"
    EVENT_REMOVE = "event_remove"


@dataclass(frozen=True, eq=False, slots=True)
class AttributeDeclaration:
    """Annotation-only data member of a Protocol (``name: str``)."""

    owner: type
    name: str
    type: Any

    def __repr__(self) -> str:
        return f"<attribute {self.owner.__qualname__}.{self.name}>"


@dataclass(frozen=True, eq=False, slots=True)
class Operation:
    """One operation of an interface.

    Operations compare by identity: two operations with the same name and
    signature reached through different declarations are distinct.
    """

    name: str
    kind: OperationKind
    attribute: str
    signature: Signature
    declaring_interface: type
    member: Any
    declaration: Any = None

    @property
    def parameters(self) -> tuple[ParameterDescriptor, ...] | None:
        return self.signature.parameters

    @property
    def return_type(self) -> Any:
        return self.signature.return_type

    def describe(self) -> str:
        return f"{self.declaring_interface.__qualname__}.{self.name}{self.signature}"

    def invoke_on(
        self,
        target: Any,
        args: tuple[Any, ...] = (),
        kwargs: dict[str, Any] | None = None,
    ) -> Any:
        """Perform this operation directly on ``target``."""
        kwargs = kwargs or {}
        match self.kind:
            case OperationKind.METHOD:
                return getattr(target, self.attribute)(*args, **kwargs)
            case OperationKind.PROPERTY_GET:
                return getattr(target, self.attribute)
            case OperationKind.PROPERTY_SET:
                (value,) = args
                setattr(target, self.attribute, value)
                return None
            case OperationKind.INDEX_GET:
                (key,) = args
                return target[key]
            case OperationKind.INDEX_SET:
                key, value = args
                target[key] = value
                return None
            case OperationKind.EVENT_ADD:
                getattr(target, self.attribute).subscribe(*args)
                return None
            case OperationKind.EVENT_REMOVE:
                getattr(target, self.attribute).unsubscribe(*args)
                return None
        raise AssertionError(f"unknown operation kind: {self.kind}")

    def __repr__(self) -> str:
        return f"<Operation {self.describe()}>"


@dataclass(frozen=True, eq=False)
class Catalog:
    """Ordered operations of one interface, with lookup helpers."""

    interface: type
    operations: tuple[Operation, ...]
    _ids: frozenset[int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_ids", frozenset(id(op) for op in self.operations))

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    def __contains__(self, item: object) -> bool:
        return isinstance(item, Operation) and id(item) in self._ids

    def named(self, name: str) -> list[Operation]:
        """Operations whose synthesized name is ``name``."""
        return [op for op in self.operations if op.name == name]

    def for_member(self, member: Any) -> list[Operation]:
        """Operations synthesized from a declaration object.

        ``member`` may be a function (or one of its overload variants), a
        property, an event, or a property accessor function. A class method
        reached through the class resolves to its underlying function.
        """
        member = getattr(member, "__func__", member)
        found = []
        for op in self.operations:
            if op.member is member or (
                op.declaration is not None and op.declaration is member
            ):
                found.append(op)
        return found

    def for_attribute(
        self,
        attribute: str,
        kinds: Collection[OperationKind] | None = None,
    ) -> list[Operation]:
        """Operations behind ``attribute`` as seen on an instance.

        Resolves the most-derived declaration, so a shadowed base member is
        not returned.
        """
        owner = _declaring_class(self.interface, attribute)
        if owner is None:
            return []
        return [
            op
            for op in self.operations
            if op.attribute == attribute
            and op.declaring_interface is owner
            and (kinds is None or op.kind in kinds)
        ]

    def get(self, name: str) -> Operation:
        """Return the single operation called ``name``."""
        found = self.named(name)
        if not found:
            raise NoMatchError(
                f'{self.interface.__qualname__} has no operation named "{name}"'
            )
        if len(found) > 1:
            raise AmbiguousMatchError(name, found)
        return found[0]

    @property
    def attributes(self) -> list[str]:
        """Distinct attribute names, in catalog order."""
        seen: dict[str, None] = {}
        for op in self.operations:
            seen.setdefault(op.attribute, None)
        return list(seen)


def is_interface(cls: Any) -> bool:
    """Return True if ``cls`` is an abstract ABC or a Protocol class."""
    if not isinstance(cls, type):
        return False
    # Set by typing on Protocol classes only, not on their concrete subclasses.
    if cls.__dict__.get("_is_protocol", False):
        return True
    return inspect.isabstract(cls)


def _extended(interface: type) -> list[type]:
    return [
        klass
        for klass in interface.__mro__
        if klass not in _SKIPPED_BASES and (klass is interface or is_interface(klass))
    ]


def _declaring_class(interface: type, attribute: str) -> type | None:
    for klass in _extended(interface):
        if attribute in vars(klass) or attribute in _data_members(klass):
            return klass
    return None


def _is_public(name: str) -> bool:
    return not name.startswith("_") or name in _INDEXER_METHODS


def _data_members(klass: type) -> dict[str, Any]:
    if not klass.__dict__.get("_is_protocol", False):
        return {}
    try:
        annotations = inspect.get_annotations(klass, eval_str=True)
    except NameError:
        module = sys.modules.get(klass.__module__)
        globalns = dict(vars(module)) if module else {}
        annotations = {
            name: resolve_annotation(annotation, globalns, dict(vars(klass)))
            for name, annotation in inspect.get_annotations(klass).items()
        }
    members = {}
    for name, annotation in annotations.items():
        if not _is_public(name) or name in vars(klass):
            continue
        if typing.get_origin(annotation) is typing.ClassVar:
            continue
        members[name] = annotation
    return members


def _method_operations(
    klass: type, name: str, func: Any, *, bound: bool = True
) -> list[Operation]:
    variants = typing.get_overloads(func) or [func]
    if name == "__getitem__":
        kind, op_name = OperationKind.INDEX_GET, f"get_{INDEXER_NAME}"
    elif name == "__setitem__":
        kind, op_name = OperationKind.INDEX_SET, f"set_{INDEXER_NAME}"
    else:
        kind, op_name = OperationKind.METHOD, name
    return [
        Operation(
            name=op_name,
            kind=kind,
            attribute=name,
            signature=signature_of(variant, bound=bound),
            declaring_interface=klass,
            member=func,
            declaration=variant,
        )
        for variant in variants
    ]


def _property_operations(klass: type, name: str, prop: property) -> list[Operation]:
    ops = []
    if prop.fget is not None:
        ops.append(
            Operation(
                name=f"get_{name}",
                kind=OperationKind.PROPERTY_GET,
                attribute=name,
                signature=signature_of(prop.fget, bound=True),
                declaring_interface=klass,
                member=prop,
                declaration=prop.fget,
            )
        )
    if prop.fset is not None:
        ops.append(
            Operation(
                name=f"set_{name}",
                kind=OperationKind.PROPERTY_SET,
                attribute=name,
                signature=signature_of(prop.fset, bound=True),
                declaring_interface=klass,
                member=prop,
                declaration=prop.fset,
            )
        )
    return ops


def _attribute_operations(klass: type, name: str, annotation: Any) -> list[Operation]:
    declaration = AttributeDeclaration(owner=klass, name=name, type=annotation)
    tp, _ = split_annotation(declaration.type)
    return [
        Operation(
            name=f"get_{name}",
            kind=OperationKind.PROPERTY_GET,
            attribute=name,
            signature=Signature(parameters=(), return_type=tp),
            declaring_interface=klass,
            member=declaration,
        ),
        Operation(
            name=f"set_{name}",
            kind=OperationKind.PROPERTY_SET,
            attribute=name,
            signature=Signature(
                parameters=(
                    ParameterDescriptor(name="value", type=tp, mode=ParameterMode.IN),
                ),
                return_type=type(None),
            ),
            declaring_interface=klass,
            member=declaration,
        ),
    ]


def _event_operations(klass: type, name: str, declared: event) -> list[Operation]:
    signature = declared.handler_signature
    return [
        Operation(
            name=f"add_{name}",
            kind=OperationKind.EVENT_ADD,
            attribute=name,
            signature=signature,
            declaring_interface=klass,
            member=declared,
        ),
        Operation(
            name=f"remove_{name}",
            kind=OperationKind.EVENT_REMOVE,
            attribute=name,
            signature=signature,
            declaring_interface=klass,
            member=declared,
        ),
    ]


def _declared_operations(klass: type) -> list[Operation]:
    ops: list[Operation] = []
    for name, value in vars(klass).items():
        # Abstract members are operations whatever their name.
        if not (_is_public(name) or getattr(value, "__isabstractmethod__", False)):
            continue
        if isinstance(value, property):
            ops.extend(_property_operations(klass, name, value))
        elif isinstance(value, event):
            ops.extend(_event_operations(klass, name, value))
        elif inspect.isfunction(value):
            ops.extend(_method_operations(klass, name, value))
        elif isinstance(value, (staticmethod, classmethod)) and value.__isabstractmethod__:
            bound = isinstance(value, classmethod)
            ops.extend(_method_operations(klass, name, value.__func__, bound=bound))
        # concrete static and class methods and plain values are not operations
    for name, annotation in _data_members(klass).items():
        ops.extend(_attribute_operations(klass, name, annotation))
    return ops


def build_catalog(interface: type) -> Catalog:
    """Enumerate the operations of ``interface`` without caching."""
    if not is_interface(interface):
        raise NotAnInterfaceError(interface)
    operations: list[Operation] = []
    for klass in _extended(interface):
        operations.extend(_declared_operations(klass))
    logger.debug(
        f"Built catalog for {interface.__qualname__}",
        extra={"operations": len(operations)},
    )
    return Catalog(interface=interface, operations=tuple(operations))


_cache: dict[type, Catalog] = {}
_cache_lock = threading.Lock()


def catalog(interface: type) -> Catalog:
    """Return the cached catalog for ``interface``, building it on first use."""
    with _cache_lock:
        found = _cache.get(interface)
        if found is None:
            found = build_catalog(interface)
            _cache[interface] = found
        return found


def clear_catalog_cache() -> None:
    """Forget every cached catalog."""
    with _cache_lock:
        _cache.clear()
