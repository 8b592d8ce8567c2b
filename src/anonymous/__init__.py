"""Anonymous interface implementations.

Build an object satisfying an interface by supplying implementations for
only the operations you care about. Everything else forwards to an optional
default target, or raises ``UnimplementedError`` when called.

Public API:
- implement, Builder: define an anonymous implementation
- CallDispatcher: the router behind every created instance
- catalog, Catalog, Operation, OperationKind: interface operation sets
- event, EventHook: event declarations
- Ref, Out, InOut: by-reference parameter cells
- ProxyFactory, shared_factory: live object generation
"""

from anonymous.builder import Builder, implement
from anonymous.catalog import Catalog, Operation, OperationKind, catalog, is_interface
from anonymous.config import AnonymousSettings, ConfigError, get_settings, load_settings
from anonymous.dispatch import CallDispatcher
from anonymous.errors import (
    AmbiguousMatchError,
    BuilderClosedError,
    DuplicateBindingError,
    InterfaceError,
    NoMatchError,
    NotAMemberError,
    NotAnInterfaceError,
    SignatureMismatchError,
    UnimplementedError,
)
from anonymous.events import EventHook, event
from anonymous.matcher import match_operation, resolve_reference
from anonymous.proxy import (
    ProxyFactory,
    dispatcher_of,
    is_proxy,
    set_shared_factory,
    shared_factory,
)
from anonymous.signature import (
    InOut,
    Out,
    ParameterDescriptor,
    ParameterMode,
    Ref,
    Signature,
    signature_of,
)

__all__ = [
    # Builder
    "Builder",
    "implement",
    "CallDispatcher",
    # Catalog
    "Catalog",
    "Operation",
    "OperationKind",
    "catalog",
    "is_interface",
    "match_operation",
    "resolve_reference",
    # Declarations
    "event",
    "EventHook",
    "Ref",
    "Out",
    "InOut",
    "ParameterDescriptor",
    "ParameterMode",
    "Signature",
    "signature_of",
    # Proxies
    "ProxyFactory",
    "dispatcher_of",
    "is_proxy",
    "set_shared_factory",
    "shared_factory",
    # Settings
    "AnonymousSettings",
    "ConfigError",
    "get_settings",
    "load_settings",
    # Errors
    "InterfaceError",
    "NotAnInterfaceError",
    "NotAMemberError",
    "NoMatchError",
    "AmbiguousMatchError",
    "SignatureMismatchError",
    "DuplicateBindingError",
    "UnimplementedError",
    "BuilderClosedError",
]
