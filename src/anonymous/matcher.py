"""Match candidate implementations to interface operations.

Two resolution paths:

- by reference: the caller names one declaration (an ``Operation``, the
  interface's function, property or event object, or a selector lambda such
  as ``lambda g: g.say_hi``). Resolution is an identity lookup.
- by name and signature: the candidate's own signature is compared
  structurally against every operation carrying that synthesized name.

Both paths insist on exactly one result. Silently taking the first match
would bind the wrong overload.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Sequence
from typing import Any

from anonymous.catalog import Catalog, Operation, OperationKind
from anonymous.errors import (
    AmbiguousMatchError,
    NoMatchError,
    NotAMemberError,
    SignatureMismatchError,
)
from anonymous.signature import Signature

logger = logging.getLogger(__name__)

# A bare reference to a two-sided member means its read side.
READ_KINDS = frozenset(
    {
        OperationKind.METHOD,
        OperationKind.PROPERTY_GET,
        OperationKind.INDEX_GET,
        OperationKind.EVENT_ADD,
    }
)


def references(catalog: Catalog, reference: Any) -> list[Operation]:
    """Return every operation an explicit reference points at."""
    if isinstance(reference, Operation):
        return [reference] if reference in catalog else []
    return catalog.for_member(reference)


def resolve_reference(
    catalog: Catalog,
    reference: Any,
    *,
    kinds: Collection[OperationKind] = READ_KINDS,
) -> Operation:
    """Resolve an explicit reference to exactly one operation.

    Raises:
        NotAMemberError: The reference is not part of the catalog.
        AmbiguousMatchError: The reference covers several operations, as an
            overloaded method does.
    """
    found = references(catalog, reference)
    if not found:
        raise NotAMemberError(reference, catalog.interface)
    if not isinstance(reference, Operation):
        found = [op for op in found if op.kind in kinds]
        if not found:
            raise NotAMemberError(reference, catalog.interface)
    if len(found) > 1:
        raise AmbiguousMatchError(found[0].name, found)
    return found[0]


def pick(
    candidates: Sequence[Operation],
    candidate: Signature,
    label: str,
    *,
    strict: bool = False,
) -> Operation:
    """Pick the single operation among ``candidates`` that fits ``candidate``."""
    found = [op for op in candidates if op.signature.accepts(candidate, strict=strict)]
    if not found:
        detail = "; ".join(
            f"{op.describe()}: {op.signature.mismatch(candidate, strict=strict)}"
            for op in candidates
        )
        message = f'Could not match "{label}" to an interface operation'
        raise NoMatchError(f"{message} ({detail})" if detail else message)
    if len(found) > 1:
        raise AmbiguousMatchError(label, found)
    return found[0]


def match_operation(
    catalog: Catalog,
    candidate: Signature,
    name: str,
    *,
    strict: bool = False,
) -> Operation:
    """Find the operation named ``name`` whose signature fits ``candidate``.

    Raises:
        NoMatchError: No operation fits.
        AmbiguousMatchError: More than one operation fits.
    """
    return pick(catalog.named(name), candidate, name, strict=strict)


def check_signature(
    operation: Operation,
    candidate: Signature,
    *,
    strict: bool = False,
) -> None:
    """Raise SignatureMismatchError if ``candidate`` cannot implement ``operation``."""
    reason = operation.signature.mismatch(candidate, strict=strict)
    if reason is not None:
        raise SignatureMismatchError(operation, reason)


class _Sink:
    """Absorbs whatever a selector does with the member it touched."""

    def __call__(self, *args: Any, **kwargs: Any) -> _Sink:
        return self

    def __getattr__(self, name: str) -> _Sink:
        return self

    def __getitem__(self, key: Any) -> _Sink:
        return self


class _Probe:
    """Stand-in instance that records which members a selector touches."""

    def __init__(self) -> None:
        object.__setattr__(self, "_touched", [])

    def __getattr__(self, name: str) -> _Sink:
        self._touched.append(name)
        return _Sink()

    def __getitem__(self, key: Any) -> _Sink:
        self._touched.append("__getitem__")
        return _Sink()


def select(
    catalog: Catalog,
    selector: Callable[[Any], Any],
    *,
    kinds: Collection[OperationKind] = READ_KINDS,
) -> list[Operation]:
    """Run ``selector`` against a probe and return the operations it names.

    ``lambda c: c.count`` names the ``count`` property, ``lambda d: d[0]`` the
    indexer, and ``lambda w: w.write`` every overload of ``write``. A selector
    may also return a declaration object directly, e.g. ``lambda _: Base.run``.

    Raises:
        NoMatchError: The selector touched no member or several members.
        NotAMemberError: The touched member is not part of the interface.
    """
    probe = _Probe()
    result = selector(probe)
    if not isinstance(result, (_Probe, _Sink)):
        found = [op for op in references(catalog, result) if op.kind in kinds]
        if found:
            return found

    touched = list(dict.fromkeys(object.__getattribute__(probe, "_touched")))
    if len(touched) != 1:
        raise NoMatchError("Could not determine interface operation.")
    attribute = touched[0]
    found = catalog.for_attribute(attribute, kinds)
    if not found and attribute == "__getitem__":
        # ``lambda d: d[key]`` names the indexer; setter kinds mean __setitem__.
        attribute = "__setitem__"
        found = catalog.for_attribute(attribute, kinds)
    if not found:
        raise NotAMemberError(attribute, catalog.interface)
    logger.debug(f"Selector resolved to {attribute}", extra={"operations": len(found)})
    return found
