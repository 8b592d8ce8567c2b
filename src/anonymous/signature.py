"""Signature model for interface operations and candidate implementations.

A ``Signature`` is pure data: an ordered tuple of parameter descriptors and a
return type. Declarations and candidates share the same model; anything a
candidate leaves unannotated is ``UNSPECIFIED`` and acts as a wildcard unless
matching runs in strict mode.

By-reference parameters are declared with ``Out[T]`` or ``InOut[T]``. The same
classes are the runtime cells passed at the call site:

    class Parser(ABC):
        @abstractmethod
        def try_parse(self, text: str, result: Out[int]) -> bool: ...

    cell = Out[int]()
    parser.try_parse("42", cell)
    cell.value  # 42
"""

from __future__ import annotations

import inspect
import typing
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Generic, TypeVar

T = TypeVar("T")

_MISSING: Any = object()


class _Unspecified:
    """Marker for a type or mode that was not declared."""

    _instance: _Unspecified | None = None

    def __new__(cls) -> _Unspecified:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSPECIFIED"

    def __bool__(self) -> bool:
        return False


UNSPECIFIED: Any = _Unspecified()


class ParameterMode(StrEnum):
    """How a parameter passes its value."""

    IN = "in"
    OUT = "out"
    IN_OUT = "in_out"


class Ref(Generic[T]):
    """Mutable cell carrying a by-reference value."""

    mode = ParameterMode.IN_OUT

    def __init__(self, value: T = _MISSING) -> None:
        self._value = value

    @property
    def value(self) -> T:
        if self._value is _MISSING:
            raise ValueError(f"{type(self).__name__} cell has no value")
        return self._value

    @value.setter
    def value(self, value: T) -> None:
        self._value = value

    @property
    def has_value(self) -> bool:
        return self._value is not _MISSING

    def __repr__(self) -> str:
        shown = "<unset>" if self._value is _MISSING else repr(self._value)
        return f"{type(self).__name__}({shown})"


class Out(Ref[T]):
    """Output-only cell. Supplies no value; the callee sets one."""

    mode = ParameterMode.OUT

    def __init__(self) -> None:
        super().__init__()


class InOut(Ref[T]):
    """By-reference cell. Supplies a value and receives one back."""

    mode = ParameterMode.IN_OUT

    def __init__(self, value: T) -> None:
        super().__init__(value)


@dataclass(frozen=True, slots=True)
class ParameterDescriptor:
    """One positional parameter of an operation."""

    name: str
    type: Any = UNSPECIFIED
    mode: Any = UNSPECIFIED

    @property
    def effective_mode(self) -> ParameterMode:
        """Declared mode, with plain parameters reading as IN."""
        return ParameterMode.IN if self.mode is UNSPECIFIED else self.mode

    def __str__(self) -> str:
        if self.type is UNSPECIFIED and self.mode is UNSPECIFIED:
            return self.name
        text = type_name(self.type)
        if self.mode is ParameterMode.OUT:
            text = f"Out[{text}]"
        elif self.mode is ParameterMode.IN_OUT:
            text = f"InOut[{text}]"
        return f"{self.name}: {text}"


@dataclass(frozen=True, slots=True)
class Signature:
    """Ordered parameters plus return type.

    ``parameters`` is ``None`` when the arity is unconstrained: a candidate
    taking ``*args`` or a builtin whose signature cannot be introspected.
    """

    parameters: tuple[ParameterDescriptor, ...] | None = ()
    return_type: Any = UNSPECIFIED

    @property
    def arity(self) -> int | None:
        return None if self.parameters is None else len(self.parameters)

    def accepts(self, candidate: Signature, *, strict: bool = False) -> bool:
        """Return True if ``candidate`` structurally fits this signature."""
        return self.mismatch(candidate, strict=strict) is None

    def mismatch(self, candidate: Signature, *, strict: bool = False) -> str | None:
        """Describe why ``candidate`` does not fit, or None if it does."""
        if not _types_agree(self.return_type, candidate.return_type, strict):
            return (
                f"return type {type_name(candidate.return_type)} "
                f"!= {type_name(self.return_type)}"
            )
        if candidate.parameters is None:
            if strict:
                return "implementation has no fixed parameter list"
            return None
        if self.parameters is None:
            return None
        if len(self.parameters) != len(candidate.parameters):
            return (
                f"expected {len(self.parameters)} parameter(s), "
                f"got {len(candidate.parameters)}"
            )
        for index, (declared, offered) in enumerate(
            zip(self.parameters, candidate.parameters, strict=True)
        ):
            if offered.mode is UNSPECIFIED:
                if strict:
                    return f"parameter {index} ({offered.name}) has no declared mode"
            elif offered.mode != declared.effective_mode:
                return (
                    f"parameter {index} ({offered.name}) is {offered.mode}, "
                    f"expected {declared.effective_mode}"
                )
            if not _types_agree(declared.type, offered.type, strict):
                return (
                    f"parameter {index} ({offered.name}) has type "
                    f"{type_name(offered.type)}, expected {type_name(declared.type)}"
                )
        return None

    def __str__(self) -> str:
        if self.parameters is None:
            params = "..."
        else:
            params = ", ".join(str(p) for p in self.parameters)
        if self.return_type is UNSPECIFIED:
            return f"({params})"
        return f"({params}) -> {type_name(self.return_type)}"


def _types_agree(declared: Any, offered: Any, strict: bool) -> bool:
    if offered is UNSPECIFIED:
        return not strict
    if declared is UNSPECIFIED:
        return True
    return declared == offered


def type_name(tp: Any) -> str:
    """Short human-readable name for a type annotation."""
    if tp is UNSPECIFIED:
        return "?"
    if tp is type(None):
        return "None"
    if isinstance(tp, type) and not typing.get_args(tp):
        return tp.__qualname__
    return repr(tp).replace("typing.", "")


def split_annotation(annotation: Any) -> tuple[Any, Any]:
    """Split a parameter annotation into (type, mode).

    ``Out[int]`` becomes ``(int, OUT)``, ``InOut[str]`` becomes
    ``(str, IN_OUT)`` and a plain ``int`` becomes ``(int, IN)``.
    """
    if annotation is inspect.Parameter.empty:
        return UNSPECIFIED, UNSPECIFIED
    origin = typing.get_origin(annotation)
    cell = origin if origin is not None else annotation
    if isinstance(cell, type) and issubclass(cell, Ref):
        args = typing.get_args(annotation)
        if not args:
            return UNSPECIFIED, cell.mode
        inner = args[0]
        if isinstance(inner, typing.ForwardRef):
            inner = inner.__forward_arg__
        return _normalize(inner), cell.mode
    return _normalize(annotation), ParameterMode.IN


def _normalize(annotation: Any) -> Any:
    if annotation is inspect.Signature.empty:
        return UNSPECIFIED
    if annotation is None:
        return type(None)
    return annotation


def resolve_annotation(
    annotation: Any,
    globalns: dict[str, Any] | None = None,
    localns: dict[str, Any] | None = None,
) -> Any:
    """Evaluate one string annotation, keeping unresolvable names as written.

    ``"Out[Later]"`` still resolves to an ``Out`` cell when only ``Later`` is
    unknown, so the parameter mode survives.
    """
    if not isinstance(annotation, str):
        return annotation
    globalns = {} if globalns is None else globalns
    try:
        return eval(annotation, globalns, localns)
    except (NameError, AttributeError):
        pass
    head, bracket, rest = annotation.partition("[")
    if bracket and rest.endswith("]"):
        scopes = [ns for ns in (localns, globalns) if ns]
        cell = next(
            (ns[head.strip()] for ns in scopes if head.strip() in ns), None
        )
        if isinstance(cell, type) and issubclass(cell, Ref):
            return cell[resolve_annotation(rest[:-1], globalns, localns)]
    return annotation


def _globals_of(func: Any) -> dict[str, Any]:
    target = inspect.unwrap(getattr(func, "__func__", func))
    if not inspect.isfunction(target):
        call = getattr(type(func), "__call__", None)
        target = getattr(call, "__func__", call)
    return getattr(target, "__globals__", {})


def _inspect(func: Any) -> inspect.Signature | None:
    try:
        return inspect.signature(func, eval_str=True)
    except NameError:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return None
    # Some name cannot be resolved here: evaluate annotations one by one.
    globalns = _globals_of(func)
    return sig.replace(
        parameters=[
            param.replace(annotation=resolve_annotation(param.annotation, globalns))
            for param in sig.parameters.values()
        ],
        return_annotation=resolve_annotation(sig.return_annotation, globalns),
    )


def signature_of(func: Any, *, bound: bool = False) -> Signature:
    """Build a Signature from a callable.

    Args:
        func: A function, bound method, lambda, or other callable.
        bound: True for interface declarations, whose first positional
            parameter (``self``) is not part of the operation.

    Returns:
        The callable's Signature. Callables that cannot be introspected get
        an unconstrained signature.
    """
    sig = _inspect(func)
    if sig is None:
        return Signature(parameters=None)

    params: list[ParameterDescriptor] = []
    variadic = False
    skip_self = bound
    for param in sig.parameters.values():
        if skip_self and param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            skip_self = False
            continue
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            variadic = True
            continue
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            continue
        tp, mode = split_annotation(param.annotation)
        params.append(ParameterDescriptor(name=param.name, type=tp, mode=mode))

    return Signature(
        parameters=None if variadic else tuple(params),
        return_type=_normalize(sig.return_annotation),
    )
