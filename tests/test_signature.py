"""Tests for the signature model."""

import inspect

import pytest

from anonymous.signature import (
    UNSPECIFIED,
    InOut,
    Out,
    ParameterDescriptor,
    ParameterMode,
    Ref,
    Signature,
    resolve_annotation,
    signature_of,
    split_annotation,
)
from tests.interfaces import Greeter, Parser, RealCounter, Scanner

P = ParameterDescriptor


class TestRefCells:
    def test_out_starts_unset(self):
        cell = Out[int]()
        assert not cell.has_value
        with pytest.raises(ValueError, match="no value"):
            _ = cell.value

    def test_out_receives_value(self):
        cell = Out[int]()
        cell.value = 42
        assert cell.has_value
        assert cell.value == 42

    def test_in_out_carries_value_both_ways(self):
        cell = InOut(3)
        assert cell.value == 3
        cell.value = 4
        assert cell.value == 4

    def test_modes(self):
        assert Out.mode is ParameterMode.OUT
        assert InOut.mode is ParameterMode.IN_OUT
        assert Ref.mode is ParameterMode.IN_OUT

    def test_repr(self):
        assert repr(Out()) == "Out(<unset>)"
        assert repr(InOut("x")) == "InOut('x')"


class TestSplitAnnotation:
    def test_out(self):
        assert split_annotation(Out[int]) == (int, ParameterMode.OUT)

    def test_in_out(self):
        assert split_annotation(InOut[str]) == (str, ParameterMode.IN_OUT)

    def test_bare_out(self):
        assert split_annotation(Out) == (UNSPECIFIED, ParameterMode.OUT)

    def test_plain_type(self):
        assert split_annotation(int) == (int, ParameterMode.IN)

    def test_none_means_none_type(self):
        assert split_annotation(None) == (type(None), ParameterMode.IN)

    def test_missing(self):
        assert split_annotation(inspect.Parameter.empty) == (UNSPECIFIED, UNSPECIFIED)


class TestSignatureOf:
    def test_annotated_function(self):
        def handler(name: str, count: int) -> bool:
            return True

        sig = signature_of(handler)
        assert sig.parameters == (
            P("name", str, ParameterMode.IN),
            P("count", int, ParameterMode.IN),
        )
        assert sig.return_type is bool

    def test_lambda_is_unspecified(self):
        sig = signature_of(lambda a, b: None)
        assert sig.arity == 2
        assert all(p.type is UNSPECIFIED and p.mode is UNSPECIFIED for p in sig.parameters)
        assert sig.return_type is UNSPECIFIED

    def test_declaration_skips_self(self):
        sig = signature_of(Greeter.say_hi, bound=True)
        assert sig.parameters == (P("name", str, ParameterMode.IN),)
        assert sig.return_type is str

    def test_by_reference_declaration(self):
        sig = signature_of(Parser.try_parse, bound=True)
        assert sig.parameters == (
            P("text", str, ParameterMode.IN),
            P("result", int, ParameterMode.OUT),
        )

    def test_bound_method_excludes_self(self):
        sig = signature_of(RealCounter().increment)
        assert sig.parameters == ()
        assert sig.return_type is type(None)

    def test_var_positional_is_unconstrained(self):
        assert signature_of(lambda *args: None).parameters is None
        assert signature_of(lambda first, *rest: None).arity is None

    def test_var_keyword_is_ignored(self):
        assert signature_of(lambda a, **kwargs: None).arity == 1

    def test_unresolvable_forward_reference_compares_as_written(self):
        def handler(value: "Missing") -> None:  # noqa: F821
            return None

        sig = signature_of(handler)
        assert sig.parameters[0].type == "Missing"

    def test_callable_object(self):
        class Handler:
            def __call__(self, text: str) -> int:
                return len(text)

        sig = signature_of(Handler())
        assert sig.parameters == (P("text", str, ParameterMode.IN),)
        assert sig.return_type is int


class TestAccepts:
    declared = Signature(
        parameters=(P("text", str, ParameterMode.IN), P("result", int, ParameterMode.OUT)),
        return_type=bool,
    )

    def test_exact_match(self):
        candidate = Signature(
            parameters=(P("s", str, ParameterMode.IN), P("r", int, ParameterMode.OUT)),
            return_type=bool,
        )
        assert self.declared.accepts(candidate)

    def test_parameter_names_do_not_matter(self):
        candidate = Signature(
            parameters=(P("x", str, ParameterMode.IN), P("y", int, ParameterMode.OUT)),
            return_type=bool,
        )
        assert self.declared.mismatch(candidate) is None

    def test_unspecified_is_a_wildcard(self):
        assert self.declared.accepts(Signature(parameters=(P("a"), P("b"))))

    def test_strict_rejects_wildcards(self):
        assert not self.declared.accepts(Signature(parameters=(P("a"), P("b"))), strict=True)

    def test_out_never_matches_in(self):
        candidate = Signature(
            parameters=(P("s", str, ParameterMode.IN), P("r", int, ParameterMode.IN)),
            return_type=bool,
        )
        assert not self.declared.accepts(candidate)
        assert "expected out" in self.declared.mismatch(candidate)

    def test_out_never_matches_in_out(self):
        candidate = Signature(
            parameters=(P("s", str, ParameterMode.IN), P("r", int, ParameterMode.IN_OUT)),
        )
        assert not self.declared.accepts(candidate)

    def test_type_mismatch(self):
        candidate = Signature(parameters=(P("s", int), P("r")))
        assert "has type int, expected str" in self.declared.mismatch(candidate)

    def test_arity_mismatch(self):
        candidate = Signature(parameters=(P("s"),))
        assert self.declared.mismatch(candidate) == "expected 2 parameter(s), got 1"

    def test_return_mismatch(self):
        candidate = Signature(parameters=(P("s"), P("r")), return_type=str)
        assert "return type str != bool" in self.declared.mismatch(candidate)

    def test_unconstrained_arity(self):
        candidate = Signature(parameters=None)
        assert self.declared.accepts(candidate)
        assert not self.declared.accepts(candidate, strict=True)

    def test_unannotated_declaration_reads_as_in(self):
        declared = Signature(parameters=(P("value"),))
        assert declared.accepts(Signature(parameters=(P("v", int, ParameterMode.IN),)))
        assert not declared.accepts(Signature(parameters=(P("v", int, ParameterMode.OUT),)))

    def test_str(self):
        assert str(self.declared) == "(text: str, result: Out[int]) -> bool"
        assert str(Signature(parameters=None)) == "(...)"


class TestPartiallyResolvableAnnotations:
    def test_resolvable_names_survive_an_unknown_one(self):
        sig = signature_of(Scanner.scan, bound=True)
        assert sig.parameters == (
            P("text", str, ParameterMode.IN),
            P("result", int, ParameterMode.OUT),
            P("precision", "Decimal", ParameterMode.IN),
        )
        assert sig.return_type is bool

    def test_cell_around_unknown_name_keeps_mode(self):
        sig = signature_of(Scanner.round, bound=True)
        assert sig.parameters == (P("amount", "Decimal", ParameterMode.IN_OUT),)
        assert sig.return_type is type(None)

    def test_resolve_annotation(self):
        namespace = {"Out": Out, "InOut": InOut}
        assert resolve_annotation("Out[int]", namespace) == Out[int]
        assert split_annotation(resolve_annotation("InOut[Later]", namespace)) == (
            "Later",
            ParameterMode.IN_OUT,
        )
        assert resolve_annotation("Later", namespace) == "Later"
        assert resolve_annotation(int, namespace) is int
