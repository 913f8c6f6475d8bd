"""
Tests for the specification combinators.
"""

import pytest

from bookingrules.domain.exceptions import ValidationError
from bookingrules.policies.specification import (
    AndSpecification,
    NotSpecification,
    OrSpecification,
    PredicateSpecification,
    collect_violations,
)


def positive():
    return PredicateSpecification("positive", lambda n: n > 0, "must be positive")


def even():
    return PredicateSpecification("even", lambda n: n % 2 == 0, "must be even")


def small():
    return PredicateSpecification("small", lambda n: n < 10)


class TestCombinators:
    """Tests for AND / OR / NOT evaluation."""

    def test_and(self):
        """Test conjunction."""
        spec = positive() & even()

        assert isinstance(spec, AndSpecification)
        assert spec.is_satisfied_by(4)
        assert not spec.is_satisfied_by(3)
        assert not spec.is_satisfied_by(-2)

    def test_or(self):
        """Test disjunction."""
        spec = positive() | even()

        assert isinstance(spec, OrSpecification)
        assert spec.is_satisfied_by(3)
        assert spec.is_satisfied_by(-2)
        assert not spec.is_satisfied_by(-3)

    def test_not(self):
        """Test negation."""
        spec = ~even()

        assert isinstance(spec, NotSpecification)
        assert spec.is_satisfied_by(3)
        assert not spec.is_satisfied_by(4)

    def test_specifications_are_reusable(self):
        """Test that evaluation does not depend on earlier calls."""
        spec = positive() & small()

        results = [spec.is_satisfied_by(n) for n in (5, 50, 5)]

        assert results == [True, False, True]

    def test_none_operand_rejected(self):
        """Test that combinators need real specifications."""
        with pytest.raises(ValidationError):
            AndSpecification(positive(), None)
        with pytest.raises(ValidationError):
            NotSpecification("positive")


class TestDescriptions:
    """Tests for composed descriptions."""

    def test_and_or_not_descriptions(self):
        """Test description composition."""
        assert (positive() & even()).description == "(positive) AND (even)"
        assert (positive() | even()).description == "(positive) OR (even)"
        assert (~even()).description == "NOT (even)"

    def test_double_negation_description(self):
        """Test that NOT NOT s describes itself as s."""
        assert (~~even()).description == "even"

    def test_nested_description(self):
        """Test a nested tree."""
        spec = (positive() & ~even()) | small()

        assert spec.description == "((positive) AND (NOT (even))) OR (small)"
        assert str(spec) == spec.description


class TestNormalize:
    """Tests for structural simplification."""

    def test_double_negation_collapses(self):
        """Test that normalize removes a double negation."""
        inner = even()

        assert NotSpecification(NotSpecification(inner)).normalize() is inner

    def test_normalize_recurses(self):
        """Test that nested double negations are removed."""
        left, right = positive(), even()
        spec = (~~left) & (~~right)

        normalized = spec.normalize()

        assert isinstance(normalized, AndSpecification)
        assert normalized.left is left
        assert normalized.right is right

    def test_single_negation_kept(self):
        """Test that a single negation survives."""
        normalized = (~even()).normalize()

        assert isinstance(normalized, NotSpecification)


class TestDenialReasons:
    """Tests for failure explanations."""

    def test_satisfied_returns_none(self):
        """Test that a satisfied spec has no denial reason."""
        assert (positive() & even()).denial_reason(4) is None

    def test_and_reports_first_failing_leaf(self):
        """Test that AND names the first failing child."""
        spec = positive() & even()

        assert spec.denial_reason(-3) == "must be positive"
        assert spec.denial_reason(3) == "must be even"

    def test_or_reports_both_sides(self):
        """Test that OR reports both children."""
        spec = positive() | even()

        assert spec.denial_reason(-3) == "must be positive; must be even"

    def test_not_names_inner_spec(self):
        """Test that NOT names the specification that held."""
        assert (~even()).denial_reason(4) == "Must not satisfy: even"

    def test_default_reason_uses_description(self):
        """Test the fallback reason of a leaf without a custom message."""
        assert small().denial_reason(50) == "Not satisfied: small"

    def test_collect_violations(self):
        """Test that every failing conjunct is listed in order."""
        spec = positive() & even() & small()

        assert collect_violations(spec, -3) == ["must be positive", "must be even"]
        assert collect_violations(spec, 4) == []


class TestPredicateSpecification:
    """Tests for the callable-backed leaf."""

    def test_blank_description_rejected(self):
        """Test validation of the description."""
        with pytest.raises(ValidationError):
            PredicateSpecification("  ", lambda n: True)

    def test_non_callable_rejected(self):
        """Test validation of the predicate."""
        with pytest.raises(ValidationError):
            PredicateSpecification("x", True)
