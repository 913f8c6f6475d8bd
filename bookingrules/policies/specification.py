"""
Composable boolean specifications.

A specification answers ``is_satisfied_by(context)`` and can describe itself.
``&``, ``|`` and ``~`` build AND / OR / NOT trees that are specifications in
their own right, so rules can be assembled from small reusable leaves:

    rule = ActiveMemberSpecification() & ~WeekendReservationSpecification(False)

When a tree rejects a context, ``denial_reason`` reports the leaf that
failed instead of just the aggregate result.
"""

from abc import ABC, abstractmethod
from typing import Callable, Generic, Iterator, List, Optional, TypeVar

from ..domain.exceptions import ValidationError

C = TypeVar("C")


class Specification(ABC, Generic[C]):
    """Base class for all specifications over a context type ``C``."""

    @abstractmethod
    def is_satisfied_by(self, context: C) -> bool:
        """Return True when the context meets this rule."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable statement of the rule."""

    def failure_reason(self, context: C) -> str:
        """
        Explain why the context does not meet the rule.

        Only meaningful when ``is_satisfied_by`` is False; leaves override this
        to give specific reasons.
        """
        return f"Not satisfied: {self.description}"

    def denial_reason(self, context: C) -> Optional[str]:
        """Return None when satisfied, otherwise the failure reason."""
        if self.is_satisfied_by(context):
            return None
        return self.failure_reason(context)

    def normalize(self) -> "Specification[C]":
        """Return an equivalent tree with double negations removed."""
        return self

    def __and__(self, other: "Specification[C]") -> "AndSpecification[C]":
        return AndSpecification(self, other)

    def __or__(self, other: "Specification[C]") -> "OrSpecification[C]":
        return OrSpecification(self, other)

    def __invert__(self) -> "NotSpecification[C]":
        return NotSpecification(self)

    def __str__(self) -> str:
        return self.description


def _require_specification(value, field_name: str) -> Specification:
    if value is None:
        raise ValidationError(f"{field_name} must not be None")
    if not isinstance(value, Specification):
        raise ValidationError(
            f"{field_name} must be a Specification, got {type(value).__name__}"
        )
    return value


class AndSpecification(Specification[C]):
    """Satisfied when both children are."""

    def __init__(self, left: Specification[C], right: Specification[C]):
        self._left = _require_specification(left, "left specification")
        self._right = _require_specification(right, "right specification")

    @property
    def left(self) -> Specification[C]:
        return self._left

    @property
    def right(self) -> Specification[C]:
        return self._right

    def is_satisfied_by(self, context: C) -> bool:
        return self._left.is_satisfied_by(context) and self._right.is_satisfied_by(context)

    @property
    def description(self) -> str:
        return f"({self._left.description}) AND ({self._right.description})"

    def failure_reason(self, context: C) -> str:
        # The first failing side names the rule that blocked the request
        reason = self._left.denial_reason(context)
        if reason is None:
            reason = self._right.denial_reason(context)
        return reason if reason is not None else super().failure_reason(context)

    def normalize(self) -> Specification[C]:
        return AndSpecification(self._left.normalize(), self._right.normalize())


class OrSpecification(Specification[C]):
    """Satisfied when at least one child is."""

    def __init__(self, left: Specification[C], right: Specification[C]):
        self._left = _require_specification(left, "left specification")
        self._right = _require_specification(right, "right specification")

    @property
    def left(self) -> Specification[C]:
        return self._left

    @property
    def right(self) -> Specification[C]:
        return self._right

    def is_satisfied_by(self, context: C) -> bool:
        return self._left.is_satisfied_by(context) or self._right.is_satisfied_by(context)

    @property
    def description(self) -> str:
        return f"({self._left.description}) OR ({self._right.description})"

    def failure_reason(self, context: C) -> str:
        # Both sides failed, so both reasons are relevant
        return (
            f"{self._left.failure_reason(context)}; "
            f"{self._right.failure_reason(context)}"
        )

    def normalize(self) -> Specification[C]:
        return OrSpecification(self._left.normalize(), self._right.normalize())


class NotSpecification(Specification[C]):
    """Satisfied when the wrapped specification is not."""

    def __init__(self, specification: Specification[C]):
        self._specification = _require_specification(specification, "specification")

    @property
    def specification(self) -> Specification[C]:
        return self._specification

    def is_satisfied_by(self, context: C) -> bool:
        return not self._specification.is_satisfied_by(context)

    @property
    def description(self) -> str:
        if isinstance(self._specification, NotSpecification):
            return self._specification.specification.description
        return f"NOT ({self._specification.description})"

    def failure_reason(self, context: C) -> str:
        if isinstance(self._specification, NotSpecification):
            return self._specification.specification.failure_reason(context)
        return f"Must not satisfy: {self._specification.description}"

    def normalize(self) -> Specification[C]:
        inner = self._specification.normalize()
        if isinstance(inner, NotSpecification):
            return inner.specification
        return NotSpecification(inner)


class PredicateSpecification(Specification[C]):
    """
    Leaf specification backed by a plain callable.

    Handy for one-off rules that do not deserve their own class. The
    predicate must be free of side effects.
    """

    def __init__(
        self,
        description: str,
        predicate: Callable[[C], bool],
        reason: Optional[str] = None,
    ):
        if not description or not description.strip():
            raise ValidationError("description must not be blank")
        if not callable(predicate):
            raise ValidationError("predicate must be callable")
        self._description = description.strip()
        self._predicate = predicate
        self._reason = reason

    def is_satisfied_by(self, context: C) -> bool:
        return bool(self._predicate(context))

    @property
    def description(self) -> str:
        return self._description

    def failure_reason(self, context: C) -> str:
        return self._reason or super().failure_reason(context)


def iter_conjuncts(specification: Specification[C]) -> Iterator[Specification[C]]:
    """Yield the operands of a (possibly nested) AND tree, left to right."""
    if isinstance(specification, AndSpecification):
        yield from iter_conjuncts(specification.left)
        yield from iter_conjuncts(specification.right)
    else:
        yield specification


def collect_violations(specification: Specification[C], context: C) -> List[str]:
    """Failure reasons of every AND operand that rejects the context."""
    violations: List[str] = []
    for operand in iter_conjuncts(specification):
        reason = operand.denial_reason(context)
        if reason is not None:
            violations.append(reason)
    return violations
