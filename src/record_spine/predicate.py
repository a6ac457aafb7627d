"""
Predicate expressions: filter conditions as inspectable data.

A predicate is an immutable tree. Leaves compare one record attribute with
a literal; interior nodes combine children with AND / OR or negate one
child. Because the tree is data rather than a closure, the same condition
can be evaluated in memory *or* translated into a storage collaborator's
native query form and executed remotely.

Manifesto:
    - **Data, not closures:** Opaque callables can be evaluated but never
      translated, so predicates are only built through :func:`leaf` and the
      combinators
    - **Validate at construction:** Unknown attributes and ill-typed literals
      raise immediately, never at evaluation or translation time
    - **No null ambiguity:** A comparison against a ``None`` attribute value
      is always ``False``; ``Not`` simply inverts its operand
    - **Order-preserving translation:** Children are visited before their
      parent, left operand before right

Architecture:
    ::

        and_(leaf(users, "username", "equals", "johndoe"),
             not_(leaf(users, "email", "starts_with", "admin")))

                         And
                        /   \\
          Leaf(username =)   Not
                              │
                   Leaf(email STARTS WITH)

        predicate.evaluate(record)     → bool            (eager, in-process)
        predicate.translate(visitor)   → visitor's form  (deferred, pushed down)

Examples:
    >>> p = users.attr("username").eq("johndoe") & ~users.attr("email").starts_with("admin")
    >>> p.evaluate(User(id=1, username="johndoe", email="user@x.com"))
    True
    >>> str(p)
    "(username = 'johndoe' AND NOT email STARTS WITH 'admin')"

Tags:
    predicate, expression-tree, composite, visitor, record-spine
"""

from __future__ import annotations

import operator as _op
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from functools import reduce
from typing import TYPE_CHECKING, Any, Callable

from record_spine.errors import TypeMismatch, ValidationError

if TYPE_CHECKING:
    from record_spine.protocols import PredicateVisitor
    from record_spine.schema import AttributeSpec, Schema


class Operator(str, Enum):
    """Leaf comparison operators."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    STARTS_WITH = "starts_with"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


_SYMBOLS = {
    Operator.EQUALS: "=",
    Operator.NOT_EQUALS: "!=",
    Operator.STARTS_WITH: "STARTS WITH",
    Operator.GREATER_THAN: ">",
    Operator.LESS_THAN: "<",
}

# Operand order is (attribute value, literal) for every operator.
_TESTS: dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQUALS: _op.eq,
    Operator.NOT_EQUALS: _op.ne,
    Operator.STARTS_WITH: str.startswith,
    Operator.GREATER_THAN: _op.gt,
    Operator.LESS_THAN: _op.lt,
}


def _check_operand(spec: AttributeSpec, operator: Operator, value: Any) -> None:
    if operator is Operator.STARTS_WITH and spec.type is not str:
        raise TypeMismatch(spec.name, "str (starts_with needs a text attribute)", value)
    if operator in (Operator.GREATER_THAN, Operator.LESS_THAN) and not spec.orderable:
        raise TypeMismatch(spec.name, f"an orderable type for {operator.value}", value)
    # Null tests would be their own operator; a None literal is never a comparison.
    spec.check(value, allow_none=False)


def _value_of(record: Any, attribute: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(attribute)
    return getattr(record, attribute, None)


class Predicate:
    """Base class for predicate nodes. Supports ``&``, ``|`` and ``~``."""

    __slots__ = ()

    def evaluate(self, record: Any) -> bool:
        raise NotImplementedError

    def translate(self, visitor: PredicateVisitor[Any]) -> Any:
        raise NotImplementedError

    def attributes(self) -> frozenset[str]:
        """Names of every attribute referenced anywhere in the tree."""
        raise NotImplementedError

    def __and__(self, other: Predicate) -> Predicate:
        return and_(self, other)

    def __or__(self, other: Predicate) -> Predicate:
        return or_(self, other)

    def __invert__(self) -> Predicate:
        return not_(self)

    def __str__(self) -> str:
        return self.translate(_Renderer())


@dataclass(frozen=True, slots=True)
class Leaf(Predicate):
    """``attribute <operator> value`` over one record attribute."""

    attribute: str
    operator: Operator
    value: Any
    schema: Schema[Any] = field(compare=False, repr=False)

    def __post_init__(self) -> None:
        spec = self.schema.attribute(self.attribute)
        _check_operand(spec, self.operator, self.value)

    def evaluate(self, record: Any) -> bool:
        actual = _value_of(record, self.attribute)
        if actual is None:
            return False
        return bool(_TESTS[self.operator](actual, self.value))

    def translate(self, visitor: PredicateVisitor[Any]) -> Any:
        return visitor.visit_leaf(self.attribute, self.operator, self.value)

    def attributes(self) -> frozenset[str]:
        return frozenset((self.attribute,))


@dataclass(frozen=True, slots=True)
class And(Predicate):
    left: Predicate
    right: Predicate

    def evaluate(self, record: Any) -> bool:
        return self.left.evaluate(record) and self.right.evaluate(record)

    def translate(self, visitor: PredicateVisitor[Any]) -> Any:
        left = self.left.translate(visitor)
        right = self.right.translate(visitor)
        return visitor.visit_and(left, right)

    def attributes(self) -> frozenset[str]:
        return self.left.attributes() | self.right.attributes()


@dataclass(frozen=True, slots=True)
class Or(Predicate):
    left: Predicate
    right: Predicate

    def evaluate(self, record: Any) -> bool:
        return self.left.evaluate(record) or self.right.evaluate(record)

    def translate(self, visitor: PredicateVisitor[Any]) -> Any:
        left = self.left.translate(visitor)
        right = self.right.translate(visitor)
        return visitor.visit_or(left, right)

    def attributes(self) -> frozenset[str]:
        return self.left.attributes() | self.right.attributes()


@dataclass(frozen=True, slots=True)
class Not(Predicate):
    operand: Predicate

    def evaluate(self, record: Any) -> bool:
        return not self.operand.evaluate(record)

    def translate(self, visitor: PredicateVisitor[Any]) -> Any:
        return visitor.visit_not(self.operand.translate(visitor))

    def attributes(self) -> frozenset[str]:
        return self.operand.attributes()


# =============================================================================
# BUILDERS
# =============================================================================


def leaf(schema: Schema[Any], attribute: str, operator: Operator | str, value: Any) -> Leaf:
    """Build a validated leaf condition.

    Raises:
        InvalidAttribute: *attribute* is not a field of *schema*.
        TypeMismatch: *value* does not fit the attribute's declared type,
            or *operator* does not apply to it.
    """
    try:
        op = Operator(operator)
    except ValueError:
        raise ValidationError(
            f"Unknown operator {operator!r}", field=attribute, constraint="operator"
        ) from None
    return Leaf(attribute, op, value, schema)


def require_predicate(*nodes: Any) -> None:
    """Raise :class:`ValidationError` unless every node is a built predicate."""
    for node in nodes:
        if not isinstance(node, Predicate):
            raise ValidationError(
                f"Expected a Predicate, got {type(node).__name__}; "
                "build conditions with leaf() or Schema.attr()",
                value=node,
                constraint="predicate",
            )


def and_(left: Predicate, right: Predicate) -> And:
    require_predicate(left, right)
    return And(left, right)


def or_(left: Predicate, right: Predicate) -> Or:
    require_predicate(left, right)
    return Or(left, right)


def not_(operand: Predicate) -> Not:
    require_predicate(operand)
    return Not(operand)


def all_of(first: Predicate, *rest: Predicate) -> Predicate:
    """Left fold of :func:`and_`; ``all_of(a, b, c) == and_(and_(a, b), c)``."""
    return reduce(and_, rest, first)


def any_of(first: Predicate, *rest: Predicate) -> Predicate:
    """Left fold of :func:`or_`."""
    return reduce(or_, rest, first)


class Attribute:
    """Fluent leaf builder bound to one schema attribute.

    >>> users.attr("age").gt(30)
    """

    __slots__ = ("schema", "name")

    def __init__(self, schema: Schema[Any], name: str) -> None:
        schema.attribute(name)
        self.schema = schema
        self.name = name

    def eq(self, value: Any) -> Leaf:
        return leaf(self.schema, self.name, Operator.EQUALS, value)

    def ne(self, value: Any) -> Leaf:
        return leaf(self.schema, self.name, Operator.NOT_EQUALS, value)

    def starts_with(self, prefix: str) -> Leaf:
        return leaf(self.schema, self.name, Operator.STARTS_WITH, prefix)

    def gt(self, value: Any) -> Leaf:
        return leaf(self.schema, self.name, Operator.GREATER_THAN, value)

    def lt(self, value: Any) -> Leaf:
        return leaf(self.schema, self.name, Operator.LESS_THAN, value)

    def __repr__(self) -> str:
        return f"Attribute({self.schema.name}.{self.name})"


class _Renderer:
    """Visitor producing the human-readable form used in log lines."""

    def visit_leaf(self, attribute: str, operator: Operator, value: Any) -> str:
        return f"{attribute} {operator.symbol} {value!r}"

    def visit_and(self, left: str, right: str) -> str:
        return f"({left} AND {right})"

    def visit_or(self, left: str, right: str) -> str:
        return f"({left} OR {right})"

    def visit_not(self, operand: str) -> str:
        return f"NOT {operand}"


__all__ = [
    "Operator",
    "Predicate",
    "Leaf",
    "And",
    "Or",
    "Not",
    "Attribute",
    "leaf",
    "and_",
    "or_",
    "not_",
    "all_of",
    "any_of",
    "require_predicate",
]
