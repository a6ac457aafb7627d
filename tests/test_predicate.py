"""Tests for record_spine.predicate."""

from __future__ import annotations

import dataclasses
import datetime
from decimal import Decimal
from typing import Any

import pytest

from record_spine.errors import InvalidAttribute, TypeMismatch, ValidationError
from record_spine.predicate import (
    And,
    Leaf,
    Not,
    Operator,
    Or,
    all_of,
    and_,
    any_of,
    leaf,
    not_,
    or_,
)

from records import Product, User


class RecordingVisitor:
    """Logs every hook call in the order translate() makes them."""

    def __init__(self) -> None:
        self.events: list[str] = []

    def visit_leaf(self, attribute: str, operator: Operator, value: Any) -> str:
        text = f"{attribute} {operator.value} {value!r}"
        self.events.append(text)
        return text

    def visit_and(self, left: str, right: str) -> str:
        text = f"and({left}, {right})"
        self.events.append(text)
        return text

    def visit_or(self, left: str, right: str) -> str:
        text = f"or({left}, {right})"
        self.events.append(text)
        return text

    def visit_not(self, operand: str) -> str:
        text = f"not({operand})"
        self.events.append(text)
        return text


class TestLeafConstruction:
    def test_unknown_attribute(self, users):
        with pytest.raises(InvalidAttribute) as exc_info:
            leaf(users, "nickname", Operator.EQUALS, "jd")
        assert exc_info.value.field == "nickname"
        assert exc_info.value.context.record_type == "User"

    def test_operator_from_string(self, users):
        p = leaf(users, "email", "starts_with", "admin")
        assert p.operator is Operator.STARTS_WITH

    def test_unknown_operator(self, users):
        with pytest.raises(ValidationError):
            leaf(users, "email", "contains", "admin")

    def test_wrong_literal_type(self, users):
        with pytest.raises(TypeMismatch):
            leaf(users, "age", Operator.EQUALS, "30")

    def test_bool_is_not_an_int(self, users):
        with pytest.raises(TypeMismatch):
            leaf(users, "age", Operator.EQUALS, True)

    def test_none_literal_rejected(self, users):
        """Null tests are not comparisons."""
        with pytest.raises(TypeMismatch):
            leaf(users, "email", Operator.EQUALS, None)

    def test_starts_with_needs_text_attribute(self, users):
        with pytest.raises(TypeMismatch):
            leaf(users, "age", Operator.STARTS_WITH, 3)

    def test_ordering_on_bool_rejected(self, users):
        with pytest.raises(TypeMismatch):
            leaf(users, "active", Operator.GREATER_THAN, False)

    def test_int_widens_to_float_and_decimal(self, products):
        assert leaf(products, "price", Operator.LESS_THAN, 10).value == 10
        assert leaf(products, "cost", Operator.GREATER_THAN, 2).value == 2
        assert leaf(products, "cost", Operator.GREATER_THAN, Decimal("2.5")).value == Decimal("2.5")

    def test_datetime_not_accepted_for_date(self, products):
        with pytest.raises(TypeMismatch):
            leaf(products, "released", Operator.LESS_THAN, datetime.datetime(2024, 1, 1))

    def test_direct_leaf_construction_is_validated(self, users):
        with pytest.raises(TypeMismatch):
            Leaf("age", Operator.EQUALS, "old", users)

    def test_fluent_builder(self, users):
        assert users.attr("age").gt(30) == leaf(users, "age", Operator.GREATER_THAN, 30)
        assert users.attr("age").lt(30).operator is Operator.LESS_THAN
        assert users.attr("username").ne("x").operator is Operator.NOT_EQUALS

    def test_fluent_builder_unknown_attribute(self, users):
        with pytest.raises(InvalidAttribute):
            users.attr("nickname")


class TestComposition:
    def test_combinators_build_nodes(self, users):
        a = users.attr("username").eq("johndoe")
        b = users.attr("age").gt(30)
        assert and_(a, b) == And(a, b)
        assert or_(a, b) == Or(a, b)
        assert not_(a) == Not(a)

    def test_operator_overloads(self, users):
        a = users.attr("username").eq("johndoe")
        b = users.attr("age").gt(30)
        assert (a & b) == And(a, b)
        assert (a | b) == Or(a, b)
        assert ~a == Not(a)

    def test_nodes_are_immutable(self, users):
        p = users.attr("username").eq("johndoe")
        with pytest.raises(dataclasses.FrozenInstanceError):
            p.value = "other"  # type: ignore[misc]

    def test_structural_equality_and_hash(self, users):
        a = users.attr("email").starts_with("admin") & users.attr("age").lt(40)
        b = users.attr("email").starts_with("admin") & users.attr("age").lt(40)
        assert a == b
        assert hash(a) == hash(b)

    def test_callables_rejected(self, users):
        with pytest.raises(ValidationError):
            and_(users.attr("age").gt(1), lambda r: True)  # type: ignore[arg-type]

    def test_all_of_folds_left(self, users):
        a, b, c = (users.attr("age").gt(n) for n in (1, 2, 3))
        assert all_of(a, b, c) == And(And(a, b), c)
        assert any_of(a, b, c) == Or(Or(a, b), c)
        assert all_of(a) == a

    def test_attributes(self, users):
        p = users.attr("username").eq("x") | ~users.attr("email").starts_with("a")
        assert p.attributes() == {"username", "email"}


class TestEvaluate:
    def test_scenario_admin_excluded(self, users):
        p = and_(
            leaf(users, "username", Operator.EQUALS, "johndoe"),
            not_(leaf(users, "email", Operator.STARTS_WITH, "admin")),
        )
        assert p.evaluate(User(id=1, username="johndoe", email="user@x.com")) is True
        assert p.evaluate(User(id=2, username="johndoe", email="admin@x.com")) is False

    @pytest.mark.parametrize(
        "operator,value,expected",
        [
            (Operator.EQUALS, 30, True),
            (Operator.NOT_EQUALS, 30, False),
            (Operator.GREATER_THAN, 29, True),
            (Operator.GREATER_THAN, 30, False),
            (Operator.LESS_THAN, 31, True),
            (Operator.LESS_THAN, 30, False),
        ],
    )
    def test_comparisons(self, users, operator, value, expected):
        record = User(id=1, username="u", age=30)
        assert leaf(users, "age", operator, value).evaluate(record) is expected

    def test_starts_with_is_case_sensitive(self, users):
        p = users.attr("email").starts_with("admin")
        assert p.evaluate(User(id=1, username="u", email="Admin@x.com")) is False

    def test_null_attribute_is_false_for_every_operator(self, users):
        ghost = User(id=1, username="ghost", email=None)
        assert users.attr("email").eq("a").evaluate(ghost) is False
        assert users.attr("email").ne("a").evaluate(ghost) is False
        assert users.attr("email").starts_with("").evaluate(ghost) is False

    def test_not_inverts_null_comparison(self, users):
        ghost = User(id=1, username="ghost", email=None)
        assert (~users.attr("email").eq("a")).evaluate(ghost) is True

    def test_or(self, users):
        p = users.attr("username").eq("a") | users.attr("username").eq("b")
        assert p.evaluate(User(id=1, username="b")) is True
        assert p.evaluate(User(id=1, username="c")) is False

    def test_evaluates_mappings(self, users):
        p = users.attr("username").eq("johndoe")
        assert p.evaluate({"username": "johndoe"}) is True

    def test_dates(self, products):
        p = products.attr("released").lt(datetime.date(2024, 1, 1))
        assert p.evaluate(Product(sku="a", name="A", price=1.0, released=datetime.date(2023, 6, 1)))
        assert not p.evaluate(Product(sku="b", name="B", price=1.0, released=None))


class TestTranslate:
    def test_children_before_parent(self, users):
        p = and_(
            users.attr("username").eq("johndoe"),
            not_(users.attr("email").starts_with("admin")),
        )
        visitor = RecordingVisitor()
        p.translate(visitor)
        assert visitor.events == [
            "username equals 'johndoe'",
            "email starts_with 'admin'",
            "not(email starts_with 'admin')",
            "and(username equals 'johndoe', not(email starts_with 'admin'))",
        ]

    def test_left_operand_first(self, users):
        p = users.attr("age").gt(10) | users.attr("age").lt(5)
        visitor = RecordingVisitor()
        result = p.translate(visitor)
        assert visitor.events[:2] == ["age greater_than 10", "age less_than 5"]
        assert result == "or(age greater_than 10, age less_than 5)"

    def test_translate_does_not_evaluate(self, users):
        """A visitor only ever sees names, operators and literals."""
        p = users.attr("username").eq("x")
        assert p.translate(RecordingVisitor()) == "username equals 'x'"

    def test_str_rendering(self, users):
        p = users.attr("username").eq("johndoe") & ~users.attr("email").starts_with("admin")
        assert str(p) == "(username = 'johndoe' AND NOT email STARTS WITH 'admin')"
