"""Unit tests for builder argument validation and state handling."""

from __future__ import annotations

import pytest

from rowforge.errors import (
    InvalidOperatorError,
    InvalidRangeError,
    SchemaError,
    ValidationError,
)
from rowforge.query import Query


def _q() -> Query:
    return Query("users")


@pytest.mark.parametrize("bounds", [[1], [1, 2, 3], "ab", 5])
def test_between_needs_exactly_two_bounds(bounds):
    with pytest.raises(InvalidRangeError) as exc_info:
        _q().where_between("age", bounds)
    assert exc_info.value.code == "INVALID_RANGE"
    assert exc_info.value.details["field"] == "age"


def test_not_between_is_validated_too():
    with pytest.raises(InvalidRangeError):
        _q().where_not_between("age", [])


def test_in_rejects_empty_list():
    with pytest.raises(ValidationError) as exc_info:
        _q().where_in("id", [])
    assert exc_info.value.code == "EMPTY_VALUES"


def test_in_rejects_a_plain_string():
    with pytest.raises(ValidationError):
        _q().where_not_in("id", "123")


def test_unknown_operator():
    with pytest.raises(InvalidOperatorError) as exc_info:
        _q().where("age", "~~", 3)
    err = exc_info.value
    assert err.code == "INVALID_OPERATOR"
    assert "LIKE" in err.details["allowed_operators"]


def test_where_without_value():
    with pytest.raises(ValidationError):
        _q().where("age")


def test_where_none_is_a_value():
    r = _q().where("team_id", None).to_select()
    assert r.params == [None]


@pytest.mark.parametrize("args", [
    ("outer", "teams", "users.team_id", "teams.id"),
    ("left", "teams", "users.team_id"),
    ("inner", "teams"),
])
def test_invalid_joins(args):
    with pytest.raises(ValidationError) as exc_info:
        _q().join(*args)
    assert exc_info.value.code == "INVALID_JOIN"


def test_join_operator_is_validated():
    with pytest.raises(InvalidOperatorError):
        _q().join("inner", "teams", "users.team_id", "~", "teams.id")


def test_invalid_order_direction():
    with pytest.raises(ValidationError) as exc_info:
        _q().order_by("name", "upwards")
    assert exc_info.value.code == "INVALID_ORDER"


@pytest.mark.parametrize("args", [(-1,), (1.5,), (True,), (5, -2), ("10",)])
def test_invalid_limits(args):
    with pytest.raises(ValidationError) as exc_info:
        _q().limit(*args)
    assert exc_info.value.code == "INVALID_LIMIT"


def test_validation_happens_before_rendering():
    q = _q().where("age", ">", 18)
    with pytest.raises(InvalidRangeError):
        q.where_between("age", [1])
    # the failed call left no trace
    assert q.to_select().params == [18]


def test_error_response_shape():
    with pytest.raises(ValidationError) as exc_info:
        _q().where_in("id", [])
    response = exc_info.value.to_error_response()
    assert response["error"] == "EMPTY_VALUES"
    assert response["details"] == {"field": "id"}
    assert "IN on 'id'" in response["message"]


def test_mutators_return_the_same_builder():
    q = _q()
    assert q.select("id") is q
    assert q.where("id", 1) is q
    assert q.order_by("id") is q
    assert q.limit(1) is q
    assert q.reset() is q


def test_reset_clears_where_and_limit_only():
    q = _q().select("id").where("id", 1).order_by("id").limit(3).reset()
    r = q.to_select()
    assert r.sql == 'SELECT "id"\nFROM "users"\nORDER BY "id"'
    assert r.params == []


def test_rendering_is_repeatable():
    q = _q().where("age", ">", 18).where_in("id", [1, 2])
    first, second = q.to_select(), q.to_select()
    assert first.sql == second.sql
    assert first.params == second.params == [18, 1, 2]


def test_unknown_fields_are_not_rejected():
    r = _q().where("no_such_column", 1).to_select()
    assert '"no_such_column" = ?' in r.sql


@pytest.mark.asyncio
async def test_execution_requires_a_database():
    with pytest.raises(SchemaError):
        await _q().all()


@pytest.mark.asyncio
@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (-1, 5)])
async def test_paginate_validates_arguments(fake_db, page, limit):
    with pytest.raises(ValidationError) as exc_info:
        await fake_db.table("users").paginate(page, limit)
    assert exc_info.value.code == "INVALID_PAGE"
