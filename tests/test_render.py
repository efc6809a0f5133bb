"""Unit tests for statement rendering across the three dialects."""

from __future__ import annotations

import re

import pytest

from rowforge.dialect import MySQLDialect, PostgresDialect, SQLiteDialect
from rowforge.errors import CompilationError
from rowforge.query import Query


def _sq(table: str | None = "users", **kwargs) -> Query:
    return Query(table, dialect=SQLiteDialect(), **kwargs)


def _pg(table: str | None = "users", **kwargs) -> Query:
    return Query(table, dialect=PostgresDialect(), **kwargs)


def _my(table: str | None = "users", **kwargs) -> Query:
    return Query(table, dialect=MySQLDialect(), **kwargs)


# ---------------------------------------------------------------------------
# SELECT
# ---------------------------------------------------------------------------


def test_select_star_by_default():
    r = _sq().to_select()
    assert r.sql == 'SELECT *\nFROM "users"'
    assert r.params == []
    assert r.dialect == "sqlite"


def test_select_fields_and_where():
    r = _sq().select("id", "name").where("age", ">", 18).to_select()
    assert r.sql == 'SELECT "id", "name"\nFROM "users"\nWHERE "age" > ?'
    assert r.params == [18]


def test_select_accepts_a_list_and_raw_expressions():
    r = _sq().select(["users.id", "COUNT(*) AS total"]).to_select()
    assert r.sql.startswith('SELECT "users"."id", COUNT(*) AS total')


def test_distinct():
    r = _sq().select("team_id").distinct().to_select()
    assert r.sql.startswith('SELECT DISTINCT "team_id"')


def test_two_arg_where_means_equals():
    r = _sq().where("name", "Ada").to_select()
    assert 'WHERE "name" = ?' in r.sql
    assert r.params == ["Ada"]


def test_operator_is_case_insensitive_and_upper_cased():
    r = _sq().where("name", "not like", "a%").to_select()
    assert '"name" NOT LIKE ?' in r.sql


def test_mapping_where_is_and_combined():
    r = _sq().where({"name": "Ada", "age": 36}).to_select()
    assert 'WHERE ("name" = ? AND "age" = ?)' in r.sql
    assert r.params == ["Ada", 36]


def test_single_pair_mapping_is_not_grouped():
    r = _sq().where({"name": "Ada"}).to_select()
    assert 'WHERE "name" = ?' in r.sql


def test_or_where_and_nested_group():
    r = (
        _sq()
        .where("age", ">", 18)
        .or_where(lambda q: q.where("name", "Ada").where_not_null("email"))
        .to_select()
    )
    assert 'WHERE "age" > ? OR ("name" = ? AND "email" IS NOT NULL)' in r.sql
    assert r.params == [18, "Ada"]


def test_empty_nested_group_is_skipped():
    r = _sq().where("age", 1).where(lambda q: None).to_select()
    assert r.sql.endswith('WHERE "age" = ?')


def test_between_and_not_between():
    r = _sq().where_between("age", (18, 30)).or_where_not_between("age", [40, 50]).to_select()
    assert 'WHERE "age" BETWEEN ? AND ? OR "age" NOT BETWEEN ? AND ?' in r.sql
    assert r.params == [18, 30, 40, 50]


def test_in_list_and_not_in():
    r = _sq().where_in("id", [1, 2, 3]).where_not_in("team_id", {7}).to_select()
    assert '"id" IN (?, ?, ?) AND "team_id" NOT IN (?)' in r.sql
    assert r.params == [1, 2, 3, 7]


def test_in_subquery_splices_parameters():
    r = (
        _sq()
        .where("age", ">", 18)
        .where_in("team_id", lambda q: q.select("id").from_("teams").where("name", "core"))
        .where("name", "Ada")
        .to_select()
    )
    assert '"team_id" IN (SELECT "id"\nFROM "teams"\nWHERE "name" = ?)' in r.sql
    assert r.params == [18, "core", "Ada"]


def test_null_checks():
    r = _sq().where_null("team_id").or_where_null("email").to_select()
    assert 'WHERE "team_id" IS NULL OR "email" IS NULL' in r.sql


def test_correlated_exists():
    r = (
        _sq()
        .where_exists(
            lambda q: q.select("id").from_("posts").where_column("posts.user_id", "users.id")
        )
        .to_select()
    )
    assert (
        'WHERE EXISTS (SELECT "id"\nFROM "posts"\nWHERE "posts"."user_id" = "users"."id")'
        in r.sql
    )
    assert r.params == []


def test_not_exists():
    r = _sq().where_not_exists(lambda q: q.from_("posts").where("title", "x")).to_select()
    assert 'WHERE NOT EXISTS (SELECT *\nFROM "posts"\nWHERE "title" = ?)' in r.sql


def test_multiple_sources_and_aliases():
    r = _sq(alias="u").from_("teams", "t").to_select()
    assert 'FROM "users" AS "u", "teams" AS "t"' in r.sql


# ---------------------------------------------------------------------------
# JOIN / ORDER / GROUP / LIMIT
# ---------------------------------------------------------------------------


def test_three_arg_join_means_equals():
    r = _sq().left_join("teams", "users.team_id", "teams.id").to_select()
    assert 'LEFT JOIN "teams" ON "users"."team_id" = "teams"."id"' in r.sql


def test_join_with_explicit_operator():
    r = _sq().join("inner", "teams", "users.team_id", "<>", "teams.id").to_select()
    assert 'INNER JOIN "teams" ON "users"."team_id" <> "teams"."id"' in r.sql


def test_cross_join_without_on():
    r = _sq().cross_join("teams").to_select()
    assert 'CROSS JOIN "teams"' in r.sql
    assert " ON " not in r.sql


@pytest.mark.parametrize("kind,keyword", [
    ("inner", "INNER"), ("left", "LEFT"), ("right", "RIGHT"), ("FULL", "FULL"),
])
def test_join_kinds(kind, keyword):
    r = _sq().join(kind, "teams", "users.team_id", "teams.id").to_select()
    assert f'{keyword} JOIN "teams"' in r.sql


def test_order_by_with_and_without_direction():
    r = _sq().order_by("name", "desc").order_by("id").to_select()
    assert r.sql.endswith('ORDER BY "name" DESC, "id"')


def test_random_clears_order_by():
    r = _sq().order_by("name").random().to_select()
    assert r.sql.endswith("ORDER BY RANDOM()")
    assert '"name"' not in r.sql


def test_order_by_clears_random():
    r = _sq().random().order_by("name", "asc").to_select()
    assert r.sql.endswith('ORDER BY "name" ASC')


def test_group_by_and_having_with_bindings():
    r = (
        _sq()
        .select("team_id", "COUNT(*) AS members")
        .where("age", ">", 18)
        .group_by("team_id")
        .having("COUNT(*) > ?", 2)
        .to_select()
    )
    assert 'GROUP BY "team_id"\nHAVING COUNT(*) > ?' in r.sql
    assert r.params == [18, 2]


def test_having_marker_mismatch():
    with pytest.raises(CompilationError):
        _sq().group_by("team_id").having("COUNT(*) > ?").to_select()


def test_limit_take_n():
    assert _sq().limit(5).to_select().sql.endswith("LIMIT 5")


def test_limit_with_offset():
    assert _sq().limit(20, 10).to_select().sql.endswith("LIMIT 10 OFFSET 20")


def test_full_clause_order():
    r = (
        _sq()
        .select("users.name")
        .left_join("teams", "users.team_id", "teams.id")
        .where("users.age", ">=", 18)
        .group_by("users.name")
        .having("COUNT(*) > ?", 0)
        .order_by("users.name")
        .limit(10)
        .to_select()
    )
    lines = [line.split(" ")[0] for line in r.sql.split("\n")]
    assert lines == ["SELECT", "FROM", "LEFT", "WHERE", "GROUP", "HAVING", "ORDER", "LIMIT"]


# ---------------------------------------------------------------------------
# Dialects
# ---------------------------------------------------------------------------


def test_postgres_numbers_placeholders():
    r = _pg().where("age", ">", 18).where_in("id", [1, 2]).to_select()
    assert 'WHERE "age" > $1 AND "id" IN ($2, $3)' in r.sql


def test_mysql_quoting_placeholders_and_random():
    r = _my().where("name", "Ada").random().limit(5).to_select()
    assert r.sql == "SELECT *\nFROM `users`\nWHERE `name` = %s\nORDER BY RAND()\nLIMIT 5"


def test_placeholders_match_parameters_for_nested_groups():
    r = (
        _pg()
        .left_join("teams", "users.team_id", "teams.id")
        .where("age", ">", 18)
        .or_where(lambda q: q.where("name", "like", "a%").where_in("id", [1, 2, 3]))
        .where_between("age", (20, 30))
        .where(lambda q: q.where_null("email").or_where(
            lambda inner: inner.where("name", "Bo").or_where("name", "Cy")
        ))
        .where_in("team_id", lambda q: q.select("id").from_("teams").where("name", "core"))
        .group_by("team_id")
        .having("COUNT(*) > ? AND MAX(age) < ?", 1, 99)
        .to_select()
    )
    positions = re.findall(r"\$(\d+)", r.sql)
    assert positions == [str(i) for i in range(1, len(r.params) + 1)]
    assert r.params == [18, "a%", 1, 2, 3, 20, 30, "Bo", "Cy", "core", 1, 99]


def test_sqlite_placeholder_count_matches_parameters():
    r = (
        _sq()
        .where(lambda q: q.where("a", 1).or_where(lambda q2: q2.where("b", 2).where("c", 3)))
        .where_in("d", lambda q: q.from_("t").where_in("e", [4, 5]))
        .group_by("a")
        .having("SUM(a) > ?", 6)
        .to_select()
    )
    assert r.sql.count("?") == len(r.params) == 6
    assert r.params == [1, 2, 3, 4, 5, 6]


# ---------------------------------------------------------------------------
# Aggregates and writes
# ---------------------------------------------------------------------------


def test_aggregate_keeps_where_and_drops_order_and_limit():
    r = _sq().where("age", ">", 18).order_by("name").limit(5).to_aggregate("max", "age")
    assert r.sql == 'SELECT MAX("age") AS "aggregate"\nFROM "users"\nWHERE "age" > ?'


def test_count_distinct():
    r = _sq().to_aggregate("count", "team_id", distinct=True)
    assert r.sql.startswith('SELECT COUNT(DISTINCT "team_id") AS "aggregate"')


def test_count_statement():
    assert _sq().to_count().sql == 'SELECT COUNT(*) AS "aggregate"\nFROM "users"'


def test_unknown_aggregate():
    with pytest.raises(CompilationError):
        _sq().to_aggregate("median", "age")


def test_insert_sqlite():
    r = _sq().to_insert({"name": "Ada", "age": 36}, returning="id")
    assert r.sql == 'INSERT INTO "users" ("name", "age") VALUES (?, ?)'
    assert r.params == ["Ada", 36]


def test_insert_postgres_returns_primary_key():
    r = _pg().to_insert({"name": "Ada", "age": 36}, returning="id")
    assert r.sql == 'INSERT INTO "users" ("name", "age") VALUES ($1, $2) RETURNING "id"'


def test_insert_needs_columns():
    with pytest.raises(CompilationError):
        _sq().to_insert({})


def test_update_binds_set_before_where():
    r = _pg().where("id", 5).to_update({"name": "Bo", "age": 40})
    assert r.sql == 'UPDATE "users" SET "name" = $1, "age" = $2\nWHERE "id" = $3'
    assert r.params == ["Bo", 40, 5]


def test_delete():
    r = _sq().where("id", 5).to_delete()
    assert r.sql == 'DELETE FROM "users"\nWHERE "id" = ?'
    assert r.params == [5]


def test_missing_table():
    with pytest.raises(CompilationError):
        Query().to_select()
    with pytest.raises(CompilationError):
        Query().to_delete()


def test_str_renders_select():
    assert str(_sq().where("id", 1)) == 'SELECT *\nFROM "users"\nWHERE "id" = ?'
