from __future__ import annotations

import pytest
from pydantic import ValidationError

from cachecheck.domain.operations import And, Delete, Eq, In, Insert, Or, write_operation_adapter
from cachecheck.workloads.votes import STORIES, VOTES


def test_insert_renders_parameterized_statement():
    op = Insert(table="votes", columns=("story_id", "user_id"), rows=((1, 10), (2, 20)))

    statement, params = op.to_sql()

    assert statement.as_string() == (
        'INSERT INTO "votes" ("story_id", "user_id") VALUES (%s, %s), (%s, %s)'
    )
    assert params == [1, 10, 2, 20]


def test_single_row_vote_delete_renders_conjunction():
    op = Delete(
        table="votes",
        predicate=And(parts=(Eq(column="story_id", value=1), Eq(column="user_id", value=1))),
    )

    statement, params = op.to_sql()

    assert statement.as_string() == (
        'DELETE FROM "votes" WHERE ("story_id" = %s AND "user_id" = %s)'
    )
    assert params == [1, 1]


def test_membership_delete_renders_in_list():
    op = Delete(table="stories", predicate=In(column="id", values=(3, 4, 5)))

    statement, params = op.to_sql()

    assert statement.as_string() == 'DELETE FROM "stories" WHERE "id" IN (%s, %s, %s)'
    assert params == [3, 4, 5]


def test_disjunction_of_rows():
    predicate = Or(
        parts=(
            And(parts=(Eq(column="a", value=1), Eq(column="b", value=2))),
            And(parts=(Eq(column="a", value=3), Eq(column="b", value=4))),
        )
    )

    where, params = predicate.to_sql()

    assert where.as_string() == '(("a" = %s AND "b" = %s) OR ("a" = %s AND "b" = %s))'
    assert params == [1, 2, 3, 4]
    assert predicate.matches({"a": 3, "b": 4})
    assert not predicate.matches({"a": 1, "b": 4})


def test_insert_rejects_ragged_rows():
    with pytest.raises(ValidationError):
        Insert(table="votes", columns=("story_id", "user_id"), rows=((1,),))


def test_empty_membership_rejected():
    with pytest.raises(ValidationError):
        In(column="id", values=())


def test_operations_are_immutable():
    op = Insert(table="stories", columns=("id", "title"), rows=((1, "a"),))

    with pytest.raises(ValidationError):
        op.table = "votes"


def test_operations_round_trip_through_json():
    op = Delete(
        table="votes",
        predicate=And(parts=(Eq(column="story_id", value=1), Eq(column="user_id", value=9))),
    )

    restored = write_operation_adapter.validate_json(op.model_dump_json())

    assert restored == op


def test_create_table_ddl():
    assert STORIES.create_table().as_string() == (
        'CREATE TABLE "stories" ("id" integer, "title" text, PRIMARY KEY ("id"))'
    )
    assert VOTES.create_table().as_string() == (
        'CREATE TABLE "votes" ("story_id" integer REFERENCES "stories" ("id") ON DELETE CASCADE, '
        '"user_id" integer)'
    )
