from __future__ import annotations

import pytest

from cachecheck.domain.mirror import apply_write, check_references, dangling_references
from cachecheck.domain.operations import Delete, Eq, In, Insert
from cachecheck.errors import MirrorIntegrityError, SnapshotInconsistencyError
from cachecheck.workloads.votes import VOTES_WORKLOAD

TABLES = VOTES_WORKLOAD.tables


def test_insert_appends_rows(votes_snapshot):
    op = Insert(table="stories", columns=("id", "title"), rows=((3, "c"), (4, "d")))

    after = apply_write(TABLES, votes_snapshot, op)

    assert [s["id"] for s in after["stories"]] == [1, 2, 3, 4]
    assert len(votes_snapshot["stories"]) == 2


def test_duplicate_primary_key_rejects_whole_insert(votes_snapshot):
    op = Insert(table="stories", columns=("id", "title"), rows=((3, "c"), (1, "dup")))

    with pytest.raises(MirrorIntegrityError, match="stories"):
        apply_write(TABLES, votes_snapshot, op)


def test_duplicate_within_one_insert_rejected():
    op = Insert(table="stories", columns=("id", "title"), rows=((5, "x"), (5, "y")))

    with pytest.raises(MirrorIntegrityError):
        apply_write(TABLES, {}, op)


def test_votes_without_primary_key_allow_duplicates(votes_snapshot):
    op = Insert(table="votes", columns=("story_id", "user_id"), rows=((1, 1),))

    after = apply_write(TABLES, votes_snapshot, op)

    assert after["votes"].count({"story_id": 1, "user_id": 1}) == 2


def test_story_delete_cascades_to_votes(votes_snapshot):
    op = Delete(table="stories", predicate=Eq(column="id", value=1))

    after = apply_write(TABLES, votes_snapshot, op)

    assert after["stories"] == [{"id": 2, "title": "b"}]
    assert after["votes"] == []
    assert dangling_references(TABLES, after) == []


def test_batch_delete_uses_membership(votes_snapshot):
    op = Delete(table="stories", predicate=In(column="id", values=(1, 2)))

    after = apply_write(TABLES, votes_snapshot, op)

    assert after == {"stories": [], "votes": []}


def test_delete_matching_nothing_is_a_no_op(votes_snapshot):
    op = Delete(table="stories", predicate=Eq(column="id", value=99))

    assert apply_write(TABLES, votes_snapshot, op) == votes_snapshot


def test_unknown_table_rejected(votes_snapshot):
    op = Delete(table="comments", predicate=Eq(column="id", value=1))

    with pytest.raises(KeyError):
        apply_write(TABLES, votes_snapshot, op)


def test_check_references_reports_orphans():
    snapshot = {"stories": [], "votes": [{"story_id": 5, "user_id": 1}]}

    assert dangling_references(TABLES, snapshot) == ["votes.story_id=5 has no stories.id"]
    with pytest.raises(SnapshotInconsistencyError):
        check_references(TABLES, snapshot)
