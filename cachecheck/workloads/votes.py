"""
Votes workload: stories and the votes cast on them.

The single query counts votes per story through a left join against a grouped
subquery, so stories nobody voted for still appear with a NULL count.

Deletes are deliberately asymmetric: stories go in batches of up to five,
votes exactly one at a time.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, List, Tuple

from cachecheck.domain.schema import Column, ColumnType, ForeignKey, Snapshot, TableSchema, rows_of
from cachecheck.workloads.abstract import QueryDefinition, ResultRow, Workload, WritePolicy

STORIES = TableSchema(
    name="stories",
    columns=(
        Column(name="id", type=ColumnType.INTEGER),
        Column(name="title", type=ColumnType.TEXT, text_prefix="story"),
    ),
    primary_key=("id",),
)

VOTES = TableSchema(
    name="votes",
    columns=(
        Column(
            name="story_id",
            type=ColumnType.INTEGER,
            references=ForeignKey(table="stories", column="id", on_delete_cascade=True),
        ),
        Column(name="user_id", type=ColumnType.INTEGER),
    ),
)

VOTE_COUNT_SQL = """\
SELECT stories.id, stories.title, vote_count.vcount
FROM stories
LEFT JOIN (
    SELECT votes.story_id, count(*) AS vcount
    FROM votes
    GROUP BY votes.story_id
) AS vote_count ON stories.id = vote_count.story_id
ORDER BY stories.id"""


def vote_counts(snapshot: Snapshot, params: Tuple[Any, ...] = ()) -> List[ResultRow]:
    counts = Counter(row["story_id"] for row in rows_of(snapshot, "votes"))
    stories = sorted(rows_of(snapshot, "stories"), key=lambda row: row["id"])
    return [
        {"id": story["id"], "title": story["title"], "vcount": counts.get(story["id"])}
        for story in stories
    ]


VOTES_WORKLOAD = Workload(
    name="votes",
    description="Stories with a per-story vote count (left join over an aggregate).",
    tables=(STORIES, VOTES),
    queries={
        "votes": QueryDefinition(
            query_id="votes",
            sql=VOTE_COUNT_SQL,
            columns=("id", "title", "vcount"),
            oracle=vote_counts,
            ordered=True,
            description="Every story with its vote count, NULL when it has none.",
        ),
    },
    policies={
        "stories": WritePolicy(max_delete_rows=5),
        "votes": WritePolicy(max_delete_rows=1),
    },
)

__all__ = ["STORIES", "VOTES", "VOTE_COUNT_SQL", "vote_counts", "VOTES_WORKLOAD"]
