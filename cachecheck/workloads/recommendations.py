"""
Recommendations workload: articles recommended to users with a score.

The query is a parameterized range join: every article with a recommendation
scored within `[low, high]`, once per matching recommendation. It has no
ORDER BY, so results compare as multisets.
"""

from __future__ import annotations

from typing import Any, List, Tuple

from cachecheck.domain.schema import Column, ColumnType, ForeignKey, Snapshot, TableSchema, rows_of
from cachecheck.errors import SnapshotInconsistencyError
from cachecheck.workloads.abstract import QueryDefinition, ResultRow, Workload, WritePolicy

ARTICLES = TableSchema(
    name="articles",
    columns=(
        Column(name="id", type=ColumnType.INTEGER),
        Column(name="title", type=ColumnType.TEXT, text_prefix="article"),
    ),
    primary_key=("id",),
)

RECOMMENDATIONS = TableSchema(
    name="recommendations",
    columns=(
        Column(
            name="article_id",
            type=ColumnType.INTEGER,
            references=ForeignKey(table="articles", column="id", on_delete_cascade=True),
        ),
        Column(name="user_id", type=ColumnType.INTEGER),
        Column(name="score", type=ColumnType.INTEGER, value_range=(1, 5)),
    ),
)

RECOMMENDED_ARTICLES_SQL = """\
SELECT articles.id, articles.title
FROM articles
JOIN recommendations ON articles.id = recommendations.article_id
WHERE recommendations.score >= %s AND recommendations.score <= %s"""


def recommended_articles(snapshot: Snapshot, params: Tuple[Any, ...]) -> List[ResultRow]:
    low, high = params
    articles = {row["id"]: row for row in rows_of(snapshot, "articles")}
    result: List[ResultRow] = []
    for rec in rows_of(snapshot, "recommendations"):
        if not low <= rec["score"] <= high:
            continue
        article = articles.get(rec["article_id"])
        if article is None:
            raise SnapshotInconsistencyError(
                f"recommendation for missing article {rec['article_id']!r}"
            )
        result.append({"id": article["id"], "title": article["title"]})
    result.sort(key=lambda row: (row["id"], row["title"]))
    return result


RECOMMENDATIONS_WORKLOAD = Workload(
    name="recommendations",
    description="Articles joined to recommendations within a score range.",
    tables=(ARTICLES, RECOMMENDATIONS),
    queries={
        "recommended_articles": QueryDefinition(
            query_id="recommended_articles",
            sql=RECOMMENDED_ARTICLES_SQL,
            columns=("id", "title"),
            oracle=recommended_articles,
            ordered=False,
            default_params=(1, 2),
        ),
    },
    policies={
        "articles": WritePolicy(max_delete_rows=3),
        "recommendations": WritePolicy(max_delete_rows=3),
    },
)

__all__ = [
    "ARTICLES",
    "RECOMMENDATIONS",
    "RECOMMENDED_ARTICLES_SQL",
    "recommended_articles",
    "RECOMMENDATIONS_WORKLOAD",
]
