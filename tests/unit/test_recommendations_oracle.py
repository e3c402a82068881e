from __future__ import annotations

import random

import pytest

from cachecheck.domain.mirror import apply_write, empty_snapshot
from cachecheck.errors import MirrorIntegrityError, SnapshotInconsistencyError
from cachecheck.workloads.recommendations import RECOMMENDATIONS_WORKLOAD

RANDOM_SNAPSHOTS = 20
WRITES_PER_SNAPSHOT = 40
SMALL_ID_DOMAIN = 15

FIXTURE_SNAPSHOT = {
    "articles": [
        {"id": 1, "title": "a"},
        {"id": 2, "title": "b"},
        {"id": 3, "title": "c"},
        {"id": 4, "title": "d"},
        {"id": 5, "title": "e"},
    ],
    "recommendations": [
        {"article_id": 1, "user_id": 1, "score": 1},
        {"article_id": 1, "user_id": 2, "score": 2},
        {"article_id": 2, "user_id": 1, "score": 1},
        {"article_id": 3, "user_id": 1, "score": 2},
        {"article_id": 4, "user_id": 2, "score": 1},
        {"article_id": 5, "user_id": 1, "score": 2},
        {"article_id": 5, "user_id": 2, "score": 3},
    ],
}


def test_range_join_keeps_duplicates():
    result = RECOMMENDATIONS_WORKLOAD.expected("recommended_articles", FIXTURE_SNAPSHOT, (1, 2))

    assert [(r["id"], r["title"]) for r in result] == [
        (1, "a"),
        (1, "a"),
        (2, "b"),
        (3, "c"),
        (4, "d"),
        (5, "e"),
    ]


def test_default_params_are_used():
    query = RECOMMENDATIONS_WORKLOAD.query("recommended_articles")

    assert query.default_params == (1, 2)
    assert RECOMMENDATIONS_WORKLOAD.expected(
        "recommended_articles", FIXTURE_SNAPSHOT
    ) == RECOMMENDATIONS_WORKLOAD.expected("recommended_articles", FIXTURE_SNAPSHOT, (1, 2))


def test_wrong_parameter_count_rejected():
    with pytest.raises(ValueError, match="takes 2 parameters"):
        RECOMMENDATIONS_WORKLOAD.expected("recommended_articles", FIXTURE_SNAPSHOT, (1,))


def test_empty_range():
    assert RECOMMENDATIONS_WORKLOAD.expected("recommended_articles", FIXTURE_SNAPSHOT, (4, 5)) == []


def test_dangling_recommendation_detected():
    snapshot = {
        "articles": [{"id": 1, "title": "a"}],
        "recommendations": [{"article_id": 2, "user_id": 1, "score": 1}],
    }

    with pytest.raises(SnapshotInconsistencyError):
        RECOMMENDATIONS_WORKLOAD.expected("recommended_articles", snapshot)


def test_unordered_comparison_ignores_order():
    query = RECOMMENDATIONS_WORKLOAD.query("recommended_articles")
    expected = [{"id": 1, "title": "a"}, {"id": 2, "title": "b"}]

    assert query.matches(expected, list(reversed(expected)))
    assert not query.matches(expected, expected[:1])
    assert not query.matches(expected, expected + expected[:1])


@pytest.mark.parametrize("seed", range(RANDOM_SNAPSHOTS))
def test_oracle_agrees_with_sql(seed, sqlite_loader, sqlite_runner):
    rng = random.Random(seed)
    generator = RECOMMENDATIONS_WORKLOAD.generator(rng=rng, id_domain_size=SMALL_ID_DOMAIN)
    snapshot = empty_snapshot(RECOMMENDATIONS_WORKLOAD.tables)
    for _ in range(WRITES_PER_SNAPSHOT):
        try:
            snapshot = apply_write(
                RECOMMENDATIONS_WORKLOAD.tables, snapshot, generator.generate(snapshot)
            )
        except MirrorIntegrityError:
            continue
    low = rng.randint(1, 5)
    params = (low, rng.randint(low, 5))
    query = RECOMMENDATIONS_WORKLOAD.query("recommended_articles")

    conn = sqlite_loader(RECOMMENDATIONS_WORKLOAD, snapshot)
    try:
        actual = sqlite_runner(conn, query, params)
    finally:
        conn.close()

    expected = RECOMMENDATIONS_WORKLOAD.expected("recommended_articles", snapshot, params)
    assert query.matches(expected, actual), (params, expected, actual)
