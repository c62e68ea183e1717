import numpy as np
import pytest

from services.faq_engine.clusterer import CentroidClusterer, ClusteringOutcome
from services.faq_engine.validator import validate_clusters


def _outcome(assignments, k, dim=2):
    return ClusteringOutcome(
        assignments=np.array(assignments, dtype=int),
        centroids=np.arange(k * dim, dtype=float).reshape(k, dim),
        iterations=1,
        converged=True,
    )


def test_undersized_clusters_become_unclustered():
    ids = ["a", "b", "c", "d", "e"]
    outcome = _outcome([0, 0, 0, 1, 1], k=2)

    result = validate_clusters(outcome, ids, min_cluster_size=3)

    assert [g.member_ids for g in result.groups] == [["a", "b", "c"]]
    assert result.groups[0].cluster_id == "cluster-0"
    assert result.groups[0].centroid == [0.0, 1.0]
    assert result.unclustered_ids == ["d", "e"]


def test_unassigned_rows_are_unclustered():
    ids = ["a", "b", "c"]
    outcome = ClusteringOutcome(
        assignments=np.full(3, -1, dtype=int),
        centroids=np.zeros((0, 2)),
        iterations=0,
        converged=True,
    )

    result = validate_clusters(outcome, ids, min_cluster_size=2)

    assert result.groups == []
    assert result.unclustered_ids == ids
    assert result.clustered_count == 0


def test_length_mismatch_is_rejected():
    with pytest.raises(ValueError):
        validate_clusters(_outcome([0, 0], k=1), ["a"], min_cluster_size=1)


def test_ten_tickets_min_three_max_two():
    vectors = np.random.default_rng(3).random((10, 5))
    ids = [f"t-{i}" for i in range(10)]

    outcome = CentroidClusterer().cluster(vectors, min_cluster_size=3, max_clusters=2, rng=np.random.default_rng(0))
    result = validate_clusters(outcome, ids, min_cluster_size=3)

    assert outcome.k == 2
    assert len(result.groups) <= 2
    assert all(len(g.member_ids) >= 3 for g in result.groups)
    assert result.clustered_count + len(result.unclustered_ids) == 10
    clustered = [tid for g in result.groups for tid in g.member_ids]
    assert not set(clustered) & set(result.unclustered_ids)
