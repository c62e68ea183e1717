"""
Ticket Clustering Service
Groups ticket embeddings with iterative centroid assignment over cosine dissimilarity
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog

from .config import Deadline

logger = structlog.get_logger()


@dataclass
class ClusteringOutcome:
    """Raw result of the centroid loop, before minimum-size validation"""
    assignments: np.ndarray  # cluster index per input row, -1 when k == 0
    centroids: np.ndarray  # shape (k, dim)
    iterations: int
    converged: bool

    @property
    def k(self) -> int:
        return int(self.centroids.shape[0])

    def members(self, cluster_index: int) -> list[int]:
        return [int(i) for i in np.flatnonzero(self.assignments == cluster_index)]


def cosine_dissimilarity(vectors: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    Pairwise 1 - cosine similarity between rows of `vectors` and `centroids`.

    This is a dissimilarity in [0, 2] (0 = same direction), not a metric
    distance: it ignores magnitude and does not satisfy the triangle
    inequality. Rows with zero magnitude have similarity 0, i.e. 1.0 to
    everything.

    Returns:
        Array of shape (len(vectors), len(centroids))
    """
    vector_norms = np.linalg.norm(vectors, axis=1)
    centroid_norms = np.linalg.norm(centroids, axis=1)
    denom = np.outer(vector_norms, centroid_norms)
    dots = vectors @ centroids.T
    similarity = np.divide(dots, denom, out=np.zeros_like(dots, dtype=float), where=denom > 0)
    return np.clip(1.0 - similarity, 0.0, 2.0)


def choose_k(n_vectors: int, min_cluster_size: int, max_clusters: int) -> int:
    """k = min(max_clusters, floor(n / min_cluster_size))"""
    if min_cluster_size < 1:
        return 0
    return max(0, min(max_clusters, n_vectors // min_cluster_size))


class CentroidClusterer:
    """K-means style clustering on cosine dissimilarity with a seedable start."""

    def __init__(self, max_iterations: int = 100):
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
        self.max_iterations = max_iterations

    def cluster(
        self,
        vectors: np.ndarray,
        min_cluster_size: int,
        max_clusters: int,
        rng: Optional[np.random.Generator] = None,
        deadline: Optional[Deadline] = None,
    ) -> ClusteringOutcome:
        """
        Cluster row vectors.

        Args:
            vectors: Matrix of shape (n, dim), one row per ticket
            min_cluster_size: Minimum size a cluster needs to survive validation
            max_clusters: Upper bound on k
            rng: Random source for centroid initialization
            deadline: Optional run deadline checked every iteration

        Returns:
            ClusteringOutcome; zero clusters when k < 1
        """
        vectors = np.asarray(vectors, dtype=float)
        n_vectors = vectors.shape[0]
        dimension = vectors.shape[1] if vectors.ndim == 2 else 0
        k = choose_k(n_vectors, min_cluster_size, max_clusters)
        logger.info("Starting clustering", n_vectors=n_vectors, k=k)

        if k < 1:
            logger.warning("Not enough tickets for clustering", n=n_vectors, min_cluster_size=min_cluster_size)
            return ClusteringOutcome(
                assignments=np.full(n_vectors, -1, dtype=int),
                centroids=np.zeros((0, dimension)),
                iterations=0,
                converged=True,
            )

        rng = rng if rng is not None else np.random.default_rng()
        seed_indices = rng.choice(n_vectors, size=k, replace=False)
        centroids = vectors[np.sort(seed_indices)].copy()

        assignments = np.full(n_vectors, -1, dtype=int)
        converged = False
        iteration = 0
        while iteration < self.max_iterations:
            if deadline is not None:
                deadline.check("clustering")

            # argmin returns the first minimum, so ties go to the lowest index
            new_assignments = np.argmin(cosine_dissimilarity(vectors, centroids), axis=1)

            for j in range(k):
                mask = new_assignments == j
                if mask.any():
                    centroids[j] = vectors[mask].mean(axis=0)

            iteration += 1
            if np.array_equal(new_assignments, assignments):
                converged = True
                break
            assignments = new_assignments

        if not converged:
            logger.info("Clustering stopped at iteration cap", iterations=iteration)
        logger.info(
            "Clustering complete",
            k=k,
            iterations=iteration,
            converged=converged,
            sizes=np.bincount(assignments, minlength=k).tolist(),
        )
        return ClusteringOutcome(
            assignments=assignments,
            centroids=centroids,
            iterations=iteration,
            converged=converged,
        )
