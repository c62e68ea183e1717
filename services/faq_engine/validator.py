"""
Cluster Validator
Enforces the minimum cluster size and collects the unclustered remainder
"""

from dataclasses import dataclass, field
from typing import Sequence

import structlog

from .clusterer import ClusteringOutcome

logger = structlog.get_logger()


@dataclass
class ClusterGroup:
    """A cluster that met the minimum size"""
    index: int
    member_ids: list[str]
    centroid: list[float]

    @property
    def cluster_id(self) -> str:
        return f"cluster-{self.index}"


@dataclass
class ValidationOutcome:
    groups: list[ClusterGroup] = field(default_factory=list)
    unclustered_ids: list[str] = field(default_factory=list)

    @property
    def clustered_count(self) -> int:
        return sum(len(g.member_ids) for g in self.groups)


def validate_clusters(
    outcome: ClusteringOutcome,
    ticket_ids: Sequence[str],
    min_cluster_size: int,
) -> ValidationOutcome:
    """
    Keep clusters with at least `min_cluster_size` members.

    Members of dropped clusters, and rows never assigned (k == 0), move to
    the unclustered set, so clustered + unclustered == len(ticket_ids).
    """
    if len(ticket_ids) != len(outcome.assignments):
        raise ValueError(
            f"assignment count {len(outcome.assignments)} does not match ticket count {len(ticket_ids)}"
        )

    result = ValidationOutcome()
    assigned: set[int] = set()
    for index in range(outcome.k):
        rows = outcome.members(index)
        assigned.update(rows)
        member_ids = [ticket_ids[row] for row in rows]
        if len(member_ids) >= min_cluster_size:
            result.groups.append(ClusterGroup(
                index=index,
                member_ids=member_ids,
                centroid=outcome.centroids[index].tolist(),
            ))
        else:
            if member_ids:
                logger.info("Dropping undersized cluster", cluster=index, size=len(member_ids),
                            min_cluster_size=min_cluster_size)
            result.unclustered_ids.extend(member_ids)

    result.unclustered_ids.extend(
        ticket_ids[row] for row in range(len(ticket_ids)) if row not in assigned
    )
    logger.info(
        "Cluster validation complete",
        kept=len(result.groups),
        clustered=result.clustered_count,
        unclustered=len(result.unclustered_ids),
    )
    return result
