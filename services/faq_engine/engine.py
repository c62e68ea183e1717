"""
FAQ Generation Engine
Runs corpus selection -> vectorization -> clustering -> validation ->
representative selection -> materialization for one application.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

import numpy as np
import structlog

from shared.schemas.faq import (
    ClusterCandidate,
    FAQCandidate,
    FAQEntry,
    GenerationOptions,
    GenerationStatistics,
    MaterializeResult,
    PreviewResult,
)
from shared.schemas.ticket import TicketRecord

from .clusterer import CentroidClusterer
from .config import Deadline, EngineSettings, RunConfig
from .corpus import select_corpus
from .embedder import Embedder, vectorize_tickets
from .errors import NotFoundError, ValidationError
from .materializer import FAQMaterializer
from .notifier import FAQSetListener
from .scoring import cohesion_score
from .selector import build_faq_candidate
from .stores import FAQStore, TicketStore
from .validator import validate_clusters

logger = structlog.get_logger()

Options = Union[GenerationOptions, dict]


@dataclass
class ClusteringRun:
    """Everything one run produced, before materialization"""
    config: RunConfig
    corpus: list[TicketRecord]
    clusters: list[ClusterCandidate] = field(default_factory=list)
    candidates: list[FAQCandidate] = field(default_factory=list)
    unclustered_ids: list[str] = field(default_factory=list)
    degraded_ids: list[str] = field(default_factory=list)

    def statistics(self) -> GenerationStatistics:
        clustered = sum(len(c.member_ids) for c in self.candidates)
        return GenerationStatistics(
            total_inquiries=len(self.corpus),
            clustered_inquiries=clustered,
            unclustered=len(self.unclustered_ids),
            generated_faqs=len(self.candidates),
        )

    def to_preview(self) -> PreviewResult:
        return PreviewResult(
            clusters=self.candidates,
            statistics=self.statistics(),
            unclustered_ids=self.unclustered_ids,
            degraded_ids=self.degraded_ids,
        )


class FAQGenerationEngine:
    """
    Entry point for FAQ generation.

    Each call is one bounded batch run with its own RunConfig; nothing is
    cached between calls. Concurrent materialize calls for the same app are
    not serialized here, callers must hold a per-app lock to avoid duplicate
    drafts.
    """

    def __init__(
        self,
        ticket_store: TicketStore,
        embedder: Embedder,
        faq_store: FAQStore,
        listener: Optional[FAQSetListener] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.ticket_store = ticket_store
        self.embedder = embedder
        self.settings = settings or EngineSettings()
        self.materializer = FAQMaterializer(faq_store, listener)

    def check_health(self) -> bool:
        """Whether the ticket store is reachable"""
        return self.ticket_store.check_health()

    def preview(
        self,
        app_id: str,
        options: Options,
        timeout: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> PreviewResult:
        """Cluster the app's resolved tickets and return FAQ candidates without persisting"""
        return self.run(app_id, options, timeout=timeout, seed=seed).to_preview()

    def generate(
        self,
        app_id: str,
        options: Options,
        timeout: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> list[FAQCandidate]:
        """Cluster the app's resolved tickets and return only the candidates"""
        return self.run(app_id, options, timeout=timeout, seed=seed).candidates

    def materialize(
        self,
        app_id: str,
        options: Options,
        cluster_ids: Optional[Sequence[str]] = None,
        is_published: bool = False,
        auto_publish_threshold: Optional[float] = None,
        timeout: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> MaterializeResult:
        """
        Run clustering, then bulk-create FAQ entries.

        Args:
            cluster_ids: Subset of candidate ids to create; all when None
            is_published: Publish every created entry
            auto_publish_threshold: Publish entries whose confidence reaches it

        Raises:
            ValidationError: bad options, duplicate or unknown cluster ids
            NotFoundError: unknown app
            RunTimeoutError: deadline exceeded before materialization started
        """
        if cluster_ids is not None:
            _reject_duplicates(cluster_ids)
        deadline = Deadline(timeout)
        clustering = self.run(app_id, options, timeout=timeout, seed=seed, deadline=deadline)
        targets = _pick_candidates(clustering.candidates, cluster_ids)
        deadline.check("materialization")
        return self.materializer.create_faqs_from_clusters(
            app_id,
            targets,
            is_published=is_published,
            auto_publish_threshold=auto_publish_threshold,
        )

    def create_from_cluster(
        self,
        app_id: str,
        options: Options,
        cluster_id: str,
        is_published: bool = False,
        category: Optional[str] = None,
        tags: Optional[list[str]] = None,
        timeout: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> FAQEntry:
        """
        Run clustering and persist a single cluster's candidate.

        Raises:
            NotFoundError: unknown app or cluster id
        """
        deadline = Deadline(timeout)
        clustering = self.run(app_id, options, timeout=timeout, seed=seed, deadline=deadline)
        candidate = next((c for c in clustering.candidates if c.id == cluster_id), None)
        if candidate is None:
            raise NotFoundError("Cluster", cluster_id)
        deadline.check("materialization")
        return self.materializer.create_faq_from_cluster(
            app_id, candidate, is_published=is_published, category=category, tags=tags
        )

    def run(
        self,
        app_id: str,
        options: Options,
        timeout: Optional[float] = None,
        seed: Optional[int] = None,
        deadline: Optional[Deadline] = None,
    ) -> ClusteringRun:
        """
        Execute the clustering pipeline up to FAQ candidates.

        Raises:
            ValidationError: invalid options (before any fetch)
            NotFoundError: unknown app
            RunTimeoutError: deadline exceeded
        """
        config = RunConfig.build(app_id, options, self.settings, seed=seed, timeout=timeout)
        deadline = deadline or Deadline(config.timeout)
        log = logger.bind(app_id=app_id)
        log.info("FAQ generation started", min_cluster_size=config.min_cluster_size,
                 max_clusters=config.max_clusters, seed=config.seed)

        if not self.ticket_store.application_exists(app_id):
            raise NotFoundError("Application", app_id)

        # Step 1: Corpus
        corpus = select_corpus(self.ticket_store, config)
        run = ClusteringRun(config=config, corpus=corpus)
        if not corpus:
            return run
        deadline.check("corpus selection")

        # Step 2: Vectorize
        vectorized = vectorize_tickets(corpus, self.embedder, config, deadline)
        run.degraded_ids = vectorized.degraded_ids
        deadline.check("vectorization")

        # Step 3: Cluster
        clusterer = CentroidClusterer(max_iterations=config.max_iterations)
        outcome = clusterer.cluster(
            vectorized.vectors,
            min_cluster_size=config.min_cluster_size,
            max_clusters=config.max_clusters,
            rng=np.random.default_rng(config.seed),
            deadline=deadline,
        )

        # Step 4: Validate
        ticket_ids = [t.id for t in corpus]
        validated = validate_clusters(outcome, ticket_ids, config.min_cluster_size)
        run.unclustered_ids = list(validated.unclustered_ids)

        # Step 5: Score + pick representatives
        by_id = {t.id: t for t in corpus}
        for group in validated.groups:
            members = [by_id[tid] for tid in group.member_ids]
            cluster = ClusterCandidate(
                id=group.cluster_id,
                member_ids=group.member_ids,
                centroid=group.centroid,
                cohesion=cohesion_score([m.title for m in members]),
            )
            candidate = build_faq_candidate(
                cluster, members, config.interrogative_keywords, config.tag_vocabulary
            )
            if candidate is None:
                run.unclustered_ids.extend(group.member_ids)
                continue
            run.clusters.append(cluster)
            run.candidates.append(candidate)
        deadline.check("candidate selection")

        stats = run.statistics()
        log.info(
            "FAQ generation complete",
            total=stats.total_inquiries,
            clustered=stats.clustered_inquiries,
            unclustered=stats.unclustered,
            generated=stats.generated_faqs,
            degraded=len(run.degraded_ids),
            iterations=outcome.iterations,
            converged=outcome.converged,
            cluster_sizes={c.id: c.size for c in run.clusters},
            cohesion={c.id: round(c.cohesion, 3) for c in run.clusters},
        )
        return run


def _reject_duplicates(cluster_ids: Sequence[str]) -> None:
    duplicates = sorted(cid for cid, n in Counter(cluster_ids).items() if n > 1)
    if duplicates:
        raise ValidationError("Duplicate cluster ids in request", {"cluster_ids": duplicates})


def _pick_candidates(
    candidates: list[FAQCandidate],
    cluster_ids: Optional[Sequence[str]],
) -> list[FAQCandidate]:
    """Select requested candidates in request order; unknown ids are rejected"""
    if cluster_ids is None:
        return candidates
    by_id = {c.id: c for c in candidates}
    unknown = [cid for cid in cluster_ids if cid not in by_id]
    if unknown:
        raise ValidationError("Unknown cluster ids in request", {"cluster_ids": unknown})
    return [by_id[cid] for cid in cluster_ids]
