"""
FAQ Materializer
Turns validated FAQ candidates into persisted FAQ entries
"""

from collections import Counter
from typing import Optional, Sequence

import structlog

from shared.schemas.faq import (
    FailedCluster,
    FAQCandidate,
    FAQDraft,
    FAQEntry,
    MaterializeResult,
    MaterializeStatistics,
)

from .errors import PersistenceError, ValidationError
from .notifier import FAQSetListener
from .selector import dedupe_tags
from .stores import FAQStore

logger = structlog.get_logger()


def should_publish(
    confidence: float,
    is_published: bool = False,
    auto_publish_threshold: Optional[float] = None,
) -> bool:
    """Explicit flag wins; otherwise publish when confidence reaches the threshold"""
    if is_published:
        return True
    return auto_publish_threshold is not None and confidence >= auto_publish_threshold


class FAQMaterializer:
    """Persists FAQ candidates through the external FAQ store"""

    def __init__(self, faq_store: FAQStore, listener: Optional[FAQSetListener] = None):
        self.faq_store = faq_store
        self.listener = listener

    def create_faq_from_cluster(
        self,
        app_id: str,
        candidate: FAQCandidate,
        is_published: bool = False,
        category: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> FAQEntry:
        """
        Persist one candidate as an FAQ entry.

        Args:
            app_id: Owning application
            candidate: Derived FAQ candidate
            is_published: Publish immediately
            category: Overrides the derived category
            tags: Overrides the derived tags

        Raises:
            PersistenceError: the FAQ store failed
        """
        draft = FAQDraft(
            app_id=app_id,
            question=candidate.representative_question,
            answer=candidate.suggested_answer,
            category=category if category is not None else candidate.category,
            tags=dedupe_tags(tags) if tags is not None else list(candidate.tags),
            is_published=is_published,
            source_cluster_id=candidate.id,
        )

        try:
            entry = self.faq_store.create(draft)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(str(e) or type(e).__name__, {"cluster_id": candidate.id}) from e

        logger.info("Created FAQ from cluster", cluster_id=candidate.id, faq_id=entry.id,
                    published=entry.is_published)
        if entry.is_published:
            self._notify(app_id)
        return entry

    def create_faqs_from_clusters(
        self,
        app_id: str,
        candidates: Sequence[FAQCandidate],
        is_published: bool = False,
        auto_publish_threshold: Optional[float] = None,
    ) -> MaterializeResult:
        """
        Best-effort bulk creation. A failure on one cluster is recorded in
        `failed` and the remaining clusters are still attempted.

        Raises:
            ValidationError: duplicate cluster ids or threshold outside [0, 1];
                nothing is persisted in that case
        """
        duplicates = sorted(cid for cid, n in Counter(c.id for c in candidates).items() if n > 1)
        if duplicates:
            raise ValidationError("Duplicate cluster ids in request", {"cluster_ids": duplicates})
        if auto_publish_threshold is not None and not 0.0 <= auto_publish_threshold <= 1.0:
            raise ValidationError(
                "auto_publish_threshold must be within [0, 1]",
                {"auto_publish_threshold": auto_publish_threshold},
            )

        logger.info("Creating FAQs from clusters", app_id=app_id, clusters=len(candidates))
        created: list[FAQEntry] = []
        failed: list[FailedCluster] = []
        for candidate in candidates:
            publish = should_publish(candidate.confidence, is_published, auto_publish_threshold)
            try:
                created.append(self.create_faq_from_cluster(app_id, candidate, is_published=publish))
            except PersistenceError as e:
                logger.error("Failed to create FAQ from cluster", cluster_id=candidate.id, error=e.message)
                failed.append(FailedCluster(cluster_id=candidate.id, error=e.message))

        logger.info("Bulk FAQ creation complete", app_id=app_id, success=len(created), failed=len(failed))
        return MaterializeResult(
            created=created,
            failed=failed,
            statistics=MaterializeStatistics(
                total=len(candidates),
                success=len(created),
                failed=len(failed),
            ),
        )

    def _notify(self, app_id: str) -> None:
        if self.listener is None:
            return
        try:
            self.listener.faq_set_changed(app_id)
        except Exception as e:
            # The entry is already persisted; the publisher can resync later
            logger.error("FAQ set change notification failed", app_id=app_id, error=str(e))
