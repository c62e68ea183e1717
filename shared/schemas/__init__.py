"""TFE Shared Schemas"""

from .faq import (
    MAX_TAGS,
    ClusterCandidate,
    CorpusCriteria,
    DateRange,
    FailedCluster,
    FAQCandidate,
    FAQDraft,
    FAQEntry,
    GenerationOptions,
    GenerationStatistics,
    MaterializeResult,
    MaterializeStatistics,
    PreviewResult,
)
from .ticket import TicketRecord, TicketResponse, TicketStatus

__all__ = [
    # Ticket schemas
    "TicketRecord",
    "TicketResponse",
    "TicketStatus",
    # Request schemas
    "DateRange",
    "GenerationOptions",
    "CorpusCriteria",
    # Cluster / FAQ schemas
    "MAX_TAGS",
    "ClusterCandidate",
    "FAQCandidate",
    "FAQDraft",
    "FAQEntry",
    # Result schemas
    "GenerationStatistics",
    "PreviewResult",
    "FailedCluster",
    "MaterializeStatistics",
    "MaterializeResult",
]
