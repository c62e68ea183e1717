"""
Ticket FAQ Engine - FAQ Schemas

Request options, cluster/FAQ candidates and the persisted FAQEntry,
plus the preview and materialize result shapes.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

MAX_TAGS = 5


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DateRange(_CamelModel):
    """Inclusive creation-date window for the corpus"""

    start_date: datetime
    end_date: datetime

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class GenerationOptions(_CamelModel):
    """Options for one preview/generate run"""

    min_cluster_size: int = Field(default=3, ge=2, le=50)
    max_clusters: int = Field(default=20, ge=1, le=100)
    similarity_threshold: float = Field(default=0.7, ge=0.1, le=1.0)
    date_range: Optional[DateRange] = None
    categories: Optional[list[str]] = None

    @model_validator(mode="after")
    def _check_cluster_bounds(self) -> "GenerationOptions":
        if self.min_cluster_size >= self.max_clusters:
            raise ValueError("min_cluster_size must be smaller than max_clusters")
        return self


class CorpusCriteria(BaseModel):
    """Query passed to TicketStore.fetch_resolved"""

    model_config = ConfigDict(frozen=True)

    app_id: str
    date_range: Optional[DateRange] = None
    categories: Optional[tuple[str, ...]] = None
    limit: int = 1000


class ClusterCandidate(BaseModel):
    """
    Group of similar tickets produced by the clustering engine.
    Only groups that passed minimum-size validation are materialized as candidates.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    member_ids: list[str] = Field(..., min_length=1)
    centroid: list[float]
    cohesion: float = Field(..., ge=0.0, le=1.0)

    @property
    def size(self) -> int:
        return len(self.member_ids)


class FAQCandidate(_CamelModel):
    """Derived, not yet persisted question/answer pair"""

    model_config = ConfigDict(frozen=True)

    id: str
    representative_question: str
    suggested_answer: str
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list, max_length=MAX_TAGS)
    confidence: float = Field(..., ge=0.0, le=1.0)
    member_ids: list[str] = Field(default_factory=list)


class FAQDraft(_CamelModel):
    """Payload handed to FAQStore.create"""

    app_id: str
    question: str
    answer: str
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    is_published: bool = False
    source_cluster_id: Optional[str] = None


class FAQEntry(_CamelModel):
    """Persisted FAQ entry, owned by the external FAQ store"""

    id: str
    app_id: str
    question: str
    answer: str
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    is_published: bool = False
    order_index: int = 0
    created_at: datetime
    updated_at: datetime


class GenerationStatistics(_CamelModel):
    total_inquiries: int = 0
    clustered_inquiries: int = 0
    unclustered: int = 0
    generated_faqs: int = Field(default=0, alias="generatedFAQs")


class PreviewResult(_CamelModel):
    """Result of a preview/generate run"""

    clusters: list[FAQCandidate] = Field(default_factory=list)
    statistics: GenerationStatistics = Field(default_factory=GenerationStatistics)
    unclustered_ids: list[str] = Field(default_factory=list)
    degraded_ids: list[str] = Field(default_factory=list)


class FailedCluster(_CamelModel):
    cluster_id: str
    error: str


class MaterializeStatistics(_CamelModel):
    total: int = 0
    success: int = 0
    failed: int = 0


class MaterializeResult(_CamelModel):
    """Best-effort bulk creation outcome; created + failed covers every input cluster"""

    created: list[FAQEntry] = Field(default_factory=list)
    failed: list[FailedCluster] = Field(default_factory=list)
    statistics: MaterializeStatistics = Field(default_factory=MaterializeStatistics)
