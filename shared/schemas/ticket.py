"""
Ticket FAQ Engine - Ticket Schemas

Defines the TicketRecord consumed by the FAQ clustering run.
Records are owned by the external ticket store and never mutated here.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TicketStatus(str, Enum):
    """Ticket lifecycle status"""
    NEW = "new"
    IN_PROGRESS = "in_progress"
    PENDING = "pending"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketResponse(BaseModel):
    """Single agent response attached to a ticket"""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    content: str
    is_public: bool = True
    created_at: datetime


class TicketRecord(BaseModel):
    """
    Resolved support ticket as seen by the clustering run.
    This is the unit for embedding, clustering and representative selection.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        json_schema_extra={
            "example": {
                "id": "inq-001",
                "appId": "app-1",
                "title": "How do I reset my password?",
                "body": "I forgot my password and cannot log in.",
                "category": "account",
                "status": "resolved",
                "createdAt": "2025-01-15T10:30:00Z",
                "responses": [
                    {
                        "content": "Use the 'Forgot password' link on the login page.",
                        "isPublic": True,
                        "createdAt": "2025-01-15T11:00:00Z",
                    }
                ],
            }
        },
    )

    id: str
    app_id: str
    title: str
    body: str = ""
    category: Optional[str] = None
    status: TicketStatus = TicketStatus.RESOLVED
    created_at: datetime
    resolved_at: Optional[datetime] = None
    responses: tuple[TicketResponse, ...] = Field(default_factory=tuple)

    @property
    def public_responses(self) -> list[TicketResponse]:
        return [r for r in self.responses if r.is_public]

    @property
    def embedding_text(self) -> str:
        """Text sent to the embedding model (title + body)"""
        return f"{self.title} {self.body}"
