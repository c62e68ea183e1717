"""
Collaborator Interfaces and ArangoDB Storage
Ticket and FAQ persistence consumed by the FAQ engine
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Protocol

import structlog
from arango import ArangoClient
from arango.database import StandardDatabase
from arango.exceptions import ArangoError

from shared.schemas.faq import CorpusCriteria, FAQDraft, FAQEntry
from shared.schemas.ticket import TicketRecord, TicketStatus

from .errors import PersistenceError

logger = structlog.get_logger()

# Collection names
TICKET_COLLECTION = "tickets"
FAQ_COLLECTION = "faqs"
APPLICATION_COLLECTION = "applications"


class TicketStore(Protocol):
    """Read side of the external ticket store"""

    def check_health(self) -> bool:
        ...

    def application_exists(self, app_id: str) -> bool:
        ...

    def fetch_resolved(self, criteria: CorpusCriteria) -> list[TicketRecord]:
        ...


class FAQStore(Protocol):
    """Write side of the external FAQ store"""

    def create(self, draft: FAQDraft) -> FAQEntry:
        ...


FETCH_RESOLVED_QUERY = """
FOR t IN @@tickets
    FILTER t.app_id == @app_id
    FILTER t.status == @status
    FILTER LENGTH(FOR r IN (t.responses || []) FILTER r.is_public == true RETURN 1) > 0
    FILTER @start_date == null OR t.created_at >= @start_date
    FILTER @end_date == null OR t.created_at <= @end_date
    FILTER @categories == null OR t.category IN @categories
    SORT t.created_at DESC
    LIMIT @limit
    RETURN t
"""

MAX_ORDER_INDEX_QUERY = """
RETURN MAX(FOR f IN @@faqs FILTER f.app_id == @app_id RETURN f.order_index)
"""


class ArangoStore:
    """Shared ArangoDB connection handling"""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8529,
        database: str = "tfe",
        username: str = "root",
        password: str = "",
        db: Optional[StandardDatabase] = None,
    ):
        self.host = host
        self.port = port
        self.database_name = database
        self.username = username
        self.password = password
        self._client: Optional[ArangoClient] = None
        self._db: Optional[StandardDatabase] = db
        if self._db is None:
            self._connect()

    def _connect(self):
        """Establish connection to ArangoDB"""
        try:
            self._client = ArangoClient(hosts=f"http://{self.host}:{self.port}")
            # Connect without auth (dev mode) or with credentials
            if self.password:
                self._db = self._client.db(
                    self.database_name, username=self.username, password=self.password
                )
            else:
                self._db = self._client.db(self.database_name)
            logger.info("Connected to ArangoDB", host=self.host, database=self.database_name)
        except Exception as e:
            logger.error("Failed to connect to ArangoDB", error=str(e))
            raise

    def check_health(self) -> bool:
        """Check database connectivity"""
        try:
            if self._db:
                self._db.version()
                return True
        except Exception as e:
            logger.warning("ArangoDB health check failed", error=str(e))
        return False


class ArangoTicketStore(ArangoStore):
    """Ticket store backed by the `tickets` and `applications` collections"""

    def application_exists(self, app_id: str) -> bool:
        return self._db.collection(APPLICATION_COLLECTION).has(app_id)

    def fetch_resolved(self, criteria: CorpusCriteria) -> list[TicketRecord]:
        """
        Fetch resolved tickets with at least one public response.

        Args:
            criteria: App, optional date range / categories and row cap

        Returns:
            TicketRecords ordered newest first
        """
        date_range = criteria.date_range
        cursor = self._db.aql.execute(
            FETCH_RESOLVED_QUERY,
            bind_vars={
                "@tickets": TICKET_COLLECTION,
                "app_id": criteria.app_id,
                "status": TicketStatus.RESOLVED.value,
                "start_date": date_range.start_date.isoformat() if date_range else None,
                "end_date": date_range.end_date.isoformat() if date_range else None,
                "categories": list(criteria.categories) if criteria.categories else None,
                "limit": criteria.limit,
            },
        )

        records = []
        for doc in cursor:
            try:
                records.append(_doc_to_ticket(doc))
            except ValueError as e:
                logger.warning("Skipping malformed ticket document", key=doc.get("_key"), error=str(e))

        logger.info("Fetched resolved tickets", app_id=criteria.app_id, count=len(records))
        return records


class ArangoFAQStore(ArangoStore):
    """FAQ store backed by the `faqs` collection"""

    def create(self, draft: FAQDraft) -> FAQEntry:
        """
        Persist a draft as a new FAQ entry appended after the app's last entry.

        Raises:
            PersistenceError: when ArangoDB rejects the write
        """
        now = datetime.now(timezone.utc)
        try:
            if not self._db.has_collection(FAQ_COLLECTION):
                self._db.create_collection(FAQ_COLLECTION)

            max_order = next(iter(self._db.aql.execute(
                MAX_ORDER_INDEX_QUERY,
                bind_vars={"@faqs": FAQ_COLLECTION, "app_id": draft.app_id},
            )), None)

            doc = {
                "_key": uuid.uuid4().hex,
                "app_id": draft.app_id,
                "question": draft.question,
                "answer": draft.answer,
                "category": draft.category,
                "tags": draft.tags,
                "is_published": draft.is_published,
                "order_index": (max_order if max_order is not None else -1) + 1,
                "source_cluster_id": draft.source_cluster_id,
                "created_at": now.isoformat(),
                "updated_at": now.isoformat(),
            }
            self._db.collection(FAQ_COLLECTION).insert(doc)
        except ArangoError as e:
            logger.error("Failed to persist FAQ", app_id=draft.app_id, error=str(e))
            raise PersistenceError(f"Failed to persist FAQ: {e}", {"app_id": draft.app_id}) from e

        return FAQEntry(
            id=doc["_key"],
            app_id=doc["app_id"],
            question=doc["question"],
            answer=doc["answer"],
            category=doc["category"],
            tags=doc["tags"],
            is_published=doc["is_published"],
            order_index=doc["order_index"],
            created_at=now,
            updated_at=now,
        )


def _doc_to_ticket(doc: dict) -> TicketRecord:
    """Map an ArangoDB ticket document to a TicketRecord"""
    payload = {key: value for key, value in doc.items() if not key.startswith("_")}
    payload.setdefault("id", doc.get("_key"))
    return TicketRecord.model_validate(payload)
