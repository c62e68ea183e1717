"""Shared test fixtures for the FAQ engine tests."""

import itertools
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import numpy as np
import pytest

from services.faq_engine.config import EngineSettings
from services.faq_engine.engine import FAQGenerationEngine
from services.faq_engine.errors import PersistenceError, UpstreamDependencyError
from shared.schemas.faq import CorpusCriteria, FAQDraft, FAQEntry
from shared.schemas.ticket import TicketRecord, TicketResponse

APP_ID = "app-1"
BASE_TIME = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)

LONG_ANSWER = (
    "Open Settings and choose Security. Then:\n"
    "- click 'Reset password'\n"
    "- follow the link we email you"
)


class InMemoryTicketStore:
    """Ticket store returning every ticket of the app; eligibility is left to the selector."""

    def __init__(self, tickets: list[TicketRecord], apps: Optional[set[str]] = None, healthy: bool = True):
        self.tickets = list(tickets)
        self.apps = apps if apps is not None else {APP_ID}
        self.healthy = healthy
        self.fetch_calls: list[CorpusCriteria] = []

    def check_health(self) -> bool:
        return self.healthy

    def application_exists(self, app_id: str) -> bool:
        return app_id in self.apps

    def fetch_resolved(self, criteria: CorpusCriteria) -> list[TicketRecord]:
        self.fetch_calls.append(criteria)
        return [t for t in self.tickets if t.app_id == criteria.app_id]


class InMemoryFAQStore:
    """FAQ store that can be told to fail for specific cluster ids."""

    def __init__(self, fail_cluster_ids: Optional[set[str]] = None):
        self.fail_cluster_ids = fail_cluster_ids or set()
        self.entries: list[FAQEntry] = []
        self._order = itertools.count()

    def create(self, draft: FAQDraft) -> FAQEntry:
        if draft.source_cluster_id in self.fail_cluster_ids:
            raise PersistenceError(f"write rejected for {draft.source_cluster_id}")
        now = datetime.now(timezone.utc)
        entry = FAQEntry(
            id=uuid.uuid4().hex,
            app_id=draft.app_id,
            question=draft.question,
            answer=draft.answer,
            category=draft.category,
            tags=draft.tags,
            is_published=draft.is_published,
            order_index=next(self._order),
            created_at=now,
            updated_at=now,
        )
        self.entries.append(entry)
        return entry


class TopicEmbedder:
    """
    Deterministic fake embedder: one axis per topic keyword plus a constant
    bias axis, so tickets about the same topic get identical vectors.
    Texts containing a word from `fail_on` raise like an unreachable backend.
    """

    TOPICS = ("password", "invoice", "export")

    def __init__(self, fail_on: tuple[str, ...] = (), delay: float = 0.0):
        self.fail_on = fail_on
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def embed(self, text: str) -> list[float]:
        with self._lock:
            self.calls += 1
        if self.delay:
            threading.Event().wait(self.delay)
        lowered = text.lower()
        if any(word in lowered for word in self.fail_on):
            raise UpstreamDependencyError("embedding backend unavailable")
        return [1.0 if topic in lowered else 0.0 for topic in self.TOPICS] + [0.05]


class RecordingListener:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: list[str] = []

    def faq_set_changed(self, app_id: str) -> None:
        self.events.append(app_id)
        if self.fail:
            raise RuntimeError("site publisher down")


class FixedRng:
    """Stands in for numpy.random.Generator with predetermined seed indices."""

    def __init__(self, indices):
        self.indices = list(indices)

    def choice(self, n, size, replace=False):
        return np.array(self.indices[:size])


@pytest.fixture
def make_ticket():
    """Factory for TicketRecords; `minutes` offsets created_at from BASE_TIME."""
    counter = itertools.count(1)

    def _make(
        title: str,
        body: str = "",
        category: Optional[str] = None,
        minutes: Optional[int] = None,
        status: str = "resolved",
        responses: Optional[list[tuple[str, bool]]] = None,
        app_id: str = APP_ID,
        ticket_id: Optional[str] = None,
    ) -> TicketRecord:
        n = next(counter)
        created = BASE_TIME + timedelta(minutes=minutes if minutes is not None else n)
        if responses is None:
            responses = [(LONG_ANSWER, True)]
        return TicketRecord(
            id=ticket_id or f"t-{n}",
            app_id=app_id,
            title=title,
            body=body,
            category=category,
            status=status,
            created_at=created,
            responses=tuple(
                TicketResponse(content=content, is_public=public, created_at=created + timedelta(hours=1))
                for content, public in responses
            ),
        )

    return _make


@pytest.fixture
def topic_tickets(make_ticket):
    """Three password tickets and three invoice tickets"""
    return [
        make_ticket("How do I reset my password?", category="account"),
        make_ticket("Password reset email never arrives", category="account"),
        make_ticket("Cannot change password from settings", category="security"),
        make_ticket("Where can I download my invoice?", category="billing",
                    responses=[("Invoices are under Billing > History.", True)]),
        make_ticket("Invoice shows the wrong company name", category="billing",
                    responses=[("We corrected the invoice; download it again from Billing.", True)]),
        make_ticket("Need a copy of last month's invoice", category="billing",
                    responses=[("Sent.", True)]),
    ]


@pytest.fixture
def embedder():
    return TopicEmbedder()


@pytest.fixture
def faq_store():
    return InMemoryFAQStore()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def settings():
    return EngineSettings(embed_concurrency=2, fallback_dimension=4)


@pytest.fixture
def build_engine(embedder, faq_store, listener, settings):
    """Engine factory over a given ticket list"""

    def _build(tickets, apps=None, embedder_override=None, faq_store_override=None):
        store = InMemoryTicketStore(tickets, apps=apps)
        engine = FAQGenerationEngine(
            ticket_store=store,
            embedder=embedder_override or embedder,
            faq_store=faq_store_override or faq_store,
            listener=listener,
            settings=settings,
        )
        return engine, store

    return _build


@pytest.fixture
def fixed_rng():
    return FixedRng


