from unittest.mock import MagicMock

import pytest
from arango.exceptions import ArangoClientError

from services.faq_engine.errors import PersistenceError
from services.faq_engine.stores import (
    APPLICATION_COLLECTION,
    FAQ_COLLECTION,
    ArangoFAQStore,
    ArangoTicketStore,
)
from shared.schemas.faq import CorpusCriteria, FAQDraft


def _ticket_doc(key, **overrides):
    doc = {
        "_key": key,
        "_id": f"tickets/{key}",
        "app_id": "app-1",
        "title": "How do I reset my password?",
        "body": "",
        "category": "account",
        "status": "resolved",
        "created_at": "2025-01-15T10:30:00Z",
        "responses": [
            {"content": "Use the reset link.", "is_public": True, "created_at": "2025-01-15T11:00:00Z"}
        ],
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def db():
    return MagicMock()


def test_application_exists(db):
    db.collection.return_value.has.return_value = True

    assert ArangoTicketStore(db=db).application_exists("app-1")
    db.collection.assert_called_with(APPLICATION_COLLECTION)


def test_fetch_resolved_maps_documents(db):
    db.aql.execute.return_value = iter([_ticket_doc("t-1"), _ticket_doc("t-2", title=None)])

    records = ArangoTicketStore(db=db).fetch_resolved(
        CorpusCriteria(app_id="app-1", categories=("account",), limit=10)
    )

    assert [r.id for r in records] == ["t-1"]
    assert records[0].responses[0].is_public
    bind_vars = db.aql.execute.call_args.kwargs["bind_vars"]
    assert bind_vars["app_id"] == "app-1"
    assert bind_vars["status"] == "resolved"
    assert bind_vars["categories"] == ["account"]
    assert bind_vars["start_date"] is None
    assert bind_vars["limit"] == 10


def test_create_appends_after_last_entry(db):
    db.has_collection.return_value = True
    db.aql.execute.return_value = iter([4])

    entry = ArangoFAQStore(db=db).create(
        FAQDraft(app_id="app-1", question="Q?", answer="A.", tags=["account"], source_cluster_id="cluster-0")
    )

    assert entry.order_index == 5
    assert entry.tags == ["account"]
    inserted = db.collection.return_value.insert.call_args.args[0]
    assert inserted["_key"] == entry.id
    assert inserted["source_cluster_id"] == "cluster-0"
    db.collection.assert_called_with(FAQ_COLLECTION)


def test_create_first_entry_creates_collection(db):
    db.has_collection.return_value = False
    db.aql.execute.return_value = iter([None])

    entry = ArangoFAQStore(db=db).create(FAQDraft(app_id="app-1", question="Q?", answer="A."))

    db.create_collection.assert_called_once_with(FAQ_COLLECTION)
    assert entry.order_index == 0


def test_create_wraps_arango_errors(db):
    db.has_collection.return_value = True
    db.aql.execute.return_value = iter([None])
    db.collection.return_value.insert.side_effect = ArangoClientError("write conflict")

    with pytest.raises(PersistenceError, match="write conflict"):
        ArangoFAQStore(db=db).create(FAQDraft(app_id="app-1", question="Q?", answer="A."))


def test_check_health(db):
    store = ArangoTicketStore(db=db)
    assert store.check_health()

    db.version.side_effect = ArangoClientError("connection refused")
    assert not store.check_health()
