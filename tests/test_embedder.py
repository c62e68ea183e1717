import httpx
import numpy as np
import pytest

from services.faq_engine.config import Deadline, EngineSettings, RunConfig
from services.faq_engine.embedder import TicketEmbedder, vectorize_tickets
from services.faq_engine.errors import RunTimeoutError, UpstreamDependencyError

from conftest import TopicEmbedder


@pytest.fixture
def run_config():
    return RunConfig.build("app-1", {}, EngineSettings(embed_concurrency=2, fallback_dimension=4))


def _fake_post(status=200, payload=None, calls=None):
    def post(url, json=None, headers=None, timeout=None):
        if calls is not None:
            calls.append({"url": url, "json": json, "timeout": timeout})
        return httpx.Response(status, json=payload or {}, request=httpx.Request("POST", url))
    return post


def test_ollama_embedding(monkeypatch):
    calls = []
    monkeypatch.setattr(httpx, "post", _fake_post(payload={"embedding": [0.1, 0.2, 0.3]}, calls=calls))
    embedder = TicketEmbedder(ollama_url="http://ollama:11434/", model="nomic-embed-text", max_length=10)

    vector = embedder.embed("a long ticket text that gets truncated")

    assert vector == [0.1, 0.2, 0.3]
    assert calls[0]["url"] == "http://ollama:11434/api/embeddings"
    assert calls[0]["json"] == {"model": "nomic-embed-text", "prompt": "a long tic"}


def test_ollama_http_error_is_upstream_error(monkeypatch):
    monkeypatch.setattr(httpx, "post", _fake_post(status=500, payload={"error": "model not loaded"}))

    with pytest.raises(UpstreamDependencyError, match="HTTP 500"):
        TicketEmbedder().embed("password reset")


def test_ollama_connection_error_is_upstream_error(monkeypatch):
    def refuse(url, **kwargs):
        raise httpx.ConnectError("connection refused")
    monkeypatch.setattr(httpx, "post", refuse)

    with pytest.raises(UpstreamDependencyError):
        TicketEmbedder().embed("password reset")


def test_empty_embedding_is_upstream_error(monkeypatch):
    monkeypatch.setattr(httpx, "post", _fake_post(payload={"embedding": []}))

    with pytest.raises(UpstreamDependencyError):
        TicketEmbedder().embed("password reset")


def test_blank_text_is_rejected():
    with pytest.raises(UpstreamDependencyError):
        TicketEmbedder().embed("   ")


def test_vectorize_keeps_corpus_order(topic_tickets, run_config):
    result = vectorize_tickets(topic_tickets, TopicEmbedder(), run_config)

    assert result.vectors.shape == (6, 4)
    assert result.degraded_ids == []
    assert result.vectors[0].tolist() == [1.0, 0.0, 0.0, 0.05]
    assert result.vectors[3].tolist() == [0.0, 1.0, 0.0, 0.05]


def test_vectorize_substitutes_zero_vector_on_failure(make_ticket, run_config):
    tickets = [make_ticket("Password help"), make_ticket("Export timeout"), make_ticket("Invoice copy")]

    result = vectorize_tickets(tickets, TopicEmbedder(fail_on=("timeout",)), run_config)

    assert result.degraded_ids == [tickets[1].id]
    assert not result.vectors[1].any()
    assert result.vectors[0].any() and result.vectors[2].any()


def test_vectorize_flags_dimension_mismatch(make_ticket, run_config):
    class ShrinkingEmbedder:
        def embed(self, text):
            return [1.0, 0.0, 0.0] if "short" in text else [1.0, 0.0, 0.0, 0.0]

    tickets = [make_ticket("normal one"), make_ticket("short one")]

    result = vectorize_tickets(tickets, ShrinkingEmbedder(), run_config)

    assert result.dimension == 4
    assert result.degraded_ids == [tickets[1].id]


def test_vectorize_all_failed_uses_fallback_dimension(make_ticket, run_config):
    tickets = [make_ticket("down"), make_ticket("also down")]

    result = vectorize_tickets(tickets, TopicEmbedder(fail_on=("down",)), run_config)

    assert result.vectors.shape == (2, 4)
    assert np.count_nonzero(result.vectors) == 0
    assert result.degraded_ids == [t.id for t in tickets]


def test_vectorize_empty_corpus(run_config):
    result = vectorize_tickets([], TopicEmbedder(), run_config)
    assert result.vectors.shape == (0, 4)


def test_vectorize_times_out(make_ticket, run_config):
    tickets = [make_ticket("slow password"), make_ticket("slow invoice")]

    with pytest.raises(RunTimeoutError) as exc_info:
        vectorize_tickets(tickets, TopicEmbedder(delay=1.0), run_config, Deadline(0.05))
    assert exc_info.value.stage == "vectorization"


def test_default_max_length():
    assert TicketEmbedder().max_length == TicketEmbedder.MAX_TEXT_LENGTH
    assert TicketEmbedder(max_length=None).max_length == TicketEmbedder.MAX_TEXT_LENGTH
