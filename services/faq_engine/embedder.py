"""
Ticket Embedding Service
Embedding adapter (Ollama or sentence-transformers) and the vectorization stage
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

import httpx
import numpy as np
import structlog

from shared.schemas.ticket import TicketRecord

from .config import Deadline, RunConfig
from .errors import RunTimeoutError, UpstreamDependencyError

logger = structlog.get_logger()


class Embedder(Protocol):
    """Black-box text embedding function"""

    def embed(self, text: str) -> list[float]:
        ...


class TicketEmbedder:
    """
    Generates embeddings for ticket text.

    Supports two backends:
    1. Ollama (default, GPU-accelerated on server)
    2. Sentence-transformers (local)
    """

    # Max characters to send to embedding model
    MAX_TEXT_LENGTH = 8000

    def __init__(
        self,
        ollama_url: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        use_local: bool = False,
        max_length: Optional[int] = None,
        timeout: float = 60.0,
    ):
        """
        Args:
            ollama_url: URL of Ollama server
            model: Embedding model to use
            use_local: If True, use sentence-transformers locally
            max_length: Max text length (default: MAX_TEXT_LENGTH)
            timeout: Per-request HTTP timeout in seconds
        """
        self.ollama_url = ollama_url.rstrip("/")
        self.model = model
        self.use_local = use_local
        self.max_length = max_length or self.MAX_TEXT_LENGTH
        self.timeout = timeout
        self._local_model = None

    def embed(self, text: str) -> list[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            List of floats (embedding vector)

        Raises:
            UpstreamDependencyError: backend unreachable or returned no vector
        """
        if not text or not text.strip():
            raise UpstreamDependencyError("Cannot embed empty text")

        if len(text) > self.max_length:
            logger.debug("Truncated text", original=len(text), max=self.max_length)
            text = text[:self.max_length]

        if self.use_local:
            return self._embed_local(text)
        return self._embed_ollama(text)

    def _embed_ollama(self, text: str) -> list[float]:
        """Generate embedding using Ollama API"""
        try:
            response = httpx.post(
                f"{self.ollama_url}/api/embeddings",
                json={"model": self.model, "prompt": text},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            embedding = response.json().get("embedding", [])
        except httpx.HTTPStatusError as e:
            logger.error("Ollama HTTP error", status=e.response.status_code, error=e.response.text[:200])
            raise UpstreamDependencyError(
                f"Ollama returned HTTP {e.response.status_code}", {"model": self.model}
            ) from e
        except httpx.HTTPError as e:
            logger.error("Ollama embedding failed", error=str(e), model=self.model)
            raise UpstreamDependencyError(f"Ollama request failed: {e}", {"model": self.model}) from e

        if not embedding:
            raise UpstreamDependencyError("Empty embedding returned", {"model": self.model})
        return embedding

    def _embed_local(self, text: str) -> list[float]:
        """Generate embedding using sentence-transformers"""
        if self._local_model is None:
            self._init_local_model()

        embedding = self._local_model.encode(text, convert_to_numpy=True)
        return embedding.tolist()

    def _init_local_model(self):
        """Initialize local sentence-transformer model"""
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError:
            raise RuntimeError(
                "sentence-transformers not installed. "
                "Run: pip install 'ticket-faq-engine[local]'"
            )
        self._local_model = SentenceTransformer("all-MiniLM-L6-v2")
        logger.info(
            "Initialized local embedding model",
            dim=self._local_model.get_sentence_embedding_dimension(),
        )


@dataclass
class VectorizationResult:
    """Corpus vectors (one row per ticket, corpus order) plus degraded ticket ids"""
    vectors: np.ndarray
    degraded_ids: list[str] = field(default_factory=list)

    @property
    def dimension(self) -> int:
        return int(self.vectors.shape[1]) if self.vectors.ndim == 2 else 0


def vectorize_tickets(
    tickets: Sequence[TicketRecord],
    embedder: Embedder,
    config: RunConfig,
    deadline: Optional[Deadline] = None,
) -> VectorizationResult:
    """
    Embed every ticket with bounded parallelism.

    A failed embedding (or one whose dimension disagrees with the run) is
    replaced by a zero vector and reported in degraded_ids; the run continues.

    Raises:
        RunTimeoutError: deadline exceeded while waiting on embeddings
    """
    deadline = deadline or Deadline(None)
    if not tickets:
        return VectorizationResult(vectors=np.zeros((0, config.fallback_dimension)))

    raw: list[Optional[list[float]]] = [None] * len(tickets)
    degraded: set[int] = set()

    pool = ThreadPoolExecutor(max_workers=config.embed_concurrency)
    try:
        futures = [pool.submit(_embed_one, embedder, t.embedding_text) for t in tickets]
        for i, future in enumerate(futures):
            try:
                vector, error = future.result(timeout=deadline.remaining)
            except FutureTimeoutError:
                raise RunTimeoutError("vectorization", deadline.timeout)
            if error is not None:
                logger.warning("Embedding failed, using zero vector", ticket_id=tickets[i].id, error=str(error))
                degraded.add(i)
            else:
                raw[i] = vector
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    dimension = next((len(v) for v in raw if v), config.fallback_dimension)
    matrix = np.zeros((len(tickets), dimension), dtype=float)
    for i, vector in enumerate(raw):
        if i in degraded:
            continue
        if not vector or len(vector) != dimension:
            logger.warning(
                "Embedding dimension mismatch, using zero vector",
                ticket_id=tickets[i].id,
                expected=dimension,
                got=len(vector) if vector else 0,
            )
            degraded.add(i)
            continue
        matrix[i] = vector

    degraded_ids = [tickets[i].id for i in sorted(degraded)]
    if degraded_ids:
        logger.warning("Vectorization degraded", degraded=len(degraded_ids), total=len(tickets))
    logger.info("Vectorization complete", tickets=len(tickets), dimension=dimension)
    return VectorizationResult(vectors=matrix, degraded_ids=degraded_ids)


def _embed_one(embedder: Embedder, text: str) -> tuple[Optional[list[float]], Optional[Exception]]:
    """Run one embedding call, capturing the failure instead of raising"""
    try:
        return list(embedder.embed(text)), None
    except Exception as e:
        return None, e
