"""
TFE FAQ Engine
Clusters resolved tickets into FAQ candidates and materializes them as FAQ entries

Components:
- corpus.py: eligible ticket selection
- embedder.py: TicketEmbedder (Ollama / sentence-transformers) and vectorization stage
- clusterer.py: CentroidClusterer (cosine k-means)
- validator.py: minimum cluster size enforcement
- selector.py: representative question/answer and tag derivation
- scoring.py: cluster cohesion / confidence
- materializer.py: FAQMaterializer with auto-publish policy
- engine.py: FAQGenerationEngine orchestrating a run
- cli.py: Command-line interface
"""

from .clusterer import CentroidClusterer, ClusteringOutcome, cosine_dissimilarity
from .config import EngineSettings, RunConfig
from .embedder import TicketEmbedder, VectorizationResult, vectorize_tickets
from .engine import FAQGenerationEngine
from .errors import (
    FAQEngineError,
    NotFoundError,
    PersistenceError,
    RunTimeoutError,
    UpstreamDependencyError,
    ValidationError,
)
from .materializer import FAQMaterializer, should_publish
from .notifier import CallbackListener, WebhookListener
from .stores import ArangoFAQStore, ArangoTicketStore

__all__ = [
    "CentroidClusterer",
    "ClusteringOutcome",
    "cosine_dissimilarity",
    "EngineSettings",
    "RunConfig",
    "TicketEmbedder",
    "VectorizationResult",
    "vectorize_tickets",
    "FAQGenerationEngine",
    "FAQEngineError",
    "NotFoundError",
    "PersistenceError",
    "RunTimeoutError",
    "UpstreamDependencyError",
    "ValidationError",
    "FAQMaterializer",
    "should_publish",
    "CallbackListener",
    "WebhookListener",
    "ArangoFAQStore",
    "ArangoTicketStore",
]
