"""
Engine wiring from environment variables (API and CLI entry points)
"""

import os
from typing import Optional

import structlog

from .config import EngineSettings
from .embedder import TicketEmbedder
from .engine import FAQGenerationEngine
from .notifier import WebhookListener
from .stores import ArangoFAQStore, ArangoTicketStore

logger = structlog.get_logger()

# Configuration
ARANGODB_HOST = os.getenv("ARANGODB_HOST", "localhost")
ARANGODB_PORT = int(os.getenv("ARANGODB_PORT", "8529"))
ARANGODB_DB = os.getenv("ARANGODB_DB", "tfe")
ARANGODB_USER = os.getenv("ARANGODB_USER", "root")
ARANGODB_PASSWORD = os.getenv("ARANGODB_PASSWORD", "")

OLLAMA_URL = os.getenv("OLLAMA_URL", "http://localhost:11434")
EMBED_MODEL = os.getenv("EMBED_MODEL", "nomic-embed-text")
EMBED_LOCAL = os.getenv("EMBED_LOCAL", "").lower() in ("1", "true", "yes")

FAQ_SITE_WEBHOOK_URL = os.getenv("FAQ_SITE_WEBHOOK_URL")


def build_engine(
    ollama_url: Optional[str] = None,
    use_local: Optional[bool] = None,
) -> FAQGenerationEngine:
    """Create an engine backed by ArangoDB and Ollama"""
    arango = {
        "host": ARANGODB_HOST,
        "port": ARANGODB_PORT,
        "database": ARANGODB_DB,
        "username": ARANGODB_USER,
        "password": ARANGODB_PASSWORD,
    }
    embedder = TicketEmbedder(
        ollama_url=ollama_url or OLLAMA_URL,
        model=EMBED_MODEL,
        use_local=EMBED_LOCAL if use_local is None else use_local,
    )
    listener = WebhookListener(FAQ_SITE_WEBHOOK_URL) if FAQ_SITE_WEBHOOK_URL else None
    logger.info("Engine configured", arango_host=ARANGODB_HOST, ollama_url=embedder.ollama_url,
                local_embeddings=embedder.use_local, webhook=bool(listener))
    return FAQGenerationEngine(
        ticket_store=ArangoTicketStore(**arango),
        embedder=embedder,
        faq_store=ArangoFAQStore(**arango),
        listener=listener,
        settings=EngineSettings(),
    )
