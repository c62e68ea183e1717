"""
FAQ Engine Exceptions

Errors raised by a clustering/materialization run. API and CLI boundaries
translate them into status codes and exit messages.
"""

from typing import Optional


class FAQEngineError(Exception):
    """Base exception for all FAQ engine errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(FAQEngineError):
    """Request rejected before any corpus fetch or persistence."""


class NotFoundError(FAQEngineError):
    """Requested application or cluster does not exist."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class UpstreamDependencyError(FAQEngineError):
    """Embedding backend failed for a single text."""


class PersistenceError(FAQEngineError):
    """FAQ store rejected or failed to persist a draft."""


class RunTimeoutError(FAQEngineError):
    """Caller deadline exceeded; partial work is discarded."""

    def __init__(self, stage: str, timeout: float):
        self.stage = stage
        self.timeout = timeout
        super().__init__(
            f"Run exceeded timeout of {timeout:.1f}s during {stage}",
            {"stage": stage, "timeout": timeout},
        )
