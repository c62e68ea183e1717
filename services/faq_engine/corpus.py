"""
Corpus Selector
Fetches the bounded, eligible ticket set for one clustering run
"""

from datetime import datetime, timezone
from typing import Iterable

import structlog

from shared.schemas.faq import CorpusCriteria, DateRange
from shared.schemas.ticket import TicketRecord, TicketStatus

from .config import RunConfig
from .stores import TicketStore

logger = structlog.get_logger()


def is_eligible(ticket: TicketRecord) -> bool:
    """Resolved tickets with at least one public (non-internal) response"""
    return ticket.status == TicketStatus.RESOLVED and bool(ticket.public_responses)


def build_criteria(config: RunConfig) -> CorpusCriteria:
    return CorpusCriteria(
        app_id=config.app_id,
        date_range=config.date_range,
        categories=config.categories,
        limit=config.max_corpus_size,
    )


def select_corpus(store: TicketStore, config: RunConfig) -> list[TicketRecord]:
    """
    Fetch eligible tickets for the run, newest first, capped at max_corpus_size.

    The store's result is filtered again here so a permissive store cannot
    leak ineligible tickets into the run.

    Args:
        store: External ticket store
        config: Run configuration (app, date range, categories, cap)

    Returns:
        Ordered corpus; empty when nothing is eligible
    """
    criteria = build_criteria(config)
    fetched = store.fetch_resolved(criteria)
    corpus = filter_corpus(fetched, criteria)

    if len(corpus) < len(fetched):
        logger.info("Filtered ineligible tickets", fetched=len(fetched), kept=len(corpus))
    if not corpus:
        logger.warning("No eligible tickets for FAQ generation", app_id=config.app_id)
    else:
        logger.info("Corpus selected", app_id=config.app_id, size=len(corpus), cap=criteria.limit)
    return corpus


def filter_corpus(tickets: Iterable[TicketRecord], criteria: CorpusCriteria) -> list[TicketRecord]:
    """Apply eligibility, app, date and category filters; order newest first; cap"""
    allowed = set(criteria.categories) if criteria.categories else None
    seen: set[str] = set()
    kept = []
    for ticket in tickets:
        if ticket.id in seen:
            continue
        if ticket.app_id != criteria.app_id or not is_eligible(ticket):
            continue
        if criteria.date_range and not _in_range(ticket.created_at, criteria.date_range):
            continue
        if allowed is not None and ticket.category not in allowed:
            continue
        seen.add(ticket.id)
        kept.append(ticket)

    kept.sort(key=lambda t: as_utc(t.created_at), reverse=True)
    return kept[:criteria.limit]


def _in_range(moment: datetime, date_range: DateRange) -> bool:
    return as_utc(date_range.start_date) <= as_utc(moment) <= as_utc(date_range.end_date)


def as_utc(moment: datetime) -> datetime:
    """Naive timestamps are treated as UTC so mixed inputs compare"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
