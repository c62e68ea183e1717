"""
Representative & Tag Selector
Picks the best question and answer for a cluster and derives its tags
"""

import re
from collections import Counter
from typing import Iterable, Optional, Sequence

import structlog

from shared.schemas.faq import MAX_TAGS, ClusterCandidate, FAQCandidate
from shared.schemas.ticket import TicketRecord, TicketResponse

from .corpus import as_utc

logger = structlog.get_logger()

QUESTION_MARKS = ("?", "？")
MAX_ANSWER_TAGS = 2

# Bullet ("- ", "* ", "・", "•") or numbered ("1. ", "2) ") list markers at line start
STRUCTURE_PATTERN = re.compile(r"^\s*(?:[-*+]\s+|[•・]\s*|\d+[.)]\s+)", re.MULTILINE)


def contains_term(text: str, term: str) -> bool:
    """
    Case-insensitive term match.
    ASCII terms match whole words; other scripts (no word spacing) match as substrings.
    """
    if not term:
        return False
    if term.isascii():
        return re.search(rf"(?<!\w){re.escape(term)}(?!\w)", text, re.IGNORECASE) is not None
    return term.lower() in text.lower()


def question_score(ticket: TicketRecord, interrogative_keywords: Iterable[str]) -> int:
    """+10 for a 10-100 char title, +5 for a question mark or interrogative keyword"""
    title = ticket.title
    score = 0
    if 10 <= len(title) <= 100:
        score += 10
    if any(mark in title for mark in QUESTION_MARKS) or any(
        contains_term(title, word) for word in interrogative_keywords
    ):
        score += 5
    return score


def answer_score(response: TicketResponse) -> int:
    """+10 for 50-1000 chars, +5 if public, +3 for list structure"""
    score = 0
    if 50 <= len(response.content) <= 1000:
        score += 10
    if response.is_public:
        score += 5
    if STRUCTURE_PATTERN.search(response.content):
        score += 3
    return score


def select_representative(
    tickets: Sequence[TicketRecord],
    interrogative_keywords: Iterable[str],
) -> Optional[TicketRecord]:
    """Highest question score; ties go to the earliest created ticket"""
    if not tickets:
        return None
    keywords = tuple(interrogative_keywords)
    return min(tickets, key=lambda t: (-question_score(t, keywords), as_utc(t.created_at)))


def select_best_response(tickets: Sequence[TicketRecord]) -> Optional[TicketResponse]:
    """Highest answer score across every member's responses; ties keep the first seen"""
    best: Optional[TicketResponse] = None
    best_score = -1
    for ticket in tickets:
        for response in ticket.responses:
            score = answer_score(response)
            if score > best_score:
                best, best_score = response, score
    return best


def dominant_category(tickets: Sequence[TicketRecord]) -> Optional[str]:
    """Most common category among members; ties keep the first seen"""
    counts = Counter(t.category for t in tickets if t.category)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def match_vocabulary(text: str, vocabulary: Iterable[str]) -> list[str]:
    return [term for term in vocabulary if contains_term(text, term)]


def derive_tags(
    category: Optional[str],
    question: str,
    answer: str,
    vocabulary: Iterable[str],
) -> list[str]:
    """
    Category first, then vocabulary hits in the question, then up to two from
    the answer. Deduplicated case-insensitively, capped at MAX_TAGS.
    """
    vocabulary = tuple(vocabulary)
    candidates: list[str] = []
    if category:
        candidates.append(category)
    candidates.extend(match_vocabulary(question, vocabulary))
    candidates.extend(match_vocabulary(answer, vocabulary)[:MAX_ANSWER_TAGS])
    return dedupe_tags(candidates)


def dedupe_tags(tags: Iterable[str]) -> list[str]:
    """Drop blanks and case-insensitive duplicates, keep first spelling, cap at MAX_TAGS"""
    seen: set[str] = set()
    unique = []
    for tag in tags:
        tag = tag.strip()
        key = tag.casefold()
        if not tag or key in seen:
            continue
        seen.add(key)
        unique.append(tag)
    return unique[:MAX_TAGS]


def build_faq_candidate(
    cluster: ClusterCandidate,
    members: Sequence[TicketRecord],
    interrogative_keywords: Iterable[str],
    tag_vocabulary: Iterable[str],
) -> Optional[FAQCandidate]:
    """
    Derive an FAQCandidate from a validated cluster.

    Returns:
        None when the cluster has no usable question or answer
    """
    representative = select_representative(members, interrogative_keywords)
    response = select_best_response(members)
    if representative is None or response is None:
        logger.warning("Cluster has no usable question/answer", cluster_id=cluster.id)
        return None

    category = dominant_category(members)
    return FAQCandidate(
        id=cluster.id,
        representative_question=representative.title,
        suggested_answer=response.content,
        category=category,
        tags=derive_tags(category, representative.title, response.content, tag_vocabulary),
        confidence=cluster.cohesion,
        member_ids=list(cluster.member_ids),
    )
