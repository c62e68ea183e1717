"""
Confidence Scorer
Lexical cohesion of a cluster's titles, used as FAQ confidence
"""

import math
from collections import Counter
from typing import Sequence

# Number of shared title tokens that yields full cohesion
FULL_COHESION_TOKENS = 5
MIN_TOKEN_LENGTH = 3


def title_tokens(title: str) -> set[str]:
    """Distinct lowercase whitespace tokens longer than two characters"""
    return {word for word in title.lower().split() if len(word) >= MIN_TOKEN_LENGTH}


def common_tokens(titles: Sequence[str]) -> list[str]:
    """Tokens appearing in at least half of the titles (rounded up)"""
    if not titles:
        return []
    counts = Counter()
    for title in titles:
        counts.update(title_tokens(title))
    threshold = math.ceil(len(titles) * 0.5)
    return sorted(word for word, count in counts.items() if count >= threshold)


def cohesion_score(titles: Sequence[str]) -> float:
    """
    Cohesion in [0, 1]: shared-token count / 5, capped at 1.0.
    Single-member (or empty) clusters score 1.0.
    """
    if len(titles) < 2:
        return 1.0
    return min(1.0, len(common_tokens(titles)) / FULL_COHESION_TOKENS)
