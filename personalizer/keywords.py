# personalizer/keywords.py
from __future__ import annotations
from collections import Counter
from typing import Dict

from .text import tokenize

# Raw-count bands: words seen a handful of times are the topical ones,
# very frequent words are mostly boilerplate.
SWEET_SPOT_MIN = 2
SWEET_SPOT_MAX = 10
SWEET_SPOT_BOOST = 1.5
FREQUENT_PENALTY = 0.5


def extract_keywords(text: str, max_keywords: int = 20) -> Dict[str, float]:
    """
    Rank the words of a single document by banded term frequency.

    Returns an insertion-ordered dict keyword -> score, highest score first,
    with at most `max_keywords` entries. Equal scores keep first-occurrence
    order. Empty or stop-word-only text yields {}.
    """
    if max_keywords <= 0:
        return {}

    counts = Counter(tokenize(text))
    total_words = sum(counts.values())
    if total_words == 0:
        return {}

    scored: Dict[str, float] = {}
    for word, count in counts.items():
        score = count / total_words
        if SWEET_SPOT_MIN <= count <= SWEET_SPOT_MAX:
            score *= SWEET_SPOT_BOOST
        elif count > SWEET_SPOT_MAX:
            score *= FREQUENT_PENALTY
        scored[word] = score

    ranked = sorted(scored.items(), key=lambda kv: kv[1], reverse=True)
    return dict(ranked[:max_keywords])


def article_text(article) -> str:
    """Title, excerpt and body joined the way every extractor caller expects."""
    return f"{article.title or ''} {article.excerpt or ''} {article.content or ''}"
