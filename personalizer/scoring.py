"""
scoring.py
==========
Relevance scoring: how well an article fits one user's learned patterns.

    total = sum(pattern_weight(k) * relevance(k)) over keywords shared by the
            user's patterns and the article's top-30 keywords
    score = 1 / (1 + exp(-5 * total))

Single and batch scoring share `compute_article_score`; the batch path only
changes how cache entries, patterns and articles are fetched, never the math.
Results are cached per (user, article) until the user's patterns change.
"""

from __future__ import annotations
from typing import Dict, Iterable, List
import math

from .articles import get_article_text, get_article_texts
from .cache import CacheKeys, CacheTTL, cache_get, cache_get_many, cache_set, cache_set_many
from .keywords import article_text, extract_keywords
from .logging_setup import get_logger
from .patterns import get_user_patterns_map
from .schema import ArticleScore, MatchingPattern, ScoreLabel

logger = get_logger("personalizer.scoring")

SCORE_KEYWORDS = 30
SENSITIVITY = 5.0
NEUTRAL_SCORE = 0.5
TOP_MATCHES = 5
EXPLAIN_MATCHES = 3

HIGH = 0.7
MEDIUM = 0.5
LOW = 0.3


def generate_explanation(score: float, matches: List[MatchingPattern]) -> str:
    if not matches:
        return "No matching patterns"

    top = matches[:EXPLAIN_MATCHES]
    positive = ", ".join(m.keyword for m in top if m.contribution > 0)
    negative = ", ".join(m.keyword for m in top if m.contribution < 0)

    if score >= HIGH:
        if positive:
            return f"Highly relevant - matches your interests: {positive}"
        return "Highly relevant based on your preferences"
    if score >= MEDIUM:
        return "Moderately relevant based on your preferences"
    if score >= LOW:
        if negative:
            return f"Less relevant - contains topics you typically skip: {negative}"
        return "Less relevant based on your preferences"
    if negative:
        return f"Not relevant - contains topics you dislike: {negative}"
    return "Not relevant based on your preferences"


def compute_article_score(article_id: str, text: str, patterns: Dict[str, float]) -> ArticleScore:
    """Pure scoring of one article text against a pattern map."""
    if not patterns:
        return ArticleScore(
            article_id=article_id,
            score=NEUTRAL_SCORE,
            matching_patterns=[],
            explanation="No learned patterns yet",
        )

    total = 0.0
    matches: List[MatchingPattern] = []
    for keyword, relevance in extract_keywords(text, SCORE_KEYWORDS).items():
        weight = patterns.get(keyword)
        if weight is None:
            continue
        contribution = weight * relevance
        total += contribution
        matches.append(MatchingPattern(keyword=keyword, weight=weight, contribution=contribution))

    score = 1.0 / (1.0 + math.exp(-SENSITIVITY * total))
    matches.sort(key=lambda m: abs(m.contribution), reverse=True)

    return ArticleScore(
        article_id=article_id,
        score=score,
        matching_patterns=matches[:TOP_MATCHES],
        explanation=generate_explanation(score, matches),
    )


def score_article(user_id: str, article_id: str) -> ArticleScore:
    key = CacheKeys.article_score(user_id, article_id)
    cached = cache_get(key)
    if cached is not None:
        logger.debug("SCORE_CACHE_HIT", extra={"user_id": user_id, "article_id": article_id})
        return ArticleScore.model_validate(cached)

    article = get_article_text(article_id)
    result = compute_article_score(article_id, article_text(article), get_user_patterns_map(user_id))

    cache_set(key, result.model_dump(mode="json"), CacheTTL.ARTICLE_SCORE)
    return result


def score_article_batch(user_id: str, article_ids: Iterable[str]) -> Dict[str, ArticleScore]:
    """
    Score many articles at once; each value equals score_article(user_id, id).

    Ids whose article does not exist are left out of the result.
    """
    ids = list(dict.fromkeys(article_ids))
    if not ids:
        return {}

    scores: Dict[str, ArticleScore] = {}
    cached = cache_get_many([CacheKeys.article_score(user_id, i) for i in ids])
    misses: List[str] = []
    for article_id, hit in zip(ids, cached):
        if hit is not None:
            scores[article_id] = ArticleScore.model_validate(hit)
        else:
            misses.append(article_id)

    if misses:
        articles = get_article_texts(misses)
        patterns = get_user_patterns_map(user_id) if articles else {}
        fresh: List[ArticleScore] = [
            compute_article_score(article_id, article_text(articles[article_id]), patterns)
            for article_id in misses
            if article_id in articles
        ]
        cache_set_many([
            (CacheKeys.article_score(user_id, r.article_id), r.model_dump(mode="json"), CacheTTL.ARTICLE_SCORE)
            for r in fresh
        ])
        for r in fresh:
            scores[r.article_id] = r

        missing = len(misses) - len(fresh)
        if missing:
            logger.info("SCORE_BATCH_MISSING_ARTICLES", extra={"user_id": user_id, "missing": missing})

    logger.debug(
        "SCORE_BATCH_DONE",
        extra={"user_id": user_id, "requested": len(ids), "cache_hits": len(ids) - len(misses)},
    )
    # Request order
    return {i: scores[i] for i in ids if i in scores}


# ---- Helpers for list views ----

def score_label(result: ArticleScore) -> ScoreLabel:
    if result.score >= HIGH:
        color, label = "green", "High"
    elif result.score >= MEDIUM:
        color, label = "blue", "Medium"
    elif result.score >= LOW:
        color, label = "yellow", "Low"
    else:
        color, label = "red", "Very Low"

    tooltip = result.explanation
    if result.matching_patterns:
        lines = [
            f"- {m.keyword} ({'+' if m.contribution > 0 else ''}{m.contribution * 100:.1f}%)"
            for m in result.matching_patterns[:EXPLAIN_MATCHES]
        ]
        tooltip = f"{result.explanation}\n\nTop patterns:\n" + "\n".join(lines)
    return ScoreLabel(label=label, color=color, tooltip=tooltip)


def filter_articles_by_score(user_id: str, article_ids: List[str], min_score: float = 0.4) -> List[str]:
    scores = score_article_batch(user_id, article_ids)
    return [i for i in article_ids if i in scores and scores[i].score >= min_score]


def sort_articles_by_score(user_id: str, article_ids: List[str], descending: bool = True) -> List[str]:
    scores = score_article_batch(user_id, article_ids)
    return sorted(
        article_ids,
        key=lambda i: scores[i].score if i in scores else NEUTRAL_SCORE,
        reverse=descending,
    )
