"""
patterns.py
===========
The per-user pattern store (keyword -> signed weight) and the updater that
folds one feedback event into it.

Every keyword contribution is a single INSERT ... ON CONFLICT DO UPDATE
statement in its own transaction. Two feedback events hitting the same keyword
at the same time therefore both land (no read-modify-write), and one failing
keyword never takes its siblings down with it.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import delete
from sqlmodel import select

from .articles import get_article_text
from .cache import invalidate_user_scores
from .clock import utcnow
from .config import MAX_PATTERNS, PATTERN_WRITE_WORKERS
from .keywords import article_text, extract_keywords
from .logging_setup import get_logger
from .maintenance import apply_pattern_decay, cleanup_patterns
from .models import UserPattern
from .schema import PatternOut, PatternStats, PatternUpdateReport
from .store import engine, get_session, upsert_insert

logger = get_logger("personalizer.patterns")

UPDATE_KEYWORDS = 15
# Keeps any single feedback event from dominating a pattern
DAMPENING = 0.1


# ---- Store ----

def increment_or_create(user_id: str, keyword: str, delta: float, now: Optional[datetime] = None) -> None:
    """
    Atomically add `delta` to the (user, keyword) pattern, creating it if absent.

    A feedback-driven write also restarts the decay clock: updated_at moves to
    `now` and the folded-in decay periods go back to zero.
    """
    now = now or utcnow()
    t = UserPattern.__table__
    stmt = upsert_insert(t).values(
        user_id=user_id,
        keyword=keyword,
        weight=delta,
        feedback_count=1,
        decay_periods=0,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[t.c.user_id, t.c.keyword],
        set_={
            "weight": t.c.weight + stmt.excluded.weight,
            "feedback_count": t.c.feedback_count + 1,
            "decay_periods": 0,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    with engine.begin() as conn:
        conn.execute(stmt)


def get_user_patterns(user_id: str, limit: Optional[int] = None) -> List[UserPattern]:
    query = (
        select(UserPattern)
        .where(UserPattern.user_id == user_id)
        .order_by(UserPattern.weight.desc(), UserPattern.keyword)
    )
    if limit is not None:
        query = query.limit(limit)
    with get_session() as s:
        return list(s.exec(query).all())


def get_user_patterns_map(user_id: str) -> Dict[str, float]:
    with get_session() as s:
        rows = s.exec(
            select(UserPattern.keyword, UserPattern.weight).where(UserPattern.user_id == user_id)
        ).all()
    return {keyword: weight for keyword, weight in rows}


def reset_user_patterns(user_id: str) -> int:
    """Forget everything learned about a user. Returns the number of patterns removed."""
    t = UserPattern.__table__
    with engine.begin() as conn:
        removed = conn.execute(delete(t).where(t.c.user_id == user_id)).rowcount
    invalidate_user_scores(user_id)
    logger.info("PATTERNS_RESET", extra={"user_id": user_id, "removed": removed})
    return removed


def _pattern_out(p: Optional[UserPattern]) -> Optional[PatternOut]:
    if p is None:
        return None
    return PatternOut(keyword=p.keyword, weight=p.weight, feedback_count=p.feedback_count, updated_at=p.updated_at)


def get_pattern_stats(user_id: str) -> PatternStats:
    patterns = get_user_patterns(user_id)
    positive = [p for p in patterns if p.weight > 0]
    negative = [p for p in patterns if p.weight < 0]
    return PatternStats(
        total_patterns=len(patterns),
        positive_patterns=len(positive),
        negative_patterns=len(negative),
        strongest_positive=_pattern_out(max(positive, key=lambda p: p.weight, default=None)),
        strongest_negative=_pattern_out(min(negative, key=lambda p: p.weight, default=None)),
    )


# ---- Updater ----

def _write_keyword(user_id: str, keyword: str, delta: float, now: datetime) -> Optional[str]:
    """One keyword's write. Returns None on success, or a short error description."""
    try:
        increment_or_create(user_id, keyword, delta, now)
        return None
    except Exception as e:
        logger.exception(
            "PATTERN_WRITE_FAILED",
            extra={"handled": True, "user_id": user_id, "keyword": keyword, "error": type(e).__name__},
        )
        return f"{type(e).__name__}: {e}"


def update_user_patterns(user_id: str, article_id: str, feedback_value: float) -> PatternUpdateReport:
    """
    Fold one feedback event into the user's patterns.

    - extract the article's top keywords
    - add feedback_value * relevance * DAMPENING to each keyword's weight
      (independent atomic writes, run concurrently, reported one by one)
    - decay and clean the user's patterns
    - drop the user's cached scores
    """
    article = get_article_text(article_id)
    keywords = extract_keywords(article_text(article), UPDATE_KEYWORDS)
    now = utcnow()

    deltas = {kw: feedback_value * relevance * DAMPENING for kw, relevance in keywords.items()}
    # A zero delta would create a weightless pattern
    deltas = {kw: d for kw, d in deltas.items() if d != 0}

    report = PatternUpdateReport(user_id=user_id, article_id=article_id)
    if deltas:
        workers = max(1, min(PATTERN_WRITE_WORKERS, len(deltas)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pattern-write") as pool:
            outcomes = dict(zip(
                deltas,
                pool.map(lambda kw: _write_keyword(user_id, kw, deltas[kw], now), deltas),
            ))
        report.updated = [kw for kw, err in outcomes.items() if err is None]
        report.failed = {kw: err for kw, err in outcomes.items() if err is not None}

    report.decayed = apply_pattern_decay(user_id)
    report.removed = cleanup_patterns(user_id, MAX_PATTERNS)
    invalidate_user_scores(user_id)

    log = logger.warning if report.failed else logger.info
    log(
        "PATTERNS_UPDATED",
        extra={
            "user_id": user_id,
            "article_id": article_id,
            "feedback_value": feedback_value,
            "keywords": len(deltas),
            "updated": len(report.updated),
            "failed": len(report.failed),
            "decayed": report.decayed,
            "removed": report.removed,
        },
    )
    return report
