"""
feedback.py
===========
Turns thumbs up/down and reading telemetry into signed feedback values.

Two tiers:
- explicit: the user pressed a button. Stored as +1.0 / -1.0 and always wins.
- implicit: inferred from how long an article stayed open compared to its
  estimated reading time. Completion (>= 90%) stores +0.5, a bounce (below the
  user's threshold) stores -0.5, anything in between stores nothing.

Feedback is one row per (user, article). Implicit writes never replace an
explicit row, and that rule is enforced inside the upsert statement itself.
"""

from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete
from sqlmodel import select

from .articles import get_article_text
from .clock import utcnow
from .errors import FeedbackNotFound, InvalidFeedbackValue, InvalidReadingTime
from .logging_setup import get_logger
from .models import ArticleFeedback
from .preferences import get_bounce_threshold
from .schema import ArticleView, FeedbackStats
from .store import engine, get_session, upsert_insert
from .text import estimate_reading_seconds

logger = get_logger("personalizer.feedback")

EXPLICIT = "explicit"
IMPLICIT = "implicit"

THUMBS_UP = 1.0
THUMBS_DOWN = -1.0
EXPLICIT_VALUES = (THUMBS_UP, THUMBS_DOWN)

COMPLETION_THRESHOLD = 0.9
COMPLETION_VALUE = 0.5
BOUNCE_VALUE = -0.5


def _validate_explicit(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value not in EXPLICIT_VALUES:
        raise InvalidFeedbackValue(value)
    return float(value)


def get_feedback(user_id: str, article_id: str) -> Optional[ArticleFeedback]:
    with get_session() as s:
        return s.exec(
            select(ArticleFeedback).where(
                ArticleFeedback.user_id == user_id,
                ArticleFeedback.article_id == article_id,
            )
        ).first()


def record_explicit_feedback(user_id: str, article_id: str, value: float) -> ArticleFeedback:
    """Store a thumbs up (1.0) or down (-1.0), replacing any earlier feedback for the pair."""
    value = _validate_explicit(value)
    article = get_article_text(article_id)
    estimated_time = estimate_reading_seconds(article.content)
    now = utcnow()

    t = ArticleFeedback.__table__
    stmt = upsert_insert(t).values(
        user_id=user_id,
        article_id=article_id,
        kind=EXPLICIT,
        value=value,
        time_spent=None,
        estimated_time=estimated_time,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[t.c.user_id, t.c.article_id],
        set_={
            "kind": stmt.excluded.kind,
            "value": stmt.excluded.value,
            "time_spent": stmt.excluded.time_spent,
            "estimated_time": stmt.excluded.estimated_time,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    with engine.begin() as conn:
        conn.execute(stmt)

    logger.info("EXPLICIT_FEEDBACK", extra={"user_id": user_id, "article_id": article_id, "value": value})
    return get_feedback(user_id, article_id)


def record_article_view(user_id: str, article_id: str) -> ArticleView:
    """
    Called when an article is opened. Nothing is stored; the caller times the
    visit on its side and reports back through record_article_exit().
    """
    article = get_article_text(article_id)
    view = ArticleView(viewed_at=utcnow(), estimated_time=estimate_reading_seconds(article.content))
    logger.debug("ARTICLE_VIEW", extra={"user_id": user_id, "article_id": article_id, "estimated_time": view.estimated_time})
    return view


def classify_reading(time_spent: float, estimated_time: float, bounce_threshold: float) -> Optional[float]:
    """Implicit value for one visit: +0.5 completion, -0.5 bounce, None for no signal."""
    if estimated_time <= 0:
        raise InvalidReadingTime(f"estimated_time must be positive, got {estimated_time}")
    if time_spent < 0:
        raise InvalidReadingTime(f"time_spent must not be negative, got {time_spent}")

    ratio = time_spent / estimated_time
    if ratio >= COMPLETION_THRESHOLD:
        return COMPLETION_VALUE
    if ratio < bounce_threshold:
        return BOUNCE_VALUE
    return None


def record_article_exit(
    user_id: str,
    article_id: str,
    time_spent: float,
    estimated_time: float,
) -> Optional[ArticleFeedback]:
    """
    Called when an article is closed.

    Returns the stored feedback row: the new implicit one, or the untouched
    explicit one if the user already rated the article. Returns None when the
    visit was neither a bounce nor a completion.
    Raises ArticleNotFound for an unknown article before anything is written.
    """
    get_article_text(article_id)
    bounce_threshold = get_bounce_threshold(user_id)
    value = classify_reading(time_spent, estimated_time, bounce_threshold)

    existing = get_feedback(user_id, article_id)
    if existing is not None and existing.kind == EXPLICIT:
        logger.debug("IMPLICIT_SKIPPED_EXPLICIT_EXISTS", extra={"user_id": user_id, "article_id": article_id})
        return existing

    if value is None:
        logger.debug(
            "IMPLICIT_NO_SIGNAL",
            extra={"user_id": user_id, "article_id": article_id, "ratio": round(time_spent / estimated_time, 3)},
        )
        return None

    now = utcnow()
    t = ArticleFeedback.__table__
    stmt = upsert_insert(t).values(
        user_id=user_id,
        article_id=article_id,
        kind=IMPLICIT,
        value=value,
        time_spent=time_spent,
        estimated_time=estimated_time,
        created_at=now,
        updated_at=now,
    )
    # An explicit row written after the read above still wins
    stmt = stmt.on_conflict_do_update(
        index_elements=[t.c.user_id, t.c.article_id],
        set_={
            "kind": stmt.excluded.kind,
            "value": stmt.excluded.value,
            "time_spent": stmt.excluded.time_spent,
            "estimated_time": stmt.excluded.estimated_time,
            "updated_at": stmt.excluded.updated_at,
        },
        where=t.c.kind != EXPLICIT,
    )
    with engine.begin() as conn:
        conn.execute(stmt)

    stored = get_feedback(user_id, article_id)
    logger.info(
        "IMPLICIT_FEEDBACK",
        extra={
            "user_id": user_id,
            "article_id": article_id,
            "value": value,
            "signal": "completion" if value > 0 else "bounce",
            "kept_explicit": stored is not None and stored.kind == EXPLICIT,
        },
    )
    return stored


def delete_feedback(user_id: str, article_id: str) -> None:
    t = ArticleFeedback.__table__
    with engine.begin() as conn:
        result = conn.execute(delete(t).where(t.c.user_id == user_id, t.c.article_id == article_id))
    if result.rowcount == 0:
        raise FeedbackNotFound(user_id, article_id)
    logger.info("FEEDBACK_DELETED", extra={"user_id": user_id, "article_id": article_id})


def get_user_feedback(user_id: str, since: Optional[datetime] = None) -> List[ArticleFeedback]:
    """All feedback of a user, newest first; optionally only rows created at or after `since`."""
    query = select(ArticleFeedback).where(ArticleFeedback.user_id == user_id)
    if since is not None:
        query = query.where(ArticleFeedback.created_at >= since)
    with get_session() as s:
        return list(s.exec(query.order_by(ArticleFeedback.created_at.desc())).all())


def get_feedback_stats(user_id: str) -> FeedbackStats:
    rows = get_user_feedback(user_id)

    def count(kind: str, value: float) -> int:
        return sum(1 for f in rows if f.kind == kind and f.value == value)

    times = [f.time_spent for f in rows if f.time_spent is not None]
    return FeedbackStats(
        total_feedback=len(rows),
        thumbs_up=count(EXPLICIT, THUMBS_UP),
        thumbs_down=count(EXPLICIT, THUMBS_DOWN),
        bounces=count(IMPLICIT, BOUNCE_VALUE),
        completions=count(IMPLICIT, COMPLETION_VALUE),
        average_time_spent=(sum(times) / len(times)) if times else None,
    )
