"""
maintenance.py
==============
Keeps each user's pattern store fresh (decay) and small (cleanup).

Both operations depend only on what is stored (weights, updated_at,
decay_periods), never on how often they ran. That lets them run right after
every feedback write and also from the daily sweep, with the two interleaving
freely.

Decay model: a pattern untouched for `d` whole days carries
    weight_at_last_feedback * 0.9 ** (d // 30)
`updated_at` is left alone by decay; `decay_periods` records how many factors
are already folded into the stored weight, so a second call on the same day
is a no-op.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import List, Optional
import time

from sqlalchemy import delete, func, update
from sqlmodel import select

from .cache import invalidate_user_scores
from .clock import utcnow
from .config import MAX_PATTERNS
from .logging_setup import get_logger
from .models import UserPattern
from .schema import DecayJobResult
from .store import engine, get_session

logger = get_logger("personalizer.maintenance")

DECAY_PERIOD_DAYS = 30
DECAY_FACTOR = 0.9
NOISE_BAND = 0.1  # |weight| strictly below this is deleted


def decay_periods_elapsed(updated_at: datetime, now: datetime) -> int:
    days = int((now - updated_at).total_seconds() // 86400)
    return max(0, days) // DECAY_PERIOD_DAYS


def apply_pattern_decay(user_id: str, now: Optional[datetime] = None) -> int:
    """Decay every pattern older than one period. Returns the number of rows changed."""
    now = now or utcnow()
    cutoff = now - timedelta(days=DECAY_PERIOD_DAYS)

    with get_session() as s:
        stale = s.exec(
            select(UserPattern).where(UserPattern.user_id == user_id, UserPattern.updated_at <= cutoff)
        ).all()

    t = UserPattern.__table__
    changed = 0
    with engine.begin() as conn:
        for p in stale:
            periods = decay_periods_elapsed(p.updated_at, now)
            pending = periods - p.decay_periods
            if pending <= 0:
                continue
            # Conditional on the row we read: a concurrent feedback write or
            # another sweep that got here first makes this a no-op
            result = conn.execute(
                update(t)
                .where(
                    t.c.id == p.id,
                    t.c.updated_at == p.updated_at,
                    t.c.decay_periods == p.decay_periods,
                )
                .values(weight=t.c.weight * (DECAY_FACTOR ** pending), decay_periods=periods)
            )
            changed += result.rowcount

    if changed:
        invalidate_user_scores(user_id)
        logger.info("DECAY_APPLIED", extra={"user_id": user_id, "patterns": changed})
    return changed


def cleanup_patterns(user_id: str, max_patterns: int = MAX_PATTERNS) -> int:
    """
    Delete noise (-0.1 < weight < 0.1), then keep only the `max_patterns`
    strongest patterns by |weight|. Returns the number of rows deleted.
    """
    if max_patterns < 0:
        raise ValueError(f"max_patterns must be >= 0, got {max_patterns}")

    t = UserPattern.__table__
    with engine.begin() as conn:
        noise = conn.execute(
            delete(t).where(t.c.user_id == user_id, t.c.weight > -NOISE_BAND, t.c.weight < NOISE_BAND)
        ).rowcount

        remaining = conn.execute(select(func.count()).select_from(t).where(t.c.user_id == user_id)).scalar_one()
        trimmed = 0
        if remaining > max_patterns:
            keep = (
                select(t.c.id)
                .where(t.c.user_id == user_id)
                .order_by(func.abs(t.c.weight).desc(), t.c.keyword)
                .limit(max_patterns)
            )
            trimmed = conn.execute(
                delete(t).where(t.c.user_id == user_id, t.c.id.not_in(keep))
            ).rowcount

    removed = noise + trimmed
    if removed:
        invalidate_user_scores(user_id)
        logger.info(
            "CLEANUP_DONE",
            extra={"user_id": user_id, "noise_removed": noise, "trimmed": trimmed, "max_patterns": max_patterns},
        )
    return removed


def users_with_patterns() -> List[str]:
    with get_session() as s:
        return list(s.exec(select(UserPattern.user_id).distinct().order_by(UserPattern.user_id)).all())


def run_pattern_decay_for_user(user_id: str, now: Optional[datetime] = None) -> None:
    logger.info("USER_DECAY_START", extra={"user_id": user_id})
    decayed = apply_pattern_decay(user_id, now)
    removed = cleanup_patterns(user_id)
    logger.info("USER_DECAY_DONE", extra={"user_id": user_id, "decayed": decayed, "removed": removed})


def run_pattern_decay_job(now: Optional[datetime] = None) -> DecayJobResult:
    """
    Daily sweep: decay + cleanup for every user that has patterns.
    A failing user is logged and counted; the sweep carries on.
    """
    t0 = time.perf_counter()
    users = users_with_patterns()
    logger.info("DECAY_JOB_START", extra={"users": len(users)})

    processed = 0
    errors = 0
    for user_id in users:
        try:
            run_pattern_decay_for_user(user_id, now)
            processed += 1
        except Exception as e:
            errors += 1
            logger.exception(
                "DECAY_JOB_USER_FAILED",
                extra={"handled": True, "user_id": user_id, "error": type(e).__name__},
            )

    logger.info(
        "DECAY_JOB_DONE",
        extra={
            "users_processed": processed,
            "errors": errors,
            "elapsed_ms": round((time.perf_counter() - t0) * 1000),
        },
    )
    return DecayJobResult(users_processed=processed, errors=errors)
