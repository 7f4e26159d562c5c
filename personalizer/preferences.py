# personalizer/preferences.py
from __future__ import annotations

from .config import DEFAULT_BOUNCE_THRESHOLD
from .errors import InvalidPreference
from .logging_setup import get_logger
from .models import UserPrefs
from .store import get_session

logger = get_logger("personalizer.preferences")

MIN_BOUNCE_THRESHOLD = 0.1
MAX_BOUNCE_THRESHOLD = 0.5


def get_bounce_threshold(user_id: str) -> float:
    """
    The user's resolved bounce threshold, or the system default.

    Anything that cascades (feed -> category -> user) must be resolved into
    this single row before the classifier runs.
    """
    with get_session() as s:
        prefs = s.get(UserPrefs, user_id)
    return prefs.bounce_threshold if prefs else DEFAULT_BOUNCE_THRESHOLD


def set_bounce_threshold(user_id: str, threshold: float) -> UserPrefs:
    if not (MIN_BOUNCE_THRESHOLD <= threshold <= MAX_BOUNCE_THRESHOLD):
        raise InvalidPreference(
            f"bounce_threshold must be between {MIN_BOUNCE_THRESHOLD} and {MAX_BOUNCE_THRESHOLD}"
        )
    with get_session() as s:
        prefs = s.get(UserPrefs, user_id) or UserPrefs(user_id=user_id)
        prefs.bounce_threshold = threshold
        s.add(prefs)
        s.commit()
        s.refresh(prefs)
    logger.info("PREFS_UPDATED", extra={"user_id": user_id, "bounce_threshold": threshold})
    return prefs
