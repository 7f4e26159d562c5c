from typing import Optional
from fastapi import APIRouter
from ..logging_setup import get_logger
from ..feedback import (
    EXPLICIT,
    IMPLICIT,
    delete_feedback,
    get_feedback,
    get_feedback_stats,
    record_article_exit,
    record_article_view,
    record_explicit_feedback,
)
from ..models import ArticleFeedback
from ..patterns import update_user_patterns
from ..schema import ArticleExitIn, ArticleView, ExplicitFeedbackIn, FeedbackStats

logger = get_logger("personalizer.routes.feedback")

router = APIRouter(prefix="/users/{user_id}", tags=["Feedback"])

@router.get("/articles/{article_id}/feedback")
def read_feedback(user_id: str, article_id: str):
    return {"feedback": get_feedback(user_id, article_id)}

@router.post("/articles/{article_id}/feedback")
def post_feedback(user_id: str, article_id: str, body: ExplicitFeedbackIn):
    """Thumbs up (1.0) or down (-1.0); patterns are updated right away."""
    logger.info("Explicit feedback received", extra={"user_id": user_id, "article_id": article_id, "value": body.value})
    feedback = record_explicit_feedback(user_id, article_id, body.value)
    report = update_user_patterns(user_id, article_id, feedback.value)
    return {"feedback": feedback, "patterns": report}

@router.delete("/articles/{article_id}/feedback")
def remove_feedback(user_id: str, article_id: str):
    delete_feedback(user_id, article_id)
    return {"ok": True}

@router.post("/articles/{article_id}/view", response_model=ArticleView)
def article_view(user_id: str, article_id: str):
    return record_article_view(user_id, article_id)

@router.post("/articles/{article_id}/exit")
def article_exit(user_id: str, article_id: str, body: ArticleExitIn):
    """Reading-time telemetry; a bounce or completion becomes implicit feedback."""
    feedback: Optional[ArticleFeedback] = record_article_exit(
        user_id, article_id, body.time_spent, body.estimated_time
    )
    report = None
    if feedback is not None and feedback.kind == IMPLICIT:
        report = update_user_patterns(user_id, article_id, feedback.value)
    return {
        "feedback": feedback,
        "signal_detected": feedback is not None and feedback.kind != EXPLICIT,
        "patterns": report,
    }

@router.get("/feedback/stats", response_model=FeedbackStats)
def feedback_stats(user_id: str):
    return get_feedback_stats(user_id)
