from typing import Optional
from fastapi import APIRouter, Query
from ..logging_setup import get_logger
from ..patterns import get_pattern_stats, get_user_patterns, reset_user_patterns
from ..schema import PatternOut, PatternStats

logger = get_logger("personalizer.routes.patterns")

router = APIRouter(prefix="/users/{user_id}/patterns", tags=["Patterns"])

@router.get("")
def list_patterns(user_id: str, limit: Optional[int] = Query(None, ge=1)):
    patterns = get_user_patterns(user_id, limit)
    return {
        "patterns": [
            PatternOut(keyword=p.keyword, weight=p.weight, feedback_count=p.feedback_count, updated_at=p.updated_at)
            for p in patterns
        ]
    }

@router.get("/stats", response_model=PatternStats)
def pattern_stats(user_id: str):
    return get_pattern_stats(user_id)

@router.post("/reset")
def reset_patterns(user_id: str):
    removed = reset_user_patterns(user_id)
    return {"ok": True, "removed": removed}
