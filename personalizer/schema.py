from datetime import datetime
from pydantic import BaseModel, Field
from typing import Dict, List, Optional

# ---- Request bodies ----

class ExplicitFeedbackIn(BaseModel):
    value: float      # 1.0 (thumbs up) | -1.0 (thumbs down)

class ArticleExitIn(BaseModel):
    time_spent: float = Field(ge=0)       # seconds on the article
    estimated_time: float = Field(gt=0)   # seconds, as returned by /view

class ScoresIn(BaseModel):
    article_ids: List[str]

class PrefsIn(BaseModel):
    bounce_threshold: Optional[float] = None

# ---- Results ----

class ArticleView(BaseModel):
    viewed_at: datetime
    estimated_time: float

class MatchingPattern(BaseModel):
    keyword: str
    weight: float
    contribution: float

class ArticleScore(BaseModel):
    article_id: str
    score: float
    matching_patterns: List[MatchingPattern] = []
    explanation: str

class ScoreLabel(BaseModel):
    label: str
    color: str
    tooltip: str

class PatternOut(BaseModel):
    keyword: str
    weight: float
    feedback_count: int
    updated_at: datetime

class PatternStats(BaseModel):
    total_patterns: int
    positive_patterns: int
    negative_patterns: int
    strongest_positive: Optional[PatternOut] = None
    strongest_negative: Optional[PatternOut] = None

class PatternUpdateReport(BaseModel):
    user_id: str
    article_id: str
    updated: List[str] = []
    failed: Dict[str, str] = {}
    decayed: int = 0
    removed: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed

class FeedbackStats(BaseModel):
    total_feedback: int
    thumbs_up: int
    thumbs_down: int
    bounces: int
    completions: int
    average_time_spent: Optional[float] = None

class DecayJobResult(BaseModel):
    users_processed: int
    errors: int
