from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field

from .clock import utcnow

# Timestamps are naive UTC; plain DateTime columns store them as-is

class Article(SQLModel, table=True):
    # Owned by the surrounding aggregator; the engine only reads it
    id: str = Field(primary_key=True)
    title: str = ""
    excerpt: Optional[str] = None
    content: str = ""
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

class UserPattern(SQLModel, table=True):
    __tablename__ = "user_pattern"
    __table_args__ = (UniqueConstraint("user_id", "keyword", name="uq_user_pattern_user_keyword"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    keyword: str
    weight: float  # signed, unbounded
    feedback_count: int = 1
    # 30-day decay periods already folded into weight since updated_at
    decay_periods: int = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

class ArticleFeedback(SQLModel, table=True):
    __tablename__ = "article_feedback"
    __table_args__ = (UniqueConstraint("user_id", "article_id", name="uq_article_feedback_user_article"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    article_id: str
    kind: str  # explicit | implicit
    value: float  # +1 / -1 explicit, +0.5 / -0.5 implicit
    time_spent: Optional[float] = None  # seconds
    estimated_time: Optional[float] = None  # seconds
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

class UserPrefs(SQLModel, table=True):
    __tablename__ = "user_prefs"

    user_id: str = Field(primary_key=True)
    bounce_threshold: float = 0.25
