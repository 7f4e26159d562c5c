# personalizer/articles.py
from __future__ import annotations
from typing import Dict, Iterable

from sqlmodel import select

from .errors import ArticleNotFound
from .models import Article
from .store import get_session


def get_article_text(article_id: str) -> Article:
    """Load one article (title, excerpt, content) or raise ArticleNotFound."""
    with get_session() as s:
        article = s.get(Article, article_id)
    if article is None:
        raise ArticleNotFound(article_id)
    return article


def get_article_texts(article_ids: Iterable[str]) -> Dict[str, Article]:
    """Load many articles in one query. Missing ids are simply absent from the result."""
    ids = list(dict.fromkeys(article_ids))
    if not ids:
        return {}
    with get_session() as s:
        rows = s.exec(select(Article).where(Article.id.in_(ids))).all()
    return {a.id: a for a in rows}
