# personalizer/errors.py
from __future__ import annotations


class PersonalizerError(Exception):
    """Base class for every error the engine raises on purpose."""


class NotFound(PersonalizerError):
    pass


class ArticleNotFound(NotFound):
    def __init__(self, article_id: str):
        self.article_id = article_id
        super().__init__(f"Article not found: {article_id}")


class FeedbackNotFound(NotFound):
    def __init__(self, user_id: str, article_id: str):
        self.user_id = user_id
        self.article_id = article_id
        super().__init__(f"No feedback from user {user_id} for article {article_id}")


class ValidationError(PersonalizerError, ValueError):
    pass


class InvalidFeedbackValue(ValidationError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid feedback value {value!r}. Must be 1.0 or -1.0")


class InvalidReadingTime(ValidationError):
    pass


class InvalidPreference(ValidationError):
    pass
