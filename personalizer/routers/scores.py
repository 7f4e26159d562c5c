from fastapi import APIRouter
from ..logging_setup import get_logger
from ..schema import ArticleScore, ScoresIn
from ..scoring import score_article, score_article_batch

logger = get_logger("personalizer.routes.scores")

router = APIRouter(prefix="/users/{user_id}", tags=["Scores"])

@router.get("/articles/{article_id}/score", response_model=ArticleScore)
def article_score(user_id: str, article_id: str):
    return score_article(user_id, article_id)

@router.post("/scores")
def article_scores(user_id: str, body: ScoresIn):
    scores = score_article_batch(user_id, body.article_ids)
    return {"scores": list(scores.values())}
