from fastapi import APIRouter
from ..logging_setup import get_logger
from ..preferences import get_bounce_threshold, set_bounce_threshold
from ..schema import PrefsIn

logger = get_logger("personalizer.routes.prefs")

router = APIRouter(prefix="/users/{user_id}/prefs", tags=["Preferences"])

@router.get("")
def read_prefs(user_id: str):
    return {"bounce_threshold": get_bounce_threshold(user_id)}

@router.post("")
def update_prefs(user_id: str, body: PrefsIn):
    logger.info("Updating preferences", extra={"user_id": user_id})
    if body.bounce_threshold is not None:
        set_bounce_threshold(user_id, body.bounce_threshold)
    return {"ok": True, "bounce_threshold": get_bounce_threshold(user_id)}
