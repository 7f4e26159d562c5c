# personalizer/routers/jobs.py
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, status
import os
from ..logging_setup import get_logger
from ..maintenance import run_pattern_decay_job
from ..schema import DecayJobResult

logger = get_logger("personalizer.routes.jobs")

router = APIRouter(prefix="/admin/jobs", tags=["Admin Jobs"])

# --- Simple API key gate for the external cron caller ---
def require_admin(x_api_key: Optional[str] = Header(default=None)) -> None:
    expected = os.getenv("ADMIN_API_KEY", "")
    if not expected:
        # Fail closed if the key was never configured
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfigured: ADMIN_API_KEY not set."
        )
    if x_api_key != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")

@router.post("/pattern-decay", response_model=DecayJobResult, summary="Run decay + cleanup for every user")
def pattern_decay(_: None = Depends(require_admin)):
    """
    Same sweep the daily scheduler runs. Safe to call at any time: decay and
    cleanup only depend on stored timestamps and weights.
    """
    logger.info("Manual pattern decay sweep requested")
    return run_pattern_decay_job()
