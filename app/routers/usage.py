"""
Usage endpoints:
- GET /api/usage/me: today's quota per analysis kind for the caller
- GET /api/usage/stats: Gemini calls, tokens and estimated cost over a period (admin)
"""
import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.auth import get_current_identity, get_current_identity_admin
from app.core.container import get_orchestrator
from app.database import get_db
from app.schemas.user import Identity, UsageSummaryResponse
from app.services.analysis_orchestrator import AnalysisOrchestrator
from app.services.api_usage import get_usage_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/usage", tags=["usage"])


@router.get("/me", response_model=UsageSummaryResponse)
async def my_usage(
    identity: Identity = Depends(get_current_identity),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Plan, daily limits and what is left today (UTC)."""
    return await orchestrator.usage_summary(identity)


@router.get("/stats")
def api_usage_stats(
    period: int = Query(30, ge=1, le=365, description="Days to look back"),
    _admin: Identity = Depends(get_current_identity_admin),
    db: Session = Depends(get_db),
):
    """Admin: totals and breakdown by operation and by model."""
    stats = get_usage_stats(db, period)
    logger.info("API usage stats fetched for %d days", period)
    return stats
