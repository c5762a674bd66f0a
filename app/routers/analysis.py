"""
Analysis endpoints:
- POST /api/analyze: deck analysis (cache read is public; forceRefresh needs login + quota)
- POST /api/analyze-card: card analysis (login; cache hits free, misses pre-charged)
- POST /api/analyze-hand: opening hand analysis (login; charged after success; never cached)
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status

from app.auth import get_current_identity, get_optional_identity
from app.core.container import get_orchestrator
from app.errors import AnalysisError, LimitReached, MalformedResponse, NotFound, Unauthenticated, UpstreamFailure
from app.schemas.analysis import (
    AnalysisResponse,
    CardAnalysisRequest,
    DeckAnalysisRequest,
    HandAnalysisRequest,
    HandAnalysisResponse,
)
from app.schemas.user import Identity
from app.services.analysis_orchestrator import AnalysisOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])


def _http_error(e: AnalysisError) -> HTTPException:
    if isinstance(e, Unauthenticated):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    if isinstance(e, LimitReached):
        return HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(e))
    if isinstance(e, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, (UpstreamFailure, MalformedResponse)):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.post("/analyze", response_model=AnalysisResponse, response_model_exclude_none=True)
async def analyze_deck(
    body: DeckAnalysisRequest,
    identity: Identity | None = Depends(get_optional_identity),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """
    Deck analysis. Without forceRefresh only the cache is read (404 on miss).
    With forceRefresh a new analysis is generated and counted against today's deck quota.
    """
    try:
        outcome = await orchestrator.analyze_deck(body, identity)
    except AnalysisError as e:
        raise _http_error(e) from e
    return AnalysisResponse(
        analysis=outcome.analysis,
        source=outcome.source,
        fingerprint=outcome.fingerprint,
        plan_used=outcome.plan_used,
    )


@router.post("/analyze-card", response_model=AnalysisResponse, response_model_exclude_none=True)
async def analyze_card(
    body: CardAnalysisRequest,
    identity: Identity = Depends(get_current_identity),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Card analysis. Cached cards are free; new cards use one of today's card analyses."""
    try:
        outcome = await orchestrator.analyze_card(body, identity)
    except AnalysisError as e:
        raise _http_error(e) from e
    return AnalysisResponse(
        analysis=outcome.analysis,
        source=outcome.source,
        fingerprint=outcome.fingerprint,
        plan_used=outcome.plan_used,
    )


@router.post("/analyze-hand", response_model=HandAnalysisResponse)
async def analyze_hand(
    body: HandAnalysisRequest,
    identity: Identity = Depends(get_current_identity),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Opening hand analysis (5 cards + deck context). Always fresh."""
    try:
        outcome = await orchestrator.analyze_hand(body, identity)
    except AnalysisError as e:
        raise _http_error(e) from e
    return HandAnalysisResponse(analysis=outcome.analysis, plan_used=outcome.plan_used)
