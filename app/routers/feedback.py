"""
Feedback on deck analyses: one vote (accurate / inaccurate + reason) per user per deck.
Voting again replaces the previous vote.
"""
import logging
from datetime import datetime
from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth import get_current_identity
from app.database import get_db
from app.models.analysis_feedback import AnalysisFeedback
from app.schemas.feedback import FeedbackRequest, FeedbackResponse
from app.schemas.user import Identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/feedback", tags=["feedback"])


def _find(db: Session, deck_hash: str, user_id: str) -> AnalysisFeedback | None:
    return (
        db.query(AnalysisFeedback)
        .filter(AnalysisFeedback.deck_hash == deck_hash, AnalysisFeedback.user_id == user_id)
        .first()
    )


def _apply_vote(entry: AnalysisFeedback, body: FeedbackRequest, identity: Identity) -> None:
    entry.user_name = identity.name or "Anonymous"
    entry.vote = body.vote.value
    entry.reason = body.reason
    entry.timestamp = datetime.utcnow()


@router.post("", response_model=FeedbackResponse)
def submit_analysis_feedback(
    body: FeedbackRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Vote on the analysis cached for a deck fingerprint."""
    entry = _find(db, body.deck_hash, identity.user_id)
    if entry is None:
        entry = AnalysisFeedback(deck_hash=body.deck_hash, user_id=identity.user_id)
        db.add(entry)
    _apply_vote(entry, body, identity)
    try:
        db.commit()
    except IntegrityError:
        # Same user voted twice at once; keep this vote
        db.rollback()
        entry = _find(db, body.deck_hash, identity.user_id)
        _apply_vote(entry, body, identity)
        db.commit()
    logger.info("Feedback %s on deck %s by user %s...", body.vote.value, body.deck_hash[:12], identity.user_id[:8])
    return FeedbackResponse(message="Feedback submitted successfully")
