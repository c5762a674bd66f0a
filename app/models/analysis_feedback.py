"""User vote on a cached deck analysis. One vote per user per deck; re-voting overwrites."""
import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Index
from app.database import Base


class FeedbackVote(str, enum.Enum):
    ACCURATE = "accurate"
    INACCURATE = "inaccurate"


class AnalysisFeedback(Base):
    __tablename__ = "analysis_feedback"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    deck_hash = Column(String(128), nullable=False, index=True)
    user_id = Column(String(128), nullable=False)
    user_name = Column(String(255), nullable=False, default="Anonymous")
    vote = Column(String(16), nullable=False)
    reason = Column(Text, nullable=False)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (Index("ix_analysis_feedback_deck_user", "deck_hash", "user_id", unique=True),)
