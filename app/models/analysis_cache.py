"""Permanent cache of AI analyses, one row per (kind, fingerprint). Shared by all users."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Index
from app.database import Base


class AnalysisCache(Base):
    __tablename__ = "analysis_cache"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    kind = Column(String(16), nullable=False)  # "deck" | "card"
    fingerprint = Column(String(64), nullable=False)  # sha256 hex of the normalized input
    analysis_json = Column(Text, nullable=False)
    plan_used = Column(String(16), nullable=False)
    prompt_version = Column(String(32), nullable=False)
    # Deck only: what the user sent, kept for auditing
    deck_list_json = Column(Text, nullable=True)
    card_ids_json = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (Index("ix_analysis_cache_kind_fingerprint", "kind", "fingerprint", unique=True),)
