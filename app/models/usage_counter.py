"""Per-user, per-operation daily counter. A row whose date is not today counts as zero."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, Index
from app.database import Base


class UsageCounter(Base):
    __tablename__ = "usage_counters"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False)
    operation = Column(String(16), nullable=False)  # "deck" | "hand" | "card"
    date = Column(String(10), nullable=False)  # UTC day, YYYY-MM-DD
    count = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (Index("ix_usage_counters_user_operation", "user_id", "operation", unique=True),)
