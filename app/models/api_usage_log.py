"""Append-only accounting of Gemini calls: tokens and estimated cost per call."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Float, DateTime
from app.database import Base


class ApiUsageLog(Base):
    __tablename__ = "api_usage"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    model = Column(String(64), nullable=False, index=True)
    operation = Column(String(16), nullable=False, index=True)  # "deck" | "hand" | "card"
    input_tokens = Column(Integer, nullable=False, default=0)
    output_tokens = Column(Integer, nullable=False, default=0)
    estimated_cost_usd = Column(Float, nullable=False, default=0.0)
