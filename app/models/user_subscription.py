"""Subscription state per user. Written by the billing integration; this service only reads it."""
import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime
from app.database import Base


class PlanTier(str, enum.Enum):
    FREE = "free"
    PREMIUM = "premium"


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"

    user_id = Column(String(128), primary_key=True)
    plan = Column(String(20), nullable=False, default=PlanTier.FREE.value)
    status = Column(String(20), nullable=False, default=SubscriptionStatus.ACTIVE.value)
    stripe_customer_id = Column(String(64), nullable=True)
    stripe_subscription_id = Column(String(64), nullable=True)
    start_date = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
