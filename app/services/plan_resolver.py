"""
Plan tier and daily limits for a user.
Premium only when the subscription is active AND on the premium plan; anything else is free.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from app.config import Settings
from app.models.user_subscription import PlanTier, SubscriptionStatus, UserSubscription
from app.schemas.analysis import AnalysisKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanLimits:
    deck: int
    hand: int
    card: int

    def for_kind(self, kind: AnalysisKind) -> int:
        return getattr(self, kind.value)


@dataclass(frozen=True)
class PlanContext:
    tier: PlanTier
    limits: PlanLimits


def limits_table(settings: Settings) -> dict[PlanTier, PlanLimits]:
    return {
        PlanTier.FREE: PlanLimits(
            deck=settings.free_deck_limit,
            hand=settings.free_hand_limit,
            card=settings.free_card_limit,
        ),
        PlanTier.PREMIUM: PlanLimits(
            deck=settings.premium_deck_limit,
            hand=settings.premium_hand_limit,
            card=settings.premium_card_limit,
        ),
    }


def tier_for_subscription(sub: UserSubscription | None) -> PlanTier:
    if sub is None:
        return PlanTier.FREE
    if sub.status == SubscriptionStatus.ACTIVE.value and sub.plan == PlanTier.PREMIUM.value:
        return PlanTier.PREMIUM
    return PlanTier.FREE


class PlanResolver:
    def __init__(self, session_factory: sessionmaker, settings: Settings):
        self._session_factory = session_factory
        self._limits = limits_table(settings)

    def resolve(self, user_id: str) -> PlanContext:
        """Sync; call through run_in_executor from async code."""
        db: Session = self._session_factory()
        try:
            sub = db.query(UserSubscription).filter(UserSubscription.user_id == user_id).first()
            tier = tier_for_subscription(sub)
        finally:
            db.close()
        return PlanContext(tier=tier, limits=self._limits[tier])
