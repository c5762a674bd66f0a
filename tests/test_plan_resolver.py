from app.models.user_subscription import PlanTier
from app.schemas.analysis import AnalysisKind
from app.services.plan_resolver import PlanResolver


def test_missing_subscription_is_free(session_factory, settings):
    plan = PlanResolver(session_factory, settings).resolve("nobody")

    assert plan.tier == PlanTier.FREE
    assert (plan.limits.deck, plan.limits.hand, plan.limits.card) == (1, 3, 5)


def test_active_premium_is_premium(session_factory, settings, set_subscription):
    set_subscription("u1", plan="premium", status="active")

    plan = PlanResolver(session_factory, settings).resolve("u1")

    assert plan.tier == PlanTier.PREMIUM
    assert (plan.limits.deck, plan.limits.hand, plan.limits.card) == (3, 5, 10)
    assert plan.limits.for_kind(AnalysisKind.CARD) == 10


def test_inactive_premium_falls_back_to_free(session_factory, settings, set_subscription):
    set_subscription("u1", plan="premium", status="canceled")
    set_subscription("u2", plan="premium", status="past_due")

    resolver = PlanResolver(session_factory, settings)

    assert resolver.resolve("u1").tier == PlanTier.FREE
    assert resolver.resolve("u2").tier == PlanTier.FREE


def test_unknown_plan_value_is_free(session_factory, settings, set_subscription):
    set_subscription("u1", plan="gold", status="active")

    assert PlanResolver(session_factory, settings).resolve("u1").tier == PlanTier.FREE


def test_plan_change_applies_on_next_resolve(session_factory, settings, set_subscription):
    resolver = PlanResolver(session_factory, settings)
    assert resolver.resolve("u1").tier == PlanTier.FREE

    set_subscription("u1", plan="premium", status="active")
    assert resolver.resolve("u1").tier == PlanTier.PREMIUM
