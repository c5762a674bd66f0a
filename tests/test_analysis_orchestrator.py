import asyncio

import pytest

from app.errors import LimitReached, NotFound, Unauthenticated, UpstreamFailure
from app.schemas.analysis import CardAnalysisRequest, DeckAnalysisRequest, HandAnalysisRequest
from app.schemas.user import Identity
from app.services.fingerprint import deck_fingerprint
from app.services.usage_ledger import UsageLedger

from conftest import CARD_RESULT, FakeProvider

U1 = Identity(user_id="U1-firebase-uid", email="u1@example.com")
DECK = ["3x Snake-Eye Ash", "2x Snake-Eye Oak", "1x Promethean Princess"]
IDS = [48452496, 9674034, 2526224]


def deck_request(force_refresh=False, card_ids=IDS):
    return DeckAnalysisRequest(deckList=DECK, cardIds=card_ids, forceRefresh=force_refresh)


def count(session_factory, clock, operation, user=U1):
    return UsageLedger(session_factory, today=clock).get_count(user.user_id, operation)


# ---------- Deck ----------

def test_deck_miss_without_refresh_is_not_found_and_free(make_orchestrator, primary, session_factory, clock):
    orchestrator = make_orchestrator(primary)

    with pytest.raises(NotFound):
        asyncio.run(orchestrator.analyze_deck(deck_request(), U1))
    assert primary.calls == []
    assert count(session_factory, clock, "deck") == 0


def test_deck_cache_read_needs_no_identity(make_orchestrator, primary):
    orchestrator = make_orchestrator(primary)

    async def run():
        await orchestrator.analyze_deck(deck_request(force_refresh=True), U1)
        return await orchestrator.analyze_deck(deck_request(), None)

    outcome = asyncio.run(run())
    assert outcome.source == "cache"


def test_deck_refresh_requires_identity(make_orchestrator, primary):
    orchestrator = make_orchestrator(primary)

    with pytest.raises(Unauthenticated):
        asyncio.run(orchestrator.analyze_deck(deck_request(force_refresh=True), None))
    assert primary.calls == []


def test_deck_refresh_then_cache_is_idempotent(make_orchestrator, primary, session_factory, clock):
    orchestrator = make_orchestrator(primary)

    async def run():
        fresh = await orchestrator.analyze_deck(deck_request(force_refresh=True), U1)
        first = await orchestrator.analyze_deck(deck_request(), U1)
        second = await orchestrator.analyze_deck(deck_request(), U1)
        return fresh, first, second

    fresh, first, second = asyncio.run(run())

    assert fresh.source == "fresh"
    assert fresh.plan_used == "free"
    assert fresh.fingerprint == deck_fingerprint(IDS)
    assert first.source == second.source == "cache"
    assert first.analysis == second.analysis == fresh.analysis
    assert len(primary.calls) == 1
    assert count(session_factory, clock, "deck") == 1


def test_deck_cache_shared_across_card_order(make_orchestrator, primary):
    orchestrator = make_orchestrator(primary)

    async def run():
        await orchestrator.analyze_deck(deck_request(force_refresh=True), U1)
        return await orchestrator.analyze_deck(deck_request(card_ids=list(reversed(IDS))), None)

    assert asyncio.run(run()).source == "cache"


def test_deck_refresh_over_limit(make_orchestrator, primary, session_factory, clock):
    orchestrator = make_orchestrator(primary)

    async def run():
        await orchestrator.analyze_deck(deck_request(force_refresh=True), U1)
        await orchestrator.analyze_deck(deck_request(force_refresh=True), U1)

    with pytest.raises(LimitReached) as exc_info:
        asyncio.run(run())
    assert exc_info.value.limit == 1
    assert exc_info.value.tier == "free"
    assert "1 deck" in str(exc_info.value)
    assert len(primary.calls) == 1
    assert count(session_factory, clock, "deck") == 1


def test_deck_refresh_failure_is_not_charged(make_orchestrator, session_factory, clock):
    orchestrator = make_orchestrator(FakeProvider(name="primary", error=RuntimeError("503")))

    with pytest.raises(UpstreamFailure):
        asyncio.run(orchestrator.analyze_deck(deck_request(force_refresh=True), U1))
    assert count(session_factory, clock, "deck") == 0

    with pytest.raises(NotFound):
        asyncio.run(orchestrator.analyze_deck(deck_request(), U1))


def test_deck_refresh_returns_backup_result_when_primary_times_out(make_orchestrator):
    primary = FakeProvider(name="primary", delay=5)
    backup = FakeProvider(name="backup")
    orchestrator = make_orchestrator(primary, backup, timeout=0.05)

    outcome = asyncio.run(orchestrator.analyze_deck(deck_request(force_refresh=True), U1))

    assert outcome.source == "fresh"
    assert outcome.analysis["archetype"] == "Snake-Eye"
    assert len(backup.calls) == 1


def test_premium_deck_uses_premium_model_and_limit(make_orchestrator, primary, set_subscription, settings):
    set_subscription(U1.user_id, plan="premium", status="active")
    orchestrator = make_orchestrator(primary)

    async def run():
        outcomes = []
        for _ in range(3):
            outcomes.append(await orchestrator.analyze_deck(deck_request(force_refresh=True), U1))
        return outcomes

    outcomes = asyncio.run(run())

    assert all(o.plan_used == "premium" for o in outcomes)
    assert primary.calls[0][0] == settings.gemini_model_premium
    with pytest.raises(LimitReached):
        asyncio.run(orchestrator.analyze_deck(deck_request(force_refresh=True), U1))


# ---------- Card ----------

def test_card_requires_identity(make_orchestrator, primary):
    orchestrator = make_orchestrator(primary)

    with pytest.raises(Unauthenticated):
        asyncio.run(orchestrator.analyze_card(CardAnalysisRequest(cardName="Dark Magician"), None))


def test_card_scenario_free_user_limit_and_free_cache_reads(make_orchestrator, primary, session_factory, clock):
    orchestrator = make_orchestrator(primary)
    names = ["Dark Magician", "Ash Blossom & Joyous Spring", "Nibiru, the Primal Being", "Maxx \"C\"", "Effect Veiler"]

    async def run():
        for name in names:
            outcome = await orchestrator.analyze_card(CardAnalysisRequest(cardName=name), U1)
            assert outcome.source == "fresh"
        assert count(session_factory, clock, "card") == 5

        with pytest.raises(LimitReached):
            await orchestrator.analyze_card(CardAnalysisRequest(cardName="Infinite Impermanence"), U1)
        assert count(session_factory, clock, "card") == 5

        cached = await orchestrator.analyze_card(CardAnalysisRequest(cardName="Dark Magician"), U1)
        assert cached.source == "cache"
        assert cached.analysis == CARD_RESULT
        assert count(session_factory, clock, "card") == 5

    asyncio.run(run())
    assert len(primary.calls) == 5


def test_card_miss_is_precharged_even_if_gemini_fails(make_orchestrator, session_factory, clock):
    orchestrator = make_orchestrator(FakeProvider(name="primary", error=RuntimeError("503")))

    with pytest.raises(UpstreamFailure):
        asyncio.run(orchestrator.analyze_card(CardAnalysisRequest(cardName="Dark Magician"), U1))
    assert count(session_factory, clock, "card") == 1


def test_card_names_differing_in_case_are_separate_entries(make_orchestrator, primary):
    orchestrator = make_orchestrator(primary)

    async def run():
        first = await orchestrator.analyze_card(CardAnalysisRequest(cardName="Dark Magician"), U1)
        second = await orchestrator.analyze_card(CardAnalysisRequest(cardName="dark magician"), U1)
        return first, second

    first, second = asyncio.run(run())
    assert first.fingerprint != second.fingerprint
    assert second.source == "fresh"


def test_card_uses_economy_model_for_premium(make_orchestrator, primary, set_subscription, settings):
    set_subscription(U1.user_id)
    orchestrator = make_orchestrator(primary)

    outcome = asyncio.run(orchestrator.analyze_card(CardAnalysisRequest(cardName="Dark Magician"), U1))

    assert outcome.plan_used == "premium"
    assert primary.calls[0][0] == settings.gemini_model_economy


# ---------- Hand ----------

HAND = ["Snake-Eye Ash", "Snake-Eye Oak", "Ash Blossom", "Nibiru", "Called by the Grave"]


def test_hand_charges_after_success_and_is_never_cached(make_orchestrator, primary, session_factory, clock):
    orchestrator = make_orchestrator(primary)
    request = HandAnalysisRequest(handCards=HAND, deckList=DECK)

    async def run():
        return [await orchestrator.analyze_hand(request, U1) for _ in range(3)]

    outcomes = asyncio.run(run())

    assert len(primary.calls) == 3
    assert outcomes[0].plan_used == "free"
    assert outcomes[0].analysis["verdict"]
    assert count(session_factory, clock, "hand") == 3
    with pytest.raises(LimitReached):
        asyncio.run(orchestrator.analyze_hand(request, U1))
    assert count(session_factory, clock, "hand") == 3


def test_hand_failure_is_not_charged(make_orchestrator, session_factory, clock):
    orchestrator = make_orchestrator(FakeProvider(name="primary", error=RuntimeError("503")))

    with pytest.raises(UpstreamFailure):
        asyncio.run(orchestrator.analyze_hand(HandAnalysisRequest(handCards=HAND, deckList=DECK), U1))
    assert count(session_factory, clock, "hand") == 0


def test_hand_deck_context_is_truncated(make_orchestrator, primary, settings):
    orchestrator = make_orchestrator(primary)
    deck = [f"1x Card {i:02d}" for i in range(80)]

    asyncio.run(orchestrator.analyze_hand(HandAnalysisRequest(handCards=HAND, deckList=deck), U1))

    prompt_text = primary.calls[0][1].text
    assert f"1x Card {settings.hand_deck_context_limit - 1:02d}" in prompt_text
    assert f"1x Card {settings.hand_deck_context_limit:02d}" not in prompt_text


def test_hand_requires_identity(make_orchestrator, primary):
    orchestrator = make_orchestrator(primary)

    with pytest.raises(Unauthenticated):
        asyncio.run(orchestrator.analyze_hand(HandAnalysisRequest(handCards=HAND, deckList=DECK), None))


# ---------- Quota view ----------

def test_usage_summary(make_orchestrator, primary):
    orchestrator = make_orchestrator(primary)

    async def run():
        await orchestrator.analyze_card(CardAnalysisRequest(cardName="Dark Magician"), U1)
        return await orchestrator.usage_summary(U1)

    summary = asyncio.run(run())

    assert summary["plan"] == "free"
    assert summary["card"] == {"limit": 5, "used_today": 1, "remaining_today": 4}
    assert summary["deck"] == {"limit": 1, "used_today": 0, "remaining_today": 1}
