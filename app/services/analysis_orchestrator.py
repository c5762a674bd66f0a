"""
Analysis flows for deck, card and hand.

Deck  - cache first. Plain request: hit or NotFound (never generates). forceRefresh:
        login, check quota, Gemini, cache, then charge (failed calls are free).
Card  - login, cache first (hits are free). Miss: atomic pre-charge, Gemini, cache.
Hand  - login, check quota, Gemini, then charge. Never cached.

Store calls are sync and run in the default executor; steps within one request run in order.
"""
import asyncio
import logging
from dataclasses import dataclass
from functools import partial

from app.errors import LimitReached, NotFound, Unauthenticated
from app.repositories.analysis_cache_repository import CachedAnalysis
from app.schemas.analysis import AnalysisKind, CardAnalysisRequest, DeckAnalysisRequest, HandAnalysisRequest
from app.schemas.user import Identity
from app.services.fingerprint import card_fingerprint, deck_fingerprint
from app.services.model_gateway import ModelGateway
from app.services.plan_resolver import PlanContext, PlanResolver
from app.services.prompts import build_card_prompt, build_deck_prompt, build_hand_prompt
from app.services.result_cache import ResultCache
from app.services.usage_ledger import UsageLedger

logger = logging.getLogger(__name__)


@dataclass
class AnalysisOutcome:
    analysis: dict
    source: str  # "cache" | "fresh"
    fingerprint: str
    plan_used: str | None = None


@dataclass
class HandOutcome:
    analysis: dict
    plan_used: str


class AnalysisOrchestrator:
    def __init__(
        self,
        cache: ResultCache,
        plans: PlanResolver,
        ledger: UsageLedger,
        gateway: ModelGateway,
        hand_deck_context_limit: int = 60,
    ):
        self._cache = cache
        self._plans = plans
        self._ledger = ledger
        self._gateway = gateway
        self._hand_deck_context_limit = hand_deck_context_limit

    async def _run(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(fn, *args))

    async def _resolve_plan(self, identity: Identity) -> PlanContext:
        return await self._run(self._plans.resolve, identity.user_id)

    async def _check_quota(self, identity: Identity, plan: PlanContext, kind: AnalysisKind) -> None:
        limit = plan.limits.for_kind(kind)
        allowed = await self._run(self._ledger.may_proceed, identity.user_id, kind.value, limit)
        if not allowed:
            logger.info("Quota reached op=%s user=%s... plan=%s limit=%d", kind.value, identity.user_id[:8], plan.tier.value, limit)
            raise LimitReached(kind.value, plan.tier.value, limit)

    # ---------- Deck ----------

    async def analyze_deck(self, request: DeckAnalysisRequest, identity: Identity | None) -> AnalysisOutcome:
        fingerprint = deck_fingerprint(request.card_ids)

        if not request.force_refresh:
            cached = await self._cache.get(AnalysisKind.DECK.value, fingerprint)
            if cached is None:
                logger.info("Deck cache miss %s (no refresh requested)", fingerprint[:12])
                raise NotFound("No analysis found for this deck. Request a refresh to generate one.")
            logger.info("Deck cache hit %s", fingerprint[:12])
            return AnalysisOutcome(analysis=cached.analysis, source="cache", fingerprint=fingerprint)

        if identity is None:
            raise Unauthenticated("Login required to generate a deck analysis")

        plan = await self._resolve_plan(identity)
        await self._check_quota(identity, plan, AnalysisKind.DECK)

        logger.info(
            "Generating deck analysis %s (%d entries) user=%s... plan=%s",
            fingerprint[:12], len(request.deck_list), identity.user_id[:8], plan.tier.value,
        )
        analysis = await self._gateway.invoke(plan.tier, AnalysisKind.DECK, build_deck_prompt(request.deck_list))

        await self._cache.put(CachedAnalysis(
            kind=AnalysisKind.DECK.value,
            fingerprint=fingerprint,
            analysis=analysis,
            plan_used=plan.tier.value,
            prompt_version=self._cache.prompt_version,
            deck_list=list(request.deck_list),
            card_ids=sorted(request.card_ids),
        ))
        # Charged only once Gemini succeeded
        await self._run(self._ledger.increment, identity.user_id, AnalysisKind.DECK.value)
        return AnalysisOutcome(analysis=analysis, source="fresh", fingerprint=fingerprint, plan_used=plan.tier.value)

    # ---------- Card ----------

    async def analyze_card(self, request: CardAnalysisRequest, identity: Identity | None) -> AnalysisOutcome:
        if identity is None:
            raise Unauthenticated()
        fingerprint = card_fingerprint(request.card_name)

        cached = await self._cache.get(AnalysisKind.CARD.value, fingerprint)
        if cached is not None:
            logger.info("Card cache hit %s", fingerprint[:12])
            return AnalysisOutcome(analysis=cached.analysis, source="cache", fingerprint=fingerprint)

        plan = await self._resolve_plan(identity)
        limit = plan.limits.card
        consumed = await self._run(self._ledger.try_consume, identity.user_id, AnalysisKind.CARD.value, limit)
        if not consumed:
            logger.info("Quota reached op=card user=%s... plan=%s limit=%d", identity.user_id[:8], plan.tier.value, limit)
            raise LimitReached(AnalysisKind.CARD.value, plan.tier.value, limit)

        analysis = await self._gateway.invoke(plan.tier, AnalysisKind.CARD, build_card_prompt(request.card_name))
        await self._cache.put(CachedAnalysis(
            kind=AnalysisKind.CARD.value,
            fingerprint=fingerprint,
            analysis=analysis,
            plan_used=plan.tier.value,
            prompt_version=self._cache.prompt_version,
        ))
        return AnalysisOutcome(analysis=analysis, source="fresh", fingerprint=fingerprint, plan_used=plan.tier.value)

    # ---------- Hand ----------

    async def analyze_hand(self, request: HandAnalysisRequest, identity: Identity | None) -> HandOutcome:
        if identity is None:
            raise Unauthenticated()

        plan = await self._resolve_plan(identity)
        await self._check_quota(identity, plan, AnalysisKind.HAND)

        deck_context = request.deck_list[: self._hand_deck_context_limit]
        analysis = await self._gateway.invoke(
            plan.tier, AnalysisKind.HAND, build_hand_prompt(request.hand_cards, deck_context)
        )
        await self._run(self._ledger.increment, identity.user_id, AnalysisKind.HAND.value)
        return HandOutcome(analysis=analysis, plan_used=plan.tier.value)

    # ---------- Quota view ----------

    async def usage_summary(self, identity: Identity) -> dict:
        plan = await self._resolve_plan(identity)
        summary = {"plan": plan.tier.value}
        for kind in (AnalysisKind.DECK, AnalysisKind.HAND, AnalysisKind.CARD):
            limit = plan.limits.for_kind(kind)
            used = await self._run(self._ledger.get_count, identity.user_id, kind.value)
            summary[kind.value] = {"limit": limit, "used_today": used, "remaining_today": max(0, limit - used)}
        return summary
