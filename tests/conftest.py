import asyncio
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app import models  # noqa: E402,F401 - register tables
from app import auth  # noqa: E402
from app.config import Settings  # noqa: E402
from app.database import Base, build_engine, get_db  # noqa: E402
from app.core.container import build_orchestrator, get_orchestrator  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user_subscription import UserSubscription  # noqa: E402
from app.services.api_usage import ApiUsageRecorder  # noqa: E402
from app.services.model_gateway import ModelGateway, ModelProvider, ProviderResponse  # noqa: E402
from app.services.usage_ledger import UsageLedger  # noqa: E402


DECK_RESULT = {
    "meta_score": {"offense": 7, "consistency": 8, "resilience": 6, "control": 5},
    "archetype": "Snake-Eye",
    "overview": "Strong fire engine with good recursion.",
    "matchups": [{"deck_name": "Yubel", "win_rate": 55, "strategy": "Play around Nibiru."}],
    "strengths": ["Consistency"],
    "weaknesses": ["Dimension Shifter"],
    "key_combos": [{"name": "Ash into Flamberge", "steps": ["1. Normal summon Ash", "2. Link"]}],
    "game_plan": {"turn1": "Flamberge + Promethean", "turn2": "Evenly Matched"},
    "improvements": [{"card": "Droll & Lock Bird", "action": "add", "qty": 1, "reason": "Meta call."}],
}

CARD_RESULT = {
    "summary": "Staple hand trap.",
    "usage_moments": ["In response to a search effect"],
}

HAND_RESULT = {
    "rating": 8,
    "verdict": "Full combo through one hand trap.",
    "best_line": ["1. Normal summon", "2. Link"],
    "risks": ["Ash Blossom on the first search"],
}


def respond_by_prompt(prompt) -> str:
    if "DECK LIST" in prompt.text:
        return json.dumps(DECK_RESULT)
    if "OPENING HAND" in prompt.text:
        return json.dumps(HAND_RESULT)
    return json.dumps(CARD_RESULT)


class FakeProvider(ModelProvider):
    """Answers with valid JSON for the prompt kind unless told to fail, stall or return `text`."""

    def __init__(self, name="fake", text=None, error=None, delay=0.0, input_tokens=1000, output_tokens=500):
        self.name = name
        self.text = text
        self.error = error
        self.delay = delay
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.calls = []

    async def generate(self, model, prompt):
        self.calls.append((model, prompt))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        text = self.text if self.text is not None else respond_by_prompt(prompt)
        return ProviderResponse(text=text, input_tokens=self.input_tokens, output_tokens=self.output_tokens)


def issue_token(user_id, email=None, name=None, minutes=60):
    """Bearer token shaped like the identity provider's, signed with the app secret."""
    payload = {
        "sub": user_id,
        "email": email,
        "name": name,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
        "type": "access",
    }
    return jwt.encode(payload, auth.settings.secret_key, algorithm=auth.settings.algorithm)


class DayClock:
    """Settable UTC day for ledger tests."""

    def __init__(self, day="2026-10-19"):
        self.day = day

    def __call__(self):
        return self.day


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def settings():
    return Settings(
        gemini_api_key="test-key",
        free_deck_limit=1,
        free_hand_limit=3,
        free_card_limit=5,
        premium_deck_limit=3,
        premium_hand_limit=5,
        premium_card_limit=10,
        model_timeout_seconds=0.5,
        analysis_prompt_version="v1",
        hand_deck_context_limit=60,
    )


@pytest.fixture
def clock():
    return DayClock()


@pytest.fixture
def primary():
    return FakeProvider(name="primary")


@pytest.fixture
def make_gateway(settings, session_factory):
    def _make(primary, backup=None, timeout=None):
        return ModelGateway(
            primary,
            backup,
            economy_model=settings.gemini_model_economy,
            premium_model=settings.gemini_model_premium,
            timeout_seconds=timeout if timeout is not None else settings.model_timeout_seconds,
            recorder=ApiUsageRecorder(session_factory),
        )

    return _make


@pytest.fixture
def make_orchestrator(settings, session_factory, make_gateway, clock):
    def _make(primary, backup=None, timeout=None):
        return build_orchestrator(
            settings,
            session_factory,
            make_gateway(primary, backup, timeout),
            ledger=UsageLedger(session_factory, today=clock),
        )

    return _make


@pytest.fixture
def set_subscription(session_factory):
    def _set(user_id, plan="premium", status="active"):
        db = session_factory()
        try:
            db.merge(UserSubscription(user_id=user_id, plan=plan, status=status))
            db.commit()
        finally:
            db.close()

    return _set


@pytest.fixture
def client(session_factory, make_orchestrator, primary):
    """TestClient without lifespan (no Gemini key needed); services come from overrides."""
    orchestrator = make_orchestrator(primary)

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
