import enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class AnalysisKind(str, enum.Enum):
    DECK = "deck"
    CARD = "card"
    HAND = "hand"


# Card names: letters (accents included), digits, whitespace and this punctuation
CARD_NAME_PUNCTUATION = set("-,.'\":!?&()@#★☆")


# ---- Requests ----

class DeckAnalysisRequest(BaseModel):
    deck_list: list[str] = Field(..., alias="deckList", min_length=1, max_length=80)
    card_ids: list[int] = Field(..., alias="cardIds", min_length=1, max_length=80)
    force_refresh: bool = Field(False, alias="forceRefresh")

    class Config:
        populate_by_name = True

    @field_validator("deck_list")
    @classmethod
    def _entries_length(cls, v: list[str]) -> list[str]:
        for entry in v:
            if not 1 <= len(entry) <= 100:
                raise ValueError("Deck entries must be 1-100 characters")
        return v

    @field_validator("card_ids")
    @classmethod
    def _positive_ids(cls, v: list[int]) -> list[int]:
        if any(card_id <= 0 for card_id in v):
            raise ValueError("Card IDs must be positive integers")
        return v


class CardAnalysisRequest(BaseModel):
    card_name: str = Field(..., alias="cardName", min_length=1, max_length=100)

    class Config:
        populate_by_name = True

    @field_validator("card_name")
    @classmethod
    def _allowed_characters(cls, v: str) -> str:
        for ch in v:
            if not (ch.isalnum() or ch.isspace() or ch in CARD_NAME_PUNCTUATION):
                raise ValueError("Invalid characters in card name")
        return v


class HandAnalysisRequest(BaseModel):
    hand_cards: list[str] = Field(..., alias="handCards", min_length=5, max_length=5)
    deck_list: list[str] = Field(..., alias="deckList", min_length=1, max_length=80)

    class Config:
        populate_by_name = True

    @field_validator("hand_cards", "deck_list")
    @classmethod
    def _entries_length(cls, v: list[str]) -> list[str]:
        for entry in v:
            if not 1 <= len(entry) <= 100:
                raise ValueError("Card entries must be 1-100 characters")
        return v


# ---- Model output, validated right after parsing ----

class MetaScore(BaseModel):
    offense: float = Field(..., ge=0, le=10)
    consistency: float = Field(..., ge=0, le=10)
    resilience: float = Field(..., ge=0, le=10)
    control: float = Field(..., ge=0, le=10)


class Matchup(BaseModel):
    deck_name: str
    win_rate: float = Field(..., ge=0, le=100)
    strategy: str


class KeyCombo(BaseModel):
    name: str
    steps: list[str]


class GamePlan(BaseModel):
    turn1: str
    turn2: str


class Improvement(BaseModel):
    card: str
    action: str  # "add" | "remove"
    qty: int = 1
    reason: str


class DeckAnalysisResult(BaseModel):
    meta_score: MetaScore
    archetype: str
    overview: str
    matchups: list[Matchup] = []
    strengths: list[str] = []
    weaknesses: list[str] = []
    key_combos: list[KeyCombo] = []
    game_plan: GamePlan | None = None
    improvements: list[Improvement] = []


class CardAnalysisResult(BaseModel):
    summary: str
    usage_moments: list[str] = []


class HandAnalysisResult(BaseModel):
    rating: float = Field(..., ge=0, le=10)
    verdict: str
    best_line: list[str] = []
    risks: list[str] = []


RESULT_MODELS: dict[AnalysisKind, type[BaseModel]] = {
    AnalysisKind.DECK: DeckAnalysisResult,
    AnalysisKind.CARD: CardAnalysisResult,
    AnalysisKind.HAND: HandAnalysisResult,
}


# ---- Responses ----

class AnalysisResponse(BaseModel):
    analysis: dict
    source: Literal["cache", "fresh"]
    fingerprint: str
    plan_used: str | None = Field(None, serialization_alias="planUsed")


class HandAnalysisResponse(BaseModel):
    analysis: dict
    plan_used: str = Field(..., serialization_alias="planUsed")
