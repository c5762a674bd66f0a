"""
Prompts for Master Duel analyses. Gemini is asked for strict JSON matching the
result models in app.schemas.analysis.
"""
import json
from dataclasses import dataclass


@dataclass(frozen=True)
class Prompt:
    system_instruction: str
    text: str
    max_output_tokens: int = 2048
    temperature: float = 0.4


SYSTEM_INSTRUCTION = """You are a Yu-Gi-Oh! Master Duel world champion and official judge.
Format: Master Duel, best of 1, current banlist.
Rules:
- Be ruthless: compare against the current Tier 0/1 decks. Weak decks get low scores.
- Only describe combos that are legal under current card texts.
- Never invent cards.
- Answer with strict JSON only. No markdown, no code fences, no text outside the JSON."""


DECK_SCHEMA = {
    "meta_score": {"offense": "0-10", "consistency": "0-10", "resilience": "0-10", "control": "0-10"},
    "archetype": "Archetype name",
    "overview": "Two-paragraph technical summary.",
    "matchups": [{"deck_name": "Top meta deck", "win_rate": "0-100", "strategy": "How to win or why it loses."}],
    "strengths": ["strength 1", "strength 2", "strength 3"],
    "weaknesses": ["weakness 1", "weakness 2", "weakness 3"],
    "key_combos": [{"name": "One-card combo", "steps": ["1. ...", "2. ..."]}],
    "game_plan": {"turn1": "Ideal setup going first.", "turn2": "How to break a board going second."},
    "improvements": [{"card": "Card name", "action": "add|remove", "qty": 1, "reason": "Meta-based reason."}],
}

CARD_SCHEMA = {
    "summary": "Two-line strategic summary of the card.",
    "usage_moments": ["Best moment to activate", "Specific interaction with meta decks"],
}

HAND_SCHEMA = {
    "rating": "0-10",
    "verdict": "One-line verdict on this opening hand.",
    "best_line": ["1. ...", "2. ..."],
    "risks": ["Hand trap or interaction that stops this line"],
}


def _schema_block(schema: dict) -> str:
    return "REQUIRED RESPONSE FORMAT (strict JSON):\n" + json.dumps(schema, indent=2, ensure_ascii=False)


def build_deck_prompt(deck_list: list[str]) -> Prompt:
    text = (
        "TASK: Analyse this deck in depth (Main Deck + Extra Deck).\n\n"
        f"DECK LIST ({len(deck_list)} entries):\n{', '.join(deck_list)}\n\n"
        "GUIDELINES:\n"
        "1. Rate against the current meta, be harsh.\n"
        "2. Explain how the Main Deck feeds the Extra Deck.\n"
        "3. Point out weak or sub-optimal cards.\n\n"
        + _schema_block(DECK_SCHEMA)
    )
    return Prompt(system_instruction=SYSTEM_INSTRUCTION, text=text, max_output_tokens=8192)


def build_card_prompt(card_name: str) -> Prompt:
    text = f'Analyse the card "{card_name}".\n\n' + _schema_block(CARD_SCHEMA)
    return Prompt(system_instruction=SYSTEM_INSTRUCTION, text=text)


def build_hand_prompt(hand_cards: list[str], deck_context: list[str]) -> Prompt:
    text = (
        f"OPENING HAND (5 cards): {', '.join(hand_cards)}\n\n"
        f"DECK CONTEXT: {', '.join(deck_context)}\n\n"
        "Evaluate this hand going first: best combo line, final board and what interrupts it.\n\n"
        + _schema_block(HAND_SCHEMA)
    )
    return Prompt(system_instruction=SYSTEM_INSTRUCTION, text=text)
