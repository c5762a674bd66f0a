"""Cache keys for analyses: SHA-256 over the normalized input."""
import hashlib
import json


def deck_fingerprint(card_ids: list[int]) -> str:
    """Same multiset of card ids -> same key, whatever the order."""
    normalized = json.dumps(sorted(card_ids), separators=(",", ":"))
    return hashlib.sha256(normalized.encode()).hexdigest()


def card_fingerprint(card_name: str) -> str:
    # Raw name: "dark magician" and "Dark Magician" are different entries.
    return hashlib.sha256(card_name.encode("utf-8")).hexdigest()
