"""
Analysis cache persistence. DB is the source of truth, one row per (kind, fingerprint).
All operations are sync (run_in_executor from async callers).
"""
import json
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.analysis_cache import AnalysisCache


@dataclass
class CachedAnalysis:
    kind: str
    fingerprint: str
    analysis: dict
    plan_used: str
    prompt_version: str
    created_at: datetime = field(default_factory=datetime.utcnow)
    deck_list: list[str] | None = None
    card_ids: list[int] | None = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "fingerprint": self.fingerprint,
            "analysis": self.analysis,
            "plan_used": self.plan_used,
            "prompt_version": self.prompt_version,
            "created_at": self.created_at.isoformat(),
            "deck_list": self.deck_list,
            "card_ids": self.card_ids,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CachedAnalysis":
        return cls(
            kind=data["kind"],
            fingerprint=data["fingerprint"],
            analysis=data["analysis"],
            plan_used=data["plan_used"],
            prompt_version=data["prompt_version"],
            created_at=datetime.fromisoformat(data["created_at"]),
            deck_list=data.get("deck_list"),
            card_ids=data.get("card_ids"),
        )


def _to_entry(row: AnalysisCache) -> CachedAnalysis:
    return CachedAnalysis(
        kind=row.kind,
        fingerprint=row.fingerprint,
        analysis=json.loads(row.analysis_json),
        plan_used=row.plan_used,
        prompt_version=row.prompt_version,
        created_at=row.created_at,
        deck_list=json.loads(row.deck_list_json) if row.deck_list_json else None,
        card_ids=json.loads(row.card_ids_json) if row.card_ids_json else None,
    )


def _apply(row: AnalysisCache, entry: CachedAnalysis) -> None:
    row.analysis_json = json.dumps(entry.analysis)
    row.plan_used = entry.plan_used
    row.prompt_version = entry.prompt_version
    row.created_at = entry.created_at
    row.deck_list_json = json.dumps(entry.deck_list) if entry.deck_list is not None else None
    row.card_ids_json = json.dumps(entry.card_ids) if entry.card_ids is not None else None


def _find(db: Session, kind: str, fingerprint: str) -> AnalysisCache | None:
    return (
        db.query(AnalysisCache)
        .filter(AnalysisCache.kind == kind, AnalysisCache.fingerprint == fingerprint)
        .first()
    )


def get_entry(db: Session, kind: str, fingerprint: str) -> CachedAnalysis | None:
    row = _find(db, kind, fingerprint)
    return _to_entry(row) if row else None


def upsert_entry(db: Session, entry: CachedAnalysis) -> None:
    """Insert or overwrite. Concurrent writers for the same key: last write wins."""
    row = _find(db, entry.kind, entry.fingerprint)
    if row is None:
        row = AnalysisCache(kind=entry.kind, fingerprint=entry.fingerprint)
        _apply(row, entry)
        db.add(row)
        try:
            db.commit()
            return
        except IntegrityError:
            # Another request inserted the same key first; overwrite theirs
            db.rollback()
            row = _find(db, entry.kind, entry.fingerprint)
            if row is None:
                raise
    _apply(row, entry)
    db.commit()


class AnalysisCacheRepository:
    """Thin wrapper for dependency injection; delegates to module functions."""

    @staticmethod
    def get_entry(db: Session, kind: str, fingerprint: str) -> CachedAnalysis | None:
        return get_entry(db, kind, fingerprint)

    @staticmethod
    def upsert_entry(db: Session, entry: CachedAnalysis) -> None:
        return upsert_entry(db, entry)
