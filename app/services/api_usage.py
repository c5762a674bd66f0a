"""
Gemini cost accounting: per-call token usage written to api_usage, and the
aggregation behind the admin stats endpoint.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session, sessionmaker

from app.models.api_usage_log import ApiUsageLog

logger = logging.getLogger(__name__)

# USD per 1M tokens
TOKEN_PRICES = {
    "gemini-2.5-pro": {"input": 1.25, "output": 10.00},
    "gemini-2.5-flash": {"input": 0.30, "output": 2.50},
}


def estimate_cost_usd(model: str, input_tokens: int, output_tokens: int) -> float:
    """Unknown models cost 0 (logged), they still get a usage row."""
    prices = TOKEN_PRICES.get(model)
    if prices is None:
        logger.warning("No price for model %s; recording cost 0", model)
        return 0.0
    return (input_tokens * prices["input"] + output_tokens * prices["output"]) / 1_000_000


def log_api_usage(
    db: Session,
    model: str,
    operation: str,
    input_tokens: int,
    output_tokens: int,
    timestamp: datetime | None = None,
) -> ApiUsageLog:
    entry = ApiUsageLog(
        timestamp=timestamp or datetime.utcnow(),
        model=model,
        operation=operation,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        estimated_cost_usd=estimate_cost_usd(model, input_tokens, output_tokens),
    )
    db.add(entry)
    db.commit()
    return entry


class ApiUsageRecorder:
    """Writes one api_usage row per call with its own session. Sync; run off the event loop."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def record(self, model: str, operation: str, input_tokens: int, output_tokens: int) -> None:
        db = self._session_factory()
        try:
            log_api_usage(db, model, operation, input_tokens, output_tokens)
        finally:
            db.close()


def _bucket() -> dict:
    return {"calls": 0, "cost": 0.0, "tokens": 0}


def get_usage_stats(db: Session, days: int = 30) -> dict:
    start = datetime.utcnow() - timedelta(days=days)
    rows = (
        db.query(ApiUsageLog)
        .filter(ApiUsageLog.timestamp >= start)
        .order_by(ApiUsageLog.timestamp.desc())
        .all()
    )
    stats = {
        "period": f"{days} days",
        "total_cost": 0.0,
        "total_input_tokens": 0,
        "total_output_tokens": 0,
        "total_calls": 0,
        "by_operation": {},
        "by_model": {},
        "pricing": TOKEN_PRICES,
    }
    for r in rows:
        cost = r.estimated_cost_usd or 0.0
        input_tokens = r.input_tokens or 0
        output_tokens = r.output_tokens or 0
        stats["total_cost"] += cost
        stats["total_input_tokens"] += input_tokens
        stats["total_output_tokens"] += output_tokens
        stats["total_calls"] += 1
        for group, key in (("by_operation", r.operation or "unknown"), ("by_model", r.model or "unknown")):
            bucket = stats[group].setdefault(key, _bucket())
            bucket["calls"] += 1
            bucket["cost"] += cost
            bucket["tokens"] += input_tokens + output_tokens
    return stats
