"""
Daily usage counters per (user_id, operation), UTC day boundary.

Two charging disciplines share this ledger:
- try_consume: atomic check-and-increment in one conditional UPDATE. The counter never
  goes past the limit through this call, whatever the concurrency (card analysis).
- may_proceed + increment: check before the Gemini call, charge only after it succeeds
  (deck refresh, hand analysis). A failed generation is never charged. Requests that
  pass the check together before any increment lands all get through, so a concurrent
  burst can end at most one unit over the limit per request in that burst sitting on the
  last free slot. Accepted race: pre-charging here would bill users for upstream failures.

All methods are sync; async callers go through run_in_executor. Each call uses its own session.
"""
import logging
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import case, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.models.usage_counter import UsageCounter

logger = logging.getLogger(__name__)


def utc_today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


class UsageLedger:
    def __init__(self, session_factory: sessionmaker, today: Callable[[], str] = utc_today):
        self._session_factory = session_factory
        self._today = today

    def get_count(self, user_id: str, operation: str) -> int:
        """Today's count; a counter last touched on another day reads as 0."""
        db: Session = self._session_factory()
        try:
            row = (
                db.query(UsageCounter)
                .filter(UsageCounter.user_id == user_id, UsageCounter.operation == operation)
                .first()
            )
            if row is None or row.date != self._today():
                return 0
            return row.count
        finally:
            db.close()

    def may_proceed(self, user_id: str, operation: str, limit: int) -> bool:
        """Check only. Does not write."""
        return self.get_count(user_id, operation) < limit

    def try_consume(self, user_id: str, operation: str, limit: int) -> bool:
        """Atomic check-and-increment. False (and no write) when today's count is already at limit."""
        if limit <= 0:
            return False
        return self._bump(user_id, operation, limit)

    def increment(self, user_id: str, operation: str) -> int:
        """Unconditional charge for today (resets to 1 on a new day). Returns the new count."""
        self._bump(user_id, operation, None)
        return self.get_count(user_id, operation)

    def _bump(self, user_id: str, operation: str, limit: int | None) -> bool:
        today = self._today()
        db: Session = self._session_factory()
        try:
            # Second pass only happens when a concurrent first insert beat ours.
            for _ in range(2):
                stmt = update(UsageCounter).where(
                    UsageCounter.user_id == user_id,
                    UsageCounter.operation == operation,
                )
                if limit is not None:
                    stmt = stmt.where(or_(UsageCounter.date != today, UsageCounter.count < limit))
                # count before date: some backends evaluate SET left to right
                stmt = stmt.ordered_values(
                    (UsageCounter.count, case((UsageCounter.date == today, UsageCounter.count + 1), else_=1)),
                    (UsageCounter.date, today),
                ).execution_options(synchronize_session=False)
                result = db.execute(stmt)
                if result.rowcount == 1:
                    db.commit()
                    return True

                exists = (
                    db.query(UsageCounter.id)
                    .filter(UsageCounter.user_id == user_id, UsageCounter.operation == operation)
                    .first()
                )
                if exists is not None:
                    # Row is there and already at the limit today
                    db.rollback()
                    return False

                db.add(UsageCounter(user_id=user_id, operation=operation, date=today, count=1))
                try:
                    db.commit()
                    return True
                except IntegrityError:
                    db.rollback()
                    logger.info("Usage counter created concurrently for user %s op=%s; retrying", user_id[:8], operation)
            return False
        finally:
            db.close()
