"""
Append-only history of similarity scores.

Rows are written once and never updated or deleted. The current score is the
most recent row.
"""
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from castmind.errors import PersistenceError
from castmind.logging import logger
from castmind.models.analytics import SimilarityScore


def _as_utc(ts: datetime) -> datetime:
    # Naive inputs are taken to be UTC already
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


class AnalyticsStore:
    def __init__(self, session: Session):
        self.session = session

    def append(self, score: SimilarityScore) -> SimilarityScore:
        """Persist one score atomically. On failure nothing is left behind."""
        if score.id is not None:
            raise PersistenceError(f"Score {score.id} is already stored; history rows are immutable")
        score.computed_at = _as_utc(score.computed_at)
        try:
            self.session.add(score)
            self.session.commit()
            self.session.refresh(score)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to append similarity score: {e}")
            raise PersistenceError(f"Analytics append failed: {e}") from e
        logger.info(
            f"Recorded similarity {score.value:.4f} "
            f"({score.long_term_size} long-term vs {score.short_term_size} short-term)"
        )
        return score

    def latest(self) -> Optional[SimilarityScore]:
        row = self.session.exec(
            select(SimilarityScore)
            .order_by(SimilarityScore.computed_at.desc(), SimilarityScore.id.desc())
        ).first()
        return row

    def history(self, since: Optional[datetime] = None) -> List[SimilarityScore]:
        """Scores in computation order, optionally only those at or after ``since``."""
        stmt = select(SimilarityScore)
        if since is not None:
            stmt = stmt.where(SimilarityScore.computed_at >= _as_utc(since))
        stmt = stmt.order_by(SimilarityScore.computed_at, SimilarityScore.id)
        try:
            return list(self.session.exec(stmt).all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to read similarity history: {e}")
            raise PersistenceError(f"Analytics history query failed: {e}") from e
