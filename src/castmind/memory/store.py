"""
SQLite-backed vector store holding one namespace per memory tier.

Vectors are kept as float32 blobs on ``MemoryRecord`` and searched in memory
with numpy, which is plenty for a few hundred posts per tier.
"""
from typing import Iterable, List, Sequence, Tuple

import numpy as np
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, select

from castmind.errors import PersistenceError
from castmind.logging import logger
from castmind.memory.vectors import batch_cosine_similarity
from castmind.models.memory import MemoryRecord, MemoryTier

# (source_post_id, vector, text_hash)
UpsertItem = Tuple[str, Sequence[float], str]


class TierStore:
    def __init__(self, session: Session):
        self.session = session

    def _upsert_row(self, tier: MemoryTier, key: str, vector: Sequence[float], text_hash: str, model: str) -> MemoryRecord:
        record = self.session.exec(
            select(MemoryRecord).where(
                MemoryRecord.tier == tier,
                MemoryRecord.source_post_id == key,
            )
        ).first()
        if record is None:
            record = MemoryRecord(tier=tier, source_post_id=key, model=model, dims=0, vector=b"", text_hash=text_hash)
        else:
            record.model = model
            record.text_hash = text_hash
        record.set_vector(list(vector))
        self.session.add(record)
        return record

    def _commit(self, operation: str):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f"Memory store {operation} failed: {e}") from e

    def upsert(self, tier: MemoryTier, key: str, vector: Sequence[float], text_hash: str, model: str) -> MemoryRecord:
        """Insert or overwrite the record for ``key`` in ``tier``."""
        record = self._upsert_row(tier, key, vector, text_hash, model)
        self._commit("upsert")
        return record

    def upsert_many(self, tier: MemoryTier, items: Iterable[UpsertItem], model: str, replace: bool = False) -> int:
        """
        Upsert a batch in one transaction. Returns the number of rows written.

        With ``replace`` the tier's existing rows are deleted in the same
        transaction, so a failed batch leaves the previous contents intact.
        """
        count = 0
        try:
            if replace:
                self.session.execute(delete(MemoryRecord).where(MemoryRecord.tier == tier))
            for key, vector, text_hash in items:
                self._upsert_row(tier, key, vector, text_hash, model)
                # Flush so a later duplicate key in the same batch finds this row
                self.session.flush()
                count += 1
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f"Memory store upsert failed: {e}") from e
        except Exception:
            self.session.rollback()
            raise
        self._commit("upsert")
        if replace:
            logger.info(f"Replaced memory tier {tier.value} with {count} records")
        return count

    def records(self, tier: MemoryTier) -> List[MemoryRecord]:
        """All records of a tier, ordered by source post id."""
        return list(self.session.exec(
            select(MemoryRecord)
            .where(MemoryRecord.tier == tier)
            .order_by(MemoryRecord.source_post_id)
        ).all())

    def count(self, tier: MemoryTier) -> int:
        return self.session.exec(
            select(func.count(MemoryRecord.id)).where(MemoryRecord.tier == tier)
        ).one()

    def clear(self, tier: MemoryTier) -> None:
        self.session.execute(delete(MemoryRecord).where(MemoryRecord.tier == tier))
        self._commit("clear")
        logger.info(f"Cleared memory tier {tier.value}")

    def matrix(self, tier: MemoryTier) -> Tuple[List[str], np.ndarray]:
        """Post ids and stacked vectors for a tier, in source post id order."""
        records = self.records(tier)
        if not records:
            return [], np.empty((0, 0), dtype=np.float32)

        dims = records[0].dims
        mismatched = [r.source_post_id for r in records if r.dims != dims]
        if mismatched:
            raise PersistenceError(
                f"Tier {tier.value} mixes embedding sizes; clear it and rebuild ({len(mismatched)} rows differ)"
            )
        ids = [r.source_post_id for r in records]
        return ids, np.vstack([r.get_vector() for r in records])

    def query(self, tier: MemoryTier, vector: Sequence[float], k: int = 5) -> List[Tuple[str, float]]:
        """
        Nearest records in ``tier`` to ``vector`` by cosine similarity.
        Ties keep source post id order.
        """
        ids, matrix = self.matrix(tier)
        query_vec = np.asarray(vector, dtype=np.float32)
        if not ids:
            return []
        if matrix.shape[1] != query_vec.shape[0]:
            logger.warning(
                f"Ignoring {query_vec.shape[0]}-dim query against {matrix.shape[1]}-dim {tier.value} tier"
            )
            return []

        scores = batch_cosine_similarity(query_vec, matrix)
        top_indices = np.argsort(-scores, kind="stable")[:k]
        return [(ids[idx], float(scores[idx])) for idx in top_indices]
