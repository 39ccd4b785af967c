"""
Builds the two memory tiers from posts.

Long-term memory holds what the user wrote; short-term memory holds what they
recently liked. The tiers are independent namespaces, so a post may live in
both. Within a tier a post id maps to exactly one record, and re-inserting the
same id overwrites the earlier embedding.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from sqlmodel import Session

from castmind.errors import PostValidationError
from castmind.logging import logger
from castmind.memory.embeddings import Embedder, compute_text_hash
from castmind.memory.store import TierStore
from castmind.models.memory import MemoryTier
from castmind.models.post import Post


@dataclass
class TierBuildReport:
    tier: MemoryTier
    received: int
    inserted: int
    skipped: int


class TierHandle:
    """
    Read access to one built tier for scoring and downstream generation.

    Callers get post ids and similarity matches, never raw vectors.
    """

    def __init__(self, store: TierStore, tier: MemoryTier, embedder: Embedder):
        self._store = store
        self._embedder = embedder
        self.tier = tier

    def __repr__(self) -> str:
        return f"TierHandle(tier={self.tier.value}, size={self.size()})"

    def size(self) -> int:
        return self._store.count(self.tier)

    def is_empty(self) -> bool:
        return self.size() == 0

    def post_ids(self) -> List[str]:
        return [r.source_post_id for r in self._store.records(self.tier)]

    def query(self, text: str, k: int = 5) -> List[Tuple[str, float]]:
        """Posts in this tier closest to ``text``."""
        vector = self._embedder.embed([text])[0]
        return self.query_vector(vector, k)

    def query_vector(self, vector: Sequence[float], k: int = 5) -> List[Tuple[str, float]]:
        return self._store.query(self.tier, vector, k)

    def _matrix(self) -> Tuple[List[str], np.ndarray]:
        return self._store.matrix(self.tier)


class MemoryTierBuilder:
    def __init__(self, session: Session, embedder: Embedder):
        self.store = TierStore(session)
        self.embedder = embedder
        self.last_report: Optional[TierBuildReport] = None

    def handle(self, tier: MemoryTier) -> TierHandle:
        """Handle on a tier as it currently stands in the store."""
        return TierHandle(self.store, tier, self.embedder)

    def clear_tier(self, tier: MemoryTier) -> None:
        self.store.clear(tier)

    def build_tier(self, tier: MemoryTier, posts: Sequence[Post], replace: bool = False) -> TierHandle:
        """
        Embed ``posts`` into ``tier`` and return a handle on it.

        Posts without an id, author or text are skipped and counted. Duplicate
        ids in the batch collapse to the last occurrence. All embeddings for
        the batch are requested in one call, then written in one transaction.

        With ``replace`` the tier ends up holding exactly this batch. The old
        records are removed in the write transaction, after embedding, so an
        embedding or write failure leaves the tier as it was.
        """
        valid: Dict[str, Post] = {}
        skipped = 0
        for post in posts:
            try:
                post.validate_for_memory()
            except PostValidationError as e:
                skipped += 1
                logger.warning(f"Skipping post for {tier.value}: {e}")
                continue
            # Last occurrence wins
            valid[post.id] = post

        batch = list(valid.values())
        inserted = 0
        vectors = []
        if batch:
            texts = [p.text for p in batch]
            logger.info(f"Generating embeddings for {len(texts)} {tier.value} posts...")
            vectors = self.embedder.embed(texts)
            if len(vectors) != len(batch):
                raise ValueError(f"Embedder returned {len(vectors)} vectors for {len(batch)} texts")

        if batch or replace:
            items = [
                (post.id, vector, compute_text_hash(post.text))
                for post, vector in zip(batch, vectors)
            ]
            inserted = self.store.upsert_many(tier, items, model=self.embedder.model, replace=replace)

        self.last_report = TierBuildReport(tier=tier, received=len(posts), inserted=inserted, skipped=skipped)
        logger.info(f"Built {tier.value}: {inserted} records written, {skipped} skipped")
        return self.handle(tier)

    def process_long_term_memory(self, posts: Sequence[Post], replace: bool = False) -> TierHandle:
        return self.build_tier(MemoryTier.LONG_TERM, posts, replace=replace)

    def process_short_term_memory(self, posts: Sequence[Post], replace: bool = False) -> TierHandle:
        return self.build_tier(MemoryTier.SHORT_TERM, posts, replace=replace)
