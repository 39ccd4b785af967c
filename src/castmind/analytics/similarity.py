"""
Alignment score between long-term and short-term memory.

Both metrics read each tier in source post id order and accumulate in float64,
so identical tier contents always give the same score. Cosines are mapped from
[-1, 1] onto [0, 1].
"""
from typing import Callable, Dict

import numpy as np

from castmind.analytics.store import AnalyticsStore
from castmind.errors import InsufficientDataError
from castmind.logging import logger
from castmind.memory.tiers import TierHandle
from castmind.memory.vectors import centroid, cosine_similarity, normalize_rows, to_unit_interval
from castmind.models.analytics import SimilarityScore

Metric = Callable[[np.ndarray, np.ndarray], float]


def centroid_cosine(long_term: np.ndarray, short_term: np.ndarray) -> float:
    """Cosine between the mean directions of the two tiers."""
    return to_unit_interval(cosine_similarity(centroid(long_term), centroid(short_term)))


def best_match(long_term: np.ndarray, short_term: np.ndarray) -> float:
    """Mean, over short-term records, of the closest long-term cosine."""
    sims = normalize_rows(short_term.astype(np.float64)) @ normalize_rows(long_term.astype(np.float64)).T
    return to_unit_interval(float(sims.max(axis=1).mean()))


METRICS: Dict[str, Metric] = {
    "centroid_cosine": centroid_cosine,
    "best_match": best_match,
}


class SimilarityScorer:
    def __init__(self, store: AnalyticsStore, metric: str = "centroid_cosine"):
        if metric not in METRICS:
            raise ValueError(f"Unknown similarity metric {metric!r}; choose from {sorted(METRICS)}")
        self.store = store
        self.metric = metric

    def score(self, long_term: TierHandle, short_term: TierHandle) -> SimilarityScore:
        """Compute the score without recording it."""
        _, long_matrix = long_term._matrix()
        _, short_matrix = short_term._matrix()

        if long_matrix.shape[0] == 0:
            raise InsufficientDataError("Long-term memory is empty; cannot compute alignment")
        if short_matrix.shape[0] == 0:
            raise InsufficientDataError("Short-term memory is empty; cannot compute alignment")
        if long_matrix.shape[1] != short_matrix.shape[1]:
            raise ValueError(
                f"Tiers were embedded with different sizes ({long_matrix.shape[1]} vs {short_matrix.shape[1]})"
            )

        value = METRICS[self.metric](long_matrix, short_matrix)
        return SimilarityScore(
            value=value,
            long_term_size=long_matrix.shape[0],
            short_term_size=short_matrix.shape[0],
            metric=self.metric,
        )

    def compute_alignment(self, long_term: TierHandle, short_term: TierHandle) -> SimilarityScore:
        """Score the two tiers and append the result to the analytics history."""
        score = self.score(long_term, short_term)
        logger.info(
            f"Alignment ({self.metric}) = {score.value:.4f} over "
            f"{score.long_term_size} long-term vs {score.short_term_size} short-term records"
        )
        return self.store.append(score)
