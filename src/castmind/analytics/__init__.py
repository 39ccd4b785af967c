from castmind.analytics.store import AnalyticsStore
from castmind.analytics.similarity import METRICS, SimilarityScorer, best_match, centroid_cosine

__all__ = [
    "AnalyticsStore",
    "SimilarityScorer",
    "METRICS",
    "best_match",
    "centroid_cosine",
]
