from castmind.models.post import Post, ReactionEvent
from castmind.models.memory import MemoryRecord, MemoryTier
from castmind.models.analytics import SimilarityScore

__all__ = [
    "Post", "ReactionEvent",
    "MemoryRecord", "MemoryTier",
    "SimilarityScore",
]
