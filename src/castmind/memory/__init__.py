from castmind.memory.embeddings import Embedder, OpenAIEmbedder, compute_text_hash
from castmind.memory.store import TierStore
from castmind.memory.tiers import MemoryTierBuilder, TierBuildReport, TierHandle

__all__ = [
    "Embedder",
    "OpenAIEmbedder",
    "compute_text_hash",
    "TierStore",
    "MemoryTierBuilder",
    "TierBuildReport",
    "TierHandle",
]
