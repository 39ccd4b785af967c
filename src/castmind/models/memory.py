from enum import Enum
from typing import Optional
from sqlmodel import Field, UniqueConstraint
from castmind.models.base import TimestampMixin
import numpy as np

class MemoryTier(str, Enum):
    LONG_TERM = "LONG_TERM"
    SHORT_TERM = "SHORT_TERM"

class MemoryRecord(TimestampMixin, table=True):
    __table_args__ = (
        UniqueConstraint("tier", "source_post_id", name="unique_post_per_tier"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tier: MemoryTier = Field(index=True)
    source_post_id: str

    model: str
    dims: int
    vector: bytes # Store as BLOB (numpy tobytes)
    text_hash: str

    def set_vector(self, embedding: list[float]):
        """Convert list of floats to bytes for storage."""
        arr = np.array(embedding, dtype=np.float32)
        self.vector = arr.tobytes()
        self.dims = len(embedding)

    def get_vector(self) -> np.ndarray:
        """Convert bytes back to numpy array."""
        return np.frombuffer(self.vector, dtype=np.float32)
