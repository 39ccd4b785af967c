from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel
from castmind.models.base import utcnow


class SimilarityScore(SQLModel, table=True):
    """One alignment measurement between the two memory tiers. Never updated."""
    id: Optional[int] = Field(default=None, primary_key=True)
    computed_at: datetime = Field(default_factory=utcnow, index=True, nullable=False)

    value: float = Field(ge=0.0, le=1.0)
    long_term_size: int
    short_term_size: int
    metric: str = Field(default="centroid_cosine")
