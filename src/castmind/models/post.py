"""
Typed feed records built at the ingestion boundary.

Upstream payloads are loosely shaped JSON. They are converted here into
``Post`` and ``ReactionEvent`` value objects, and anything that cannot be
converted raises ``PostValidationError`` so it never enters the core.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError, field_validator
from sqlmodel import Field, SQLModel

from castmind.errors import PostValidationError


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        ts = value
    else:
        try:
            ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError as e:
            raise PostValidationError(f"Unparseable timestamp {value!r}") from e
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


class Post(SQLModel):
    """A cast. Immutable once fetched; ``id`` is the uniqueness key."""

    id: str
    author_id: int
    text: str = ""
    created_at: Optional[datetime] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("id must not be blank")
        return v

    @classmethod
    def from_api(cls, payload: Any) -> "Post":
        """Build a Post from a feed API cast object."""
        if not isinstance(payload, dict):
            raise PostValidationError(f"Cast payload is not an object: {type(payload).__name__}")

        author = payload.get("author") or {}
        if not isinstance(author, dict) or author.get("fid") is None:
            raise PostValidationError(f"Cast {payload.get('hash')!r} has no author fid")

        reactions = payload.get("reactions") or {}
        replies = payload.get("replies") or {}
        channel = payload.get("channel") or {}
        for name, value in (("reactions", reactions), ("replies", replies), ("channel", channel)):
            if not isinstance(value, dict):
                raise PostValidationError(f"Cast {payload.get('hash')!r} has malformed {name}")
        details = {
            "author_username": author.get("username"),
            "parent_hash": payload.get("parent_hash"),
            "likes_count": reactions.get("likes_count"),
            "recasts_count": reactions.get("recasts_count"),
            "replies_count": replies.get("count"),
            "channel": channel.get("id"),
        }

        try:
            return cls.model_validate({
                "id": payload.get("hash"),
                "author_id": author.get("fid"),
                "text": payload.get("text") or "",
                "created_at": _parse_timestamp(payload.get("timestamp")),
                "details": {k: v for k, v in details.items() if v is not None},
            })
        except ValidationError as e:
            raise PostValidationError(f"Invalid cast {payload.get('hash')!r}: {e}") from e

    def validate_for_memory(self) -> None:
        """Check the fields needed to embed this post into a memory tier."""
        if not self.id:
            raise PostValidationError("Post has no id")
        if self.author_id is None:
            raise PostValidationError(f"Post {self.id} has no author")
        if not self.text or not self.text.strip():
            raise PostValidationError(f"Post {self.id} has no text")


class ReactionEvent(SQLModel):
    """A like by the pipeline owner. Refers to the post by key only."""

    post_id: str
    reactor_id: int
    liked_at: Optional[datetime] = None

    @classmethod
    def from_api(cls, payload: Any, reactor_id: int) -> "ReactionEvent":
        if not isinstance(payload, dict):
            raise PostValidationError("Reaction payload is not an object")
        cast = payload.get("cast") or {}
        post_id = cast.get("hash") if isinstance(cast, dict) else None
        if not post_id:
            raise PostValidationError("Reaction has no cast hash")
        return cls(
            post_id=post_id,
            reactor_id=reactor_id,
            liked_at=_parse_timestamp(payload.get("reaction_timestamp")),
        )
