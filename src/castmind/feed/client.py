"""
Thin HTTP client for the Neynar feed API.

Only the request/response shape matters to the rest of the package: a page of
casts plus an optional continuation cursor. Transport failures and non-success
statuses surface as ``TransportError``.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

from castmind.config import NeynarConfig
from castmind.errors import PostValidationError, TransportError
from castmind.logging import logger
from castmind.models.post import Post, ReactionEvent


@dataclass
class FeedPage:
    posts: List[Post]
    next_cursor: Optional[str]
    raw_count: int # Items upstream returned, before validation
    skipped: int = 0


@dataclass
class ReactionPage:
    reactions: List[ReactionEvent]
    posts: List[Post]
    next_cursor: Optional[str]
    raw_count: int
    skipped: int = 0


def parse_posts(items: List[Any]) -> Tuple[List[Post], int]:
    """Convert raw casts into Posts, dropping the ones that fail validation."""
    posts = []
    skipped = 0
    for item in items:
        try:
            posts.append(Post.from_api(item))
        except PostValidationError as e:
            skipped += 1
            logger.warning(f"Skipping invalid cast: {e}")
    return posts, skipped


class NeynarClient:
    def __init__(self, config: NeynarConfig, transport: Optional[httpx.BaseTransport] = None):
        self.config = config
        self._http = httpx.Client(
            base_url=config.base_url,
            headers={
                "accept": "application/json",
                "x-api-key": config.api_key.get_secret_value(),
            },
            timeout=config.timeout_seconds,
            transport=transport,
        )

    def close(self):
        self._http.close()

    def __enter__(self) -> "NeynarClient":
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _get(self, path: str, params: Dict[str, Any], operation: str) -> Dict[str, Any]:
        try:
            response = self._http.get(path, params=params)
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to {operation}: {e}", operation=operation) from e

        if not response.is_success:
            raise TransportError(
                f"Failed to {operation}: HTTP {response.status_code}",
                operation=operation,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(
                f"Failed to {operation}: response is not JSON",
                operation=operation,
                status_code=response.status_code,
            ) from e

        if not isinstance(data, dict):
            raise TransportError(f"Failed to {operation}: unexpected response shape", operation=operation)
        return data

    @staticmethod
    def _next_cursor(data: Dict[str, Any]) -> Optional[str]:
        nxt = data.get("next") or {}
        return nxt.get("cursor") or None

    def get_user_casts(
        self,
        fid: int,
        limit: int,
        cursor: Optional[str] = None,
        include_replies: bool = True,
    ) -> FeedPage:
        """Fetch one page of casts authored by ``fid``."""
        params: Dict[str, Any] = {
            "fid": fid,
            "limit": limit,
            "include_replies": "true" if include_replies else "false",
        }
        if cursor:
            params["cursor"] = cursor

        data = self._get("/farcaster/feed/user/casts", params, "fetch casts")
        raw = data.get("casts") or []
        posts, skipped = parse_posts(raw)
        next_cursor = self._next_cursor(data)

        logger.info(f"Feed API response: casts={len(raw)} cursor={'yes' if next_cursor else 'none'}")
        return FeedPage(posts=posts, next_cursor=next_cursor, raw_count=len(raw), skipped=skipped)

    def get_user_reactions(self, fid: int, limit: int, cursor: Optional[str] = None) -> ReactionPage:
        """Fetch one page of casts liked by ``fid``."""
        params: Dict[str, Any] = {"fid": fid, "type": "likes", "limit": limit}
        if cursor:
            params["cursor"] = cursor

        data = self._get("/farcaster/reactions/user", params, "fetch reactions")
        raw = data.get("reactions") or []

        reactions = []
        posts = []
        skipped = 0
        for item in raw:
            # An event is kept only together with its cast
            try:
                event = ReactionEvent.from_api(item, reactor_id=fid)
                post = Post.from_api(item.get("cast"))
            except PostValidationError as e:
                skipped += 1
                logger.warning(f"Skipping invalid reaction: {e}")
                continue
            reactions.append(event)
            posts.append(post)

        logger.info(f"Reactions API response: reactions={len(raw)} valid_posts={len(posts)}")
        return ReactionPage(
            reactions=reactions,
            posts=posts,
            next_cursor=self._next_cursor(data),
            raw_count=len(raw),
            skipped=skipped,
        )
