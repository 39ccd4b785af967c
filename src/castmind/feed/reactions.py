from typing import List, Optional

from castmind.config import NeynarConfig
from castmind.errors import TransportError
from castmind.feed.client import NeynarClient, ReactionPage
from castmind.feed.pacing import PacingPolicy
from castmind.logging import logger
from castmind.models.post import Post, ReactionEvent


class ReactionFetcher:
    """Recent likes by the pipeline owner, used as short-term memory."""

    def __init__(self, client: NeynarClient, config: NeynarConfig, pacing: Optional[PacingPolicy] = None):
        self.client = client
        self.config = config
        self.pacing = pacing or PacingPolicy.from_config(config)

    def _fetch(self) -> ReactionPage:
        fid = self.config.owner_fid
        try:
            return self.pacing.call(
                lambda: self.client.get_user_reactions(fid, self.config.reaction_limit)
            )
        except TransportError as e:
            raise TransportError(
                f"Reaction fetch for user {fid} failed: {e}",
                operation=e.operation,
                status_code=e.status_code,
            ) from e

    def fetch_reactions(self) -> List[ReactionEvent]:
        return self._fetch().reactions

    def fetch_liked_posts(self) -> List[Post]:
        """Liked casts in API delivery order."""
        page = self._fetch()
        logger.info(f"Reactions: fetched {len(page.posts)} liked casts ({page.skipped} skipped)")
        return page.posts
