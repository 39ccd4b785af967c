"""
Paginated fetch of a user's authored casts.

Termination rules, checked after every page:
- the upstream returned no continuation cursor (exhausted), or
- the upstream returned an empty page (a cursor alone does not keep us going), or
- the accumulated result reached ``target_limit``.

A short page that still carries a cursor does not stop the loop. The fetcher
never deduplicates; overlapping upstream pages propagate as-is.
"""
from functools import partial
from typing import List, Optional

from castmind.config import NeynarConfig
from castmind.errors import TransportError
from castmind.feed.client import NeynarClient
from castmind.feed.pacing import PacingPolicy
from castmind.logging import logger
from castmind.models.post import Post


class FeedFetcher:
    def __init__(self, client: NeynarClient, config: NeynarConfig, pacing: Optional[PacingPolicy] = None):
        self.client = client
        self.config = config
        self.pacing = pacing or PacingPolicy.from_config(config)
        self.last_request_count = 0

    def fetch_user_posts(self, user_id: int, target_limit: Optional[int] = None) -> List[Post]:
        """
        Fetch up to ``target_limit`` casts authored by ``user_id``, newest first.

        Pages are requested one at a time and the pacing policy waits between
        them. Any transport failure aborts the whole fetch; no partial result
        is returned.
        """
        limit = self.config.target_limit if target_limit is None else target_limit
        if limit < 0:
            raise ValueError(f"target_limit must be >= 0, got {limit}")

        accumulated: List[Post] = []
        cursor: Optional[str] = None
        requests = 0

        while len(accumulated) < limit:
            page_size = min(self.config.page_cap, limit - len(accumulated))
            requests += 1
            fetch_page = partial(
                self.client.get_user_casts,
                user_id,
                page_size,
                cursor=cursor,
                include_replies=self.config.include_replies,
            )
            try:
                page = self.pacing.call(fetch_page)
            except TransportError as e:
                self.last_request_count = requests
                raise TransportError(
                    f"Feed fetch for user {user_id} aborted on page {requests}: {e}",
                    operation=e.operation,
                    status_code=e.status_code,
                ) from e

            accumulated.extend(page.posts)
            logger.info(f"Feed: fetched {len(page.posts)} casts (Total: {len(accumulated)})")

            cursor = page.next_cursor
            if not cursor:
                break
            if page.raw_count == 0:
                logger.warning(f"Feed: empty page with a cursor for user {user_id}; stopping")
                break
            if len(accumulated) >= limit:
                break

            self.pacing.wait(requests)

        self.last_request_count = requests
        result = accumulated[:limit]
        logger.info(f"Feed: completed fetching {len(result)} total casts in {requests} requests")
        return result
