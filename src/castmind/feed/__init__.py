from castmind.feed.client import NeynarClient, FeedPage, ReactionPage
from castmind.feed.pacing import PacingPolicy, fixed_delay
from castmind.feed.fetcher import FeedFetcher
from castmind.feed.reactions import ReactionFetcher

__all__ = [
    "NeynarClient",
    "FeedPage",
    "ReactionPage",
    "PacingPolicy",
    "fixed_delay",
    "FeedFetcher",
    "ReactionFetcher",
]
