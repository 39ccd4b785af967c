"""
End-to-end run: fetch feed and likes, build both memory tiers, score them.

Stages run strictly in order and any failure aborts the run, wrapped in a
PipelineError naming the stage. There is no resume; re-run from the start.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, TypeVar

from sqlmodel import Session

from castmind.analytics.similarity import SimilarityScorer
from castmind.analytics.store import AnalyticsStore
from castmind.config import NeynarConfig
from castmind.errors import PipelineError
from castmind.feed.client import NeynarClient
from castmind.feed.fetcher import FeedFetcher
from castmind.feed.pacing import PacingPolicy
from castmind.feed.reactions import ReactionFetcher
from castmind.logging import logger, new_run_id
from castmind.memory.embeddings import Embedder
from castmind.memory.tiers import MemoryTierBuilder, TierBuildReport, TierHandle
from castmind.models.analytics import SimilarityScore
from castmind.models.post import Post

T = TypeVar("T")


@dataclass
class PipelineResult:
    run_id: str
    long_term: TierHandle
    short_term: TierHandle
    score: SimilarityScore
    posts: List[Post]
    liked_posts: List[Post]
    reports: List[TierBuildReport]


def _stage(name: str, fn: Callable[[], T]) -> T:
    logger.info(f"Stage {name}: starting")
    try:
        result = fn()
    except Exception as e:
        logger.error(f"Stage {name} failed: {e}")
        raise PipelineError(name, e) from e
    logger.info(f"Stage {name}: done")
    return result


def run_pipeline(
    config: NeynarConfig,
    session: Session,
    embedder: Embedder,
    user_id: Optional[int] = None,
    client: Optional[NeynarClient] = None,
    pacing: Optional[PacingPolicy] = None,
    metric: str = "centroid_cosine",
    fresh: bool = True,
) -> PipelineResult:
    """
    Run the whole pipeline once.

    ``user_id`` is whose authored casts become long-term memory (defaults to
    the owner). Short-term memory always comes from the owner's likes. With
    ``fresh`` each tier is replaced by the new batch in one transaction, so a
    failed build keeps that tier's previous contents.
    """
    run_id = new_run_id()
    target = user_id if user_id is not None else config.owner_fid
    logger.info(f"Pipeline run for fid {target} (owner {config.owner_fid})")

    own_client = client is None
    if client is None:
        client = NeynarClient(config)

    try:
        feed = FeedFetcher(client, config, pacing)
        reactions = ReactionFetcher(client, config, pacing)
        posts = _stage("fetch_posts", lambda: feed.fetch_user_posts(target))
        liked = _stage("fetch_reactions", reactions.fetch_liked_posts)
    finally:
        if own_client:
            client.close()

    builder = MemoryTierBuilder(session, embedder)
    long_term = _stage(
        "build_long_term", lambda: builder.process_long_term_memory(posts, replace=fresh)
    )
    long_report = builder.last_report
    short_term = _stage(
        "build_short_term", lambda: builder.process_short_term_memory(liked, replace=fresh)
    )
    short_report = builder.last_report

    scorer = SimilarityScorer(AnalyticsStore(session), metric=metric)
    score = _stage("score_alignment", lambda: scorer.compute_alignment(long_term, short_term))

    return PipelineResult(
        run_id=run_id,
        long_term=long_term,
        short_term=short_term,
        score=score,
        posts=posts,
        liked_posts=liked,
        reports=[long_report, short_report],
    )
