import pytest
from unittest.mock import MagicMock
from sqlmodel import Session, SQLModel, create_engine
from castmind.analytics.store import AnalyticsStore
from castmind.config import NeynarConfig
from castmind.errors import InsufficientDataError, PipelineError, TransportError
from castmind.feed.client import FeedPage, ReactionPage
from castmind.feed.pacing import PacingPolicy, fixed_delay
from castmind.memory.tiers import MemoryTierBuilder
from castmind.models.memory import MemoryTier
from castmind.models.post import Post, ReactionEvent
from castmind.pipeline import run_pipeline


class FakeEmbedder:
    model = "fake-embedding"

    def embed(self, texts):
        return [[1.0 + (len(t) % 3), float(len(t) % 5), 1.0] for t in texts]


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def config():
    return NeynarConfig(api_key="test-key", owner_fid=99, target_limit=200)


@pytest.fixture
def pacing():
    return PacingPolicy(delay=fixed_delay(1.0), sleep=lambda s: None)


def authored(n, start=0):
    return [Post(id=f"0xa{i}", author_id=12021, text=f"authored cast number {i}") for i in range(start, start + n)]


def liked(n):
    posts = [Post(id=f"0xb{i}", author_id=7, text=f"liked cast {i}") for i in range(n)]
    return ReactionPage(
        reactions=[ReactionEvent(post_id=p.id, reactor_id=99) for p in posts],
        posts=posts,
        next_cursor=None,
        raw_count=n,
    )


def make_client(casts_pages, likes):
    client = MagicMock()
    client.get_user_casts.side_effect = casts_pages
    client.get_user_reactions.return_value = likes
    return client


def test_full_run_records_score(session, config, pacing):
    client = make_client(
        [FeedPage(posts=authored(150), next_cursor="c1", raw_count=150),
         FeedPage(posts=authored(12, 150), next_cursor=None, raw_count=12)],
        liked(5),
    )

    result = run_pipeline(config, session, FakeEmbedder(), user_id=12021, client=client, pacing=pacing)

    assert len(result.posts) == 162
    assert len(result.liked_posts) == 5
    assert result.long_term.size() == 162
    assert result.short_term.size() == 5
    assert result.score.long_term_size == 162
    assert result.score.short_term_size == 5
    assert 0.0 <= result.score.value <= 1.0
    assert [r.tier for r in result.reports] == [MemoryTier.LONG_TERM, MemoryTier.SHORT_TERM]

    latest = AnalyticsStore(session).latest()
    assert latest.id == result.score.id
    client.get_user_reactions.assert_called_once_with(99, 25)
    # Caller-owned client is left open
    client.close.assert_not_called()


def test_user_defaults_to_owner(session, config, pacing):
    client = make_client([FeedPage(posts=authored(3), next_cursor=None, raw_count=3)], liked(2))

    run_pipeline(config, session, FakeEmbedder(), client=client, pacing=pacing)

    assert client.get_user_casts.call_args.args[0] == 99


def test_fresh_run_replaces_previous_memory(session, config, pacing):
    MemoryTierBuilder(session, FakeEmbedder()).build_tier(MemoryTier.LONG_TERM, authored(4, start=500))
    client = make_client([FeedPage(posts=authored(3), next_cursor=None, raw_count=3)], liked(2))

    result = run_pipeline(config, session, FakeEmbedder(), client=client, pacing=pacing)

    assert result.long_term.post_ids() == ["0xa0", "0xa1", "0xa2"]


def test_keep_memory_upserts_into_existing_tier(session, config, pacing):
    MemoryTierBuilder(session, FakeEmbedder()).build_tier(MemoryTier.LONG_TERM, authored(4, start=500))
    client = make_client([FeedPage(posts=authored(3), next_cursor=None, raw_count=3)], liked(2))

    result = run_pipeline(config, session, FakeEmbedder(), client=client, pacing=pacing, fresh=False)

    assert result.long_term.size() == 7


def test_no_likes_fails_scoring_stage(session, config, pacing):
    client = make_client([FeedPage(posts=authored(3), next_cursor=None, raw_count=3)], liked(0))

    with pytest.raises(PipelineError) as exc:
        run_pipeline(config, session, FakeEmbedder(), client=client, pacing=pacing)

    assert exc.value.stage == "score_alignment"
    assert isinstance(exc.value.cause, InsufficientDataError)
    assert AnalyticsStore(session).history() == []


def test_transport_failure_aborts_before_memory_is_touched(session, config, pacing):
    builder = MemoryTierBuilder(session, FakeEmbedder())
    builder.build_tier(MemoryTier.LONG_TERM, authored(2, start=900))
    client = make_client([TransportError("HTTP 502", status_code=502)], liked(2))

    with pytest.raises(PipelineError) as exc:
        run_pipeline(config, session, FakeEmbedder(), client=client, pacing=pacing)

    assert exc.value.stage == "fetch_posts"
    assert isinstance(exc.value.cause, TransportError)
    client.get_user_reactions.assert_not_called()
    assert builder.handle(MemoryTier.LONG_TERM).size() == 2
    assert AnalyticsStore(session).history() == []


class BrokenEmbedder:
    model = "fake-embedding"

    def embed(self, texts):
        raise RuntimeError("embedding service unavailable")


def test_failed_fresh_build_keeps_previous_memory(session, config, pacing):
    builder = MemoryTierBuilder(session, FakeEmbedder())
    builder.build_tier(MemoryTier.LONG_TERM, authored(2, start=700))
    builder.build_tier(MemoryTier.SHORT_TERM, liked(1).posts)
    client = make_client([FeedPage(posts=authored(3), next_cursor=None, raw_count=3)], liked(2))

    with pytest.raises(PipelineError) as exc:
        run_pipeline(config, session, BrokenEmbedder(), client=client, pacing=pacing)

    assert exc.value.stage == "build_long_term"
    assert builder.handle(MemoryTier.LONG_TERM).post_ids() == ["0xa700", "0xa701"]
    assert builder.handle(MemoryTier.SHORT_TERM).post_ids() == ["0xb0"]
