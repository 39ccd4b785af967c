import pytest
import numpy as np
from sqlmodel import Session, SQLModel, create_engine
from castmind.analytics.similarity import SimilarityScorer, best_match, centroid_cosine
from castmind.analytics.store import AnalyticsStore
from castmind.errors import InsufficientDataError
from castmind.memory.tiers import MemoryTierBuilder
from castmind.models.memory import MemoryTier
from castmind.models.post import Post


class VectorEmbedder:
    """Embeds 'x,y,z' texts as the literal vector."""
    model = "literal"

    def embed(self, texts):
        return [[float(v) for v in t.split(",")] for t in texts]


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def builder(session):
    return MemoryTierBuilder(session, VectorEmbedder())


@pytest.fixture
def store(session):
    return AnalyticsStore(session)


def posts(*vectors, prefix="0x"):
    return [Post(id=f"{prefix}{i}", author_id=1, text=v) for i, v in enumerate(vectors)]


def test_identical_directions_score_one(builder, store):
    long_term = builder.build_tier(MemoryTier.LONG_TERM, posts("1,0", "2,0"))
    short_term = builder.build_tier(MemoryTier.SHORT_TERM, posts("3,0"))

    score = SimilarityScorer(store).compute_alignment(long_term, short_term)

    assert score.value == pytest.approx(1.0)
    assert score.long_term_size == 2
    assert score.short_term_size == 1
    assert score.metric == "centroid_cosine"
    assert score.id is not None


def test_opposite_directions_score_zero(builder, store):
    long_term = builder.build_tier(MemoryTier.LONG_TERM, posts("1,0"))
    short_term = builder.build_tier(MemoryTier.SHORT_TERM, posts("-1,0"))

    score = SimilarityScorer(store).compute_alignment(long_term, short_term)

    assert score.value == pytest.approx(0.0)


def test_orthogonal_scores_half(builder, store):
    long_term = builder.build_tier(MemoryTier.LONG_TERM, posts("1,0"))
    short_term = builder.build_tier(MemoryTier.SHORT_TERM, posts("0,1"))

    assert SimilarityScorer(store).compute_alignment(long_term, short_term).value == pytest.approx(0.5)


def test_score_is_deterministic_and_each_call_appends(builder, store):
    long_term = builder.build_tier(MemoryTier.LONG_TERM, posts("0.3,0.1,0.7", "0.9,0.2,0.1", "0.05,0.8,0.4"))
    short_term = builder.build_tier(MemoryTier.SHORT_TERM, posts("0.5,0.5,0.1", "0.2,0.1,0.9"))
    scorer = SimilarityScorer(store)

    first = scorer.compute_alignment(long_term, short_term)
    second = scorer.compute_alignment(long_term, short_term)

    assert first.value == second.value
    assert 0.0 <= first.value <= 1.0
    assert len(store.history()) == 2


def test_insertion_order_does_not_change_score(session, store):
    vectors = ["0.3,0.1,0.7", "0.9,0.2,0.1", "0.05,0.8,0.4"]
    b = MemoryTierBuilder(session, VectorEmbedder())

    short_term = b.build_tier(MemoryTier.SHORT_TERM, posts("0.5,0.5,0.1"))
    forward = b.build_tier(MemoryTier.LONG_TERM, posts(*vectors))
    value_forward = SimilarityScorer(store).score(forward, short_term).value

    b.clear_tier(MemoryTier.LONG_TERM)
    reversed_posts = list(reversed(posts(*vectors)))
    backward = b.build_tier(MemoryTier.LONG_TERM, reversed_posts)
    value_backward = SimilarityScorer(store).score(backward, short_term).value

    assert value_forward == value_backward


def test_empty_short_term_raises_and_appends_nothing(builder, store):
    long_term = builder.build_tier(MemoryTier.LONG_TERM, posts("1,0"))
    short_term = builder.build_tier(MemoryTier.SHORT_TERM, [])

    with pytest.raises(InsufficientDataError):
        SimilarityScorer(store).compute_alignment(long_term, short_term)

    assert store.history() == []
    assert store.latest() is None


def test_empty_long_term_raises(builder, store):
    long_term = builder.build_tier(MemoryTier.LONG_TERM, [])
    short_term = builder.build_tier(MemoryTier.SHORT_TERM, posts("1,0"))

    with pytest.raises(InsufficientDataError):
        SimilarityScorer(store).compute_alignment(long_term, short_term)
    assert store.history() == []


def test_best_match_metric(builder, store):
    long_term = builder.build_tier(MemoryTier.LONG_TERM, posts("1,0", "0,1"))
    short_term = builder.build_tier(MemoryTier.SHORT_TERM, posts("1,0", "0,1"))

    score = SimilarityScorer(store, metric="best_match").compute_alignment(long_term, short_term)

    # Every short-term record has an exact long-term match
    assert score.value == pytest.approx(1.0)
    assert score.metric == "best_match"


def test_unknown_metric_rejected(store):
    with pytest.raises(ValueError):
        SimilarityScorer(store, metric="jaccard")


def test_metric_functions_directly():
    a = np.array([[1, 0], [0, 1]], dtype=np.float32)
    b = np.array([[1, 1]], dtype=np.float32)
    assert centroid_cosine(a, b) == pytest.approx(1.0)
    assert best_match(a, b) == pytest.approx((np.sqrt(0.5) + 1) / 2)
