"""Shared test fixtures and configuration for pytest."""
import os

# The database module builds its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import random
from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cinestream_recommendation_service.models.base import Base
from cinestream_recommendation_service.ranking.types import Interaction, Item
from cinestream_recommendation_service.storage import RecommendationCache

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Controllable epoch-seconds clock for cache tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


# ===== Database Fixtures =====

@pytest.fixture(scope="function")
def test_db_engine():
    """Create an in-memory SQLite database engine shared by every session."""
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_session_factory(test_db_engine):
    """Session factory bound to the test engine."""
    return sessionmaker(bind=test_db_engine)


@pytest.fixture(scope="function")
def test_db_session(test_session_factory):
    """Create a database session for testing."""
    session = test_session_factory()
    yield session
    session.close()


# ===== Sample Data Fixtures =====

@pytest.fixture
def sample_movie_data() -> dict:
    """Sample movie payload for testing."""
    return {
        'id': 'm1',
        'title': 'The Long Goodbye',
        'description': 'A family drama.',
        'thumbnail': 'https://cdn.example.com/m1.jpg',
        'duration': 7200,
        'categories': ['Drama'],
        'length_category': 'long',
        'directors': ['Ava Reyes'],
        'actors': ['Sam Hart', 'Lena Cho'],
        'keywords': ['family'],
        'score': 9.0,
        'release_date': '2024-05-01',
    }


@pytest.fixture
def sample_movies_list() -> list[dict]:
    """Small catalog covering several categories."""
    return [
        {
            'id': 'm1', 'title': 'The Long Goodbye', 'categories': ['Drama'],
            'length_category': 'long', 'directors': ['Ava Reyes'], 'actors': ['Sam Hart'],
            'keywords': ['family'], 'score': 9.0, 'release_date': '2023-01-10',
        },
        {
            'id': 'm2', 'title': 'Night Court', 'categories': ['Drama', 'Crime'],
            'length_category': 'long', 'directors': ['Ben Ortiz'], 'actors': ['Mia Lowe'],
            'keywords': ['crime'], 'score': 8.0, 'release_date': '2022-03-01',
        },
        {
            'id': 'm3', 'title': 'Laugh Track', 'categories': ['Comedy'],
            'length_category': 'short', 'directors': ['Cal Diaz'], 'actors': ['Ned Fox'],
            'keywords': ['funny'], 'score': 7.0, 'release_date': '2021-07-15',
        },
        {
            'id': 'm4', 'title': 'Overdrive', 'categories': ['Action'],
            'length_category': 'medium', 'directors': ['Dee Park'], 'actors': ['Ola Ray'],
            'keywords': ['chase'], 'score': 8.5, 'release_date': '2022-11-20',
        },
        {
            'id': 'm5', 'title': 'Home Again', 'categories': ['Drama'],
            'length_category': 'medium', 'directors': ['Ava Reyes'], 'actors': ['Sam Hart'],
            'keywords': ['family'], 'score': 6.0, 'release_date': '2020-02-02',
        },
        {
            'id': 'm6', 'title': 'Hollow House', 'categories': ['Horror'],
            'length_category': 'short', 'directors': ['Eli Ward'], 'actors': ['Pia Kent'],
            'keywords': ['ghost'], 'score': 9.5, 'release_date': '2021-10-31',
        },
        {
            'id': 'm7', 'title': 'Untitled Reel', 'categories': [],
            'length_category': None, 'directors': [], 'actors': [],
            'keywords': [], 'score': 5.0, 'release_date': None,
        },
    ]


@pytest.fixture
def seeded_movies(test_db_session, sample_movies_list) -> list[dict]:
    """Store the sample catalog in the test database."""
    from cinestream_recommendation_service.repos import MovieRepository
    MovieRepository(test_db_session).bulk_store_movies(sample_movies_list)
    return sample_movies_list


@pytest.fixture
def drama_item() -> Item:
    return Item(
        id='d1',
        title='Drama One',
        categories=('Drama',),
        length_bucket='long',
        directors=('Ava Reyes',),
        actors=('Sam Hart',),
        keywords=('family',),
        popularity_score=8.0,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def make_interaction():
    """Factory for Interaction objects relative to FIXED_NOW."""
    def _make(item: Item | None, action: str = 'view', days_ago: float = 0, user_id: str = 'u1'):
        return Interaction(
            user_id=user_id,
            item_id=item.id if item else 'missing',
            action=action,
            timestamp=FIXED_NOW - timedelta(days=days_ago),
            item=item,
        )
    return _make


# ===== Cache Fixtures =====

@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recommendation_cache(fake_clock) -> RecommendationCache:
    """Isolated cache instance driven by a fake clock."""
    return RecommendationCache(capacity=10, default_ttl=300, hit_threshold=3, clock=fake_clock)


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(42)


# ===== Repository Fixtures =====

@pytest.fixture
def movie_repository(test_db_session):
    """Create MovieRepository with test database session."""
    from cinestream_recommendation_service.repos import MovieRepository
    return MovieRepository(test_db_session)


@pytest.fixture
def interaction_repository(test_db_session):
    """Create InteractionRepository with test database session."""
    from cinestream_recommendation_service.repos import InteractionRepository
    return InteractionRepository(test_db_session)


# ===== Configuration Fixtures =====

@pytest.fixture
def mock_config(monkeypatch):
    """Mock configuration values."""
    monkeypatch.setenv('DATABASE_URL', 'sqlite:///:memory:')
    monkeypatch.setenv('MOVIE_SERVICE_URL', 'http://localhost:7071/api')


# ===== Azure Functions Fixtures =====

@pytest.fixture
def mock_http_request():
    """Mock Azure Functions HttpRequest."""
    mock_req = Mock()
    mock_req.route_params = {}
    mock_req.params = {}
    mock_req.headers = {}
    mock_req.get_json.return_value = {}
    return mock_req


# ===== Script Fixtures =====

@pytest.fixture
def mock_sys_argv(monkeypatch):
    """Mock sys.argv for script testing."""
    def _mock_argv(args):
        monkeypatch.setattr('sys.argv', args)
    return _mock_argv

