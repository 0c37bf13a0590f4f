"""
Shared pytest fixtures for MovieMatch tests.

This module provides common fixtures including:
- A controllable clock for session expiry tests
- In-memory and mocked Redis session backends
- A mocked catalog provider
- FastAPI test client wired to fresh modules
"""

import os
import sys
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from moviematch.modules.catalog import CatalogModule
from moviematch.modules.session import SessionModule
from moviematch.modules.storage import MemorySessionBackend


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_movie(movie_id: int, title: str = None, **extra) -> dict:
    """Build a normalized movie record."""
    movie = {
        "id": movie_id,
        "title": title or f"Movie {movie_id}",
        "overview": f"Overview of movie {movie_id}",
        "poster_path": f"/poster{movie_id}.jpg",
        "release_date": "1999-03-31",
        "popularity": 100.0 - movie_id,
        "vote_average": 7.5,
        "genre_ids": [28],
    }
    movie.update(extra)
    return movie


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_backend(clock):
    return MemorySessionBackend(clock=clock)


@pytest.fixture
def session_module(memory_backend):
    """Create a SessionModule over an in-memory backend with a 1 hour TTL."""
    return SessionModule(memory_backend, default_ttl=3600)


@pytest.fixture
def mock_redis():
    """Create a mock Redis client."""
    redis = AsyncMock()
    redis.setex = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.exists = AsyncMock(return_value=0)
    redis.delete = AsyncMock(return_value=1)
    redis.sadd = AsyncMock()
    redis.srem = AsyncMock()
    redis.smembers = AsyncMock(return_value=set())
    redis.scard = AsyncMock(return_value=0)
    return redis


@pytest.fixture
def sample_movies():
    return [make_movie(movie_id) for movie_id in (11, 22, 33)]


@pytest.fixture
def mock_catalog(sample_movies):
    """Catalog provider mock returning sample_movies."""
    catalog = AsyncMock(spec=CatalogModule)
    catalog.is_configured = True
    catalog.discover = AsyncMock(return_value=sample_movies)
    return catalog


@pytest.fixture
def app_config():
    """
    Set app configuration values for one test.

    Values changed through the returned setter are restored afterwards.
    """
    from moviematch import main

    saved = {}

    def override(key, value):
        saved.setdefault(key, main.config.get(key))
        main.config.set(key, value)

    yield override

    for key, value in saved.items():
        main.config.set(key, value)


@pytest.fixture
def client(monkeypatch, session_module, mock_catalog, app_config):
    """
    Test client for the real app with fresh modules.

    The lifespan is not run; modules are injected directly.
    """
    from moviematch import main

    monkeypatch.setattr(main, "session_module", session_module)
    monkeypatch.setattr(main, "catalog_module", mock_catalog)
    app_config("require_complete_ratings", True)
    app_config("movie_list_size", 12)
    return TestClient(main.app)
