"""Shared fixtures for device-side tests."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from notico.cli.cache.database import dispose_cache_engine
from notico.cli.cache.manager import CacheManager
from notico.cli.cache.models import CacheBase
from notico.cli.client import clear_online_cache


@pytest.fixture
def in_memory_engine() -> Engine:
    """Create an in-memory SQLite database for testing."""
    engine = create_engine("sqlite:///:memory:")
    CacheBase.metadata.create_all(engine)
    return engine


@pytest.fixture
def mock_get_session(in_memory_engine: Engine) -> Iterator[None]:
    """Mock get_cache_session to use in-memory database."""
    SessionLocal = sessionmaker(bind=in_memory_engine)

    def _get_session() -> Session:
        return SessionLocal()

    with (
        patch("notico.cli.cache.repositories.get_cache_session", side_effect=_get_session),
        patch("notico.cli.cache.repositories.init_cache_db"),
    ):
        yield


@pytest.fixture
def cache_manager(mock_get_session: None) -> Iterator[CacheManager]:
    """Create a cache manager for testing."""
    mgr = CacheManager()
    yield mgr
    mgr.close()


@pytest.fixture
def config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point the config directory (and the cache database) at a temp dir."""
    path = tmp_path / "notico"
    monkeypatch.setenv("NOTICO_CONFIG_DIR", str(path))
    clear_online_cache()
    yield path
    dispose_cache_engine()
