"""Local SQLite database for the device replica.

One engine is kept per process and rebuilt only when the configured cache
path changes, so every CacheManager shares the same connection pool.
"""

from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from notico.cli.cache.models import CacheBase
from notico.cli.config import get_config_dir

_engine: Engine | None = None
_engine_path: Path | None = None
_session_factory: sessionmaker[Session] | None = None


def get_cache_db_path() -> Path:
    """Get path to the local cache database.

    Returns:
        Path to cache.db inside the config directory
    """
    return get_config_dir() / "cache.db"


def get_cache_engine() -> Engine:
    """Return the engine for the current cache path, creating its tables once."""
    global _engine, _engine_path, _session_factory

    db_path = get_cache_db_path()
    if _engine is not None and _engine_path == db_path:
        return _engine

    dispose_cache_engine()
    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    CacheBase.metadata.create_all(engine)

    _engine = engine
    _engine_path = db_path
    _session_factory = sessionmaker(bind=engine)
    return engine


def init_cache_db() -> Engine:
    """Make sure the cache database and its tables exist."""
    return get_cache_engine()


def get_cache_session() -> Session:
    """Open a session on the cache database."""
    get_cache_engine()
    assert _session_factory is not None
    return _session_factory()


def dispose_cache_engine() -> None:
    """Close pooled connections and forget the cached engine."""
    global _engine, _engine_path, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _engine_path = None
    _session_factory = None
