"""Shared fixtures for server tests."""

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from notico.data.database import configure_engine
from notico.server.app import create_app


@pytest.fixture
def client(tmp_path: Path) -> Iterator[TestClient]:
    """Create a TestClient with a temporary database."""
    configure_engine(f"sqlite+aiosqlite:///{tmp_path / 'server.db'}")
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
