"""Shared fixtures for campus feed tests."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from campus_feed.database import Database


@pytest.fixture
def temp_db():
    """Create a temporary in-memory database for testing.

    StaticPool keeps one connection so worker threads see the same data.
    """
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db = Database(test_engine)
    db.init_db()
    yield db
    db.dispose()
