"""
Shared fixtures.
"""

from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.scalars = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def admin_id():
    """Return a consistent admin UUID for testing."""
    return UUID("00000000-0000-0000-0000-000000000001")


@pytest.fixture
def user_id():
    return uuid4()
