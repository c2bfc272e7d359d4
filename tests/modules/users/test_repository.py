"""
Tests for the user repository.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from admissions.modules.users import UserRepository, normalize_email


def test_normalize_email():
    assert normalize_email("  Priya.Raman@Example.COM ") == "priya.raman@example.com"


@pytest.mark.asyncio
async def test_find_or_create_normalizes_email(mock_db):
    user = MagicMock()
    result = MagicMock()
    result.one.return_value = user
    mock_db.scalars.return_value = result

    found = await UserRepository.find_or_create_by_email(
        mock_db, "Priya.Raman@Example.com", name="Priya Raman"
    )

    assert found is user
    stmt = mock_db.scalars.call_args.args[0]
    params = stmt.compile(dialect=postgresql.dialect()).params
    assert params["email"] == "priya.raman@example.com"
    assert mock_db.scalars.call_args.kwargs["execution_options"] == {"populate_existing": True}


@pytest.mark.asyncio
async def test_mark_student_issues_update(mock_db, user_id):
    await UserRepository.mark_student(mock_db, user_id)

    mock_db.execute.assert_awaited_once()
    mock_db.commit.assert_not_called()
