"""
Unit tests for the coupons repository layer.

The statements are compiled for PostgreSQL and checked for the predicates
that keep redemption and issuance safe under concurrency.
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from admissions.modules.coupons import repository


def compiled_sql(mock_db) -> str:
    stmt = mock_db.scalars.call_args.args[0]
    return str(stmt.compile(dialect=postgresql.dialect()))


@pytest.fixture
def scalars_result(mock_db):
    result = MagicMock()
    result.one_or_none.return_value = None
    mock_db.scalars.return_value = result
    return result


class TestIncrementUsage:
    @pytest.mark.asyncio
    async def test_update_checks_validity_window(self, mock_db, scalars_result):
        await repository.increment_usage(mock_db, " ytsub50-7kq2zd ", datetime.now(UTC))

        sql = compiled_sql(mock_db)
        assert "coupons.is_active IS true" in sql
        assert "coupons.valid_from <=" in sql
        assert "coupons.valid_until IS NULL OR coupons.valid_until >=" in sql
        assert "coupons.used_count < coupons.max_uses" in sql

    @pytest.mark.asyncio
    async def test_update_binds_now_and_normalized_code(self, mock_db, scalars_result):
        now = datetime.now(UTC)

        await repository.increment_usage(mock_db, " ytsub50-7kq2zd ", now)

        stmt = mock_db.scalars.call_args.args[0]
        params = stmt.compile(dialect=postgresql.dialect()).params
        assert "YTSUB50-7KQ2ZD" in params.values()
        assert now in params.values()


class TestInsertIfAbsent:
    @pytest.mark.asyncio
    async def test_insert_skips_any_conflict(self, mock_db, scalars_result):
        await repository.insert_if_absent(mock_db, code="YTSUB50-7KQ2ZD", discount_value=50)

        assert "ON CONFLICT DO NOTHING" in compiled_sql(mock_db)
