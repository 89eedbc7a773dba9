"""Unit tests for the transaction scope."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from retainer.core.database import transaction
from retainer.core.exceptions import DatabaseSessionError, ValidationError


@pytest.mark.asyncio
async def test_clean_exit_commits():
    db = AsyncMock()

    async with transaction(db):
        pass

    db.commit.assert_awaited_once()
    db.rollback.assert_not_called()


@pytest.mark.asyncio
async def test_exception_rolls_back_and_propagates():
    db = AsyncMock()

    with pytest.raises(ValidationError):
        async with transaction(db):
            raise ValidationError("bad input")

    db.rollback.assert_awaited_once()
    db.commit.assert_not_called()


@pytest.mark.asyncio
async def test_commit_failure_rolls_back():
    db = AsyncMock()
    db.commit = AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("lost connection")))

    with pytest.raises(DatabaseSessionError):
        async with transaction(db):
            pass

    db.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_return_inside_scope_commits():
    db = AsyncMock()

    async def work():
        async with transaction(db):
            return "done"

    assert await work() == "done"
    db.commit.assert_awaited_once()
