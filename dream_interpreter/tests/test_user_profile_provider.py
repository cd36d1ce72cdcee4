"""Tests for profile lookup used to personalise assistant messages."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from dream_interpreter.context.interpretation import UserProfileProvider
from dream_interpreter.domain.user.profile import UserProfile
from dream_interpreter.infrastructure.implementations.user.profile_repository import SqlProfileRepository


@pytest.mark.asyncio
async def test_sql_repository_maps_row():
    row = SimpleNamespace(
        id="user-1",
        age=52,
        gender="female",
        marital_status="widowed",
        has_kids=True,
        has_pets=False,
        work_status="retired",
    )
    result = MagicMock()
    result.first.return_value = row
    session = AsyncMock()
    session.execute.return_value = result

    profile = await SqlProfileRepository().get_user_profile("user-1", session)

    assert profile == UserProfile(
        user_id="user-1",
        age=52,
        gender="female",
        marital_status="widowed",
        has_kids=True,
        has_pets=False,
        work_status="retired",
    )
    assert session.execute.await_args.args[1] == {"user_id": "user-1"}


@pytest.mark.asyncio
async def test_sql_repository_missing_profile():
    result = MagicMock()
    result.first.return_value = None
    session = AsyncMock()
    session.execute.return_value = result

    assert await SqlProfileRepository().get_user_profile("user-1", session) is None


@pytest.mark.asyncio
async def test_provider_returns_profile(mock_session_scope):
    repo = AsyncMock()
    repo.get_user_profile.return_value = UserProfile(user_id="user-1", age=30)

    profile = await UserProfileProvider(repo).get_profile("user-1")

    assert profile.age == 30
    repo.get_user_profile.assert_awaited_once_with("user-1", mock_session_scope)


@pytest.mark.asyncio
async def test_provider_swallows_lookup_failures(mock_session_scope):
    repo = AsyncMock()
    repo.get_user_profile.side_effect = OperationalError("SELECT", {}, Exception("timeout"))

    assert await UserProfileProvider(repo).get_profile("user-1") is None
