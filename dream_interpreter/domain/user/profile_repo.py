"""Repository interface for user profiles."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .profile import UserProfile


class ProfileRepository(ABC):
    """Abstract read access to user profiles."""

    @abstractmethod
    async def get_user_profile(self, user_id: str, session: AsyncSession) -> Optional[UserProfile]:
        """Get user profile."""
        ...
