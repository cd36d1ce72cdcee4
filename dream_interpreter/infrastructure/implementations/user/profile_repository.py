"""SQL implementation of ProfileRepository."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from dream_interpreter.domain.user.profile_repo import ProfileRepository
from dream_interpreter.domain.user.profile import UserProfile


class SqlProfileRepository(ProfileRepository):
    """SQL implementation of ProfileRepository using raw SQL queries.

    The ``profiles`` table is owned by the account service; this service only
    reads it.
    """

    async def get_user_profile(self, user_id: str, session: AsyncSession) -> Optional[UserProfile]:
        """Get user profile."""
        result = await session.execute(
            text("""
                SELECT id, age, gender, marital_status, has_kids, has_pets, work_status
                FROM profiles
                WHERE id = :user_id
            """),
            {"user_id": user_id}
        )
        row = result.first()

        if not row:
            return None

        return UserProfile(
            user_id=str(row.id),
            age=row.age,
            gender=row.gender,
            marital_status=row.marital_status,
            has_kids=row.has_kids,
            has_pets=row.has_pets,
            work_status=row.work_status,
        )
