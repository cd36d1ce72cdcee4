"""Context providers for the interpretation conversation."""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from dream_interpreter.domain.user.profile import UserProfile
from dream_interpreter.domain.user.profile_repo import ProfileRepository

logger = logging.getLogger(__name__)


class UserProfileProvider:
    """Provides the dreamer's profile for message personalisation.

    A missing profile, or a failed lookup, is not an error: the assistant is
    simply told less about the dreamer.
    """

    def __init__(self, profile_repo: ProfileRepository):
        self._repo = profile_repo

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        from dream_interpreter.infrastructure.db.bootstrap import session_scope

        try:
            async with session_scope() as session:
                profile = await self._repo.get_user_profile(user_id, session)
        except (SQLAlchemyError, RuntimeError) as e:
            logger.warning(f"Profile lookup failed for user {user_id}, continuing without it: {str(e)}")
            return None

        if profile is None:
            logger.debug(f"No profile for user {user_id}")
        return profile
