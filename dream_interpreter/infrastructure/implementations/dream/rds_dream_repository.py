# dream_interpreter/infrastructure/implementations/dream/rds_dream_repository.py
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dream_interpreter.domain.dream.entities.dream import Dream
from dream_interpreter.domain.dream.repo import DreamRepository

logger = logging.getLogger(__name__)


class RDSDreamRepository(DreamRepository):
    """Async SQLAlchemy implementation of the dream port."""

    async def create_dream(self, dream: Dream, session: AsyncSession) -> Dream:
        # IntegrityError is left to the caller, which decides whether a lost
        # insert race turns into an update
        session.add(dream)
        await session.commit()
        await session.refresh(dream)
        return dream

    async def get_dream(self, user_id: Optional[str], did: UUID, session: AsyncSession) -> Optional[Dream]:
        """Fetch a dream. If ``user_id`` is ``None`` the lookup is not constrained to a
        specific user (internal paths such as the synchronizer). Otherwise the dream
        **must** belong to the given ``user_id``.
        """
        query = select(Dream).where(Dream.id == did)
        if user_id is not None:
            query = query.where(Dream.user_id == user_id)
        result = await session.execute(query)
        return result.scalars().first()

    async def update_dream(self, did: UUID, values: Dict[str, Any], session: AsyncSession) -> Optional[Dream]:
        await session.execute(
            update(Dream)
            .where(Dream.id == did)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        await session.commit()
        return await self.get_dream(None, did, session)

    async def list_dreams_by_user(self, user_id: str, session: AsyncSession) -> List[Dream]:
        query = (
            select(Dream)
            .where(Dream.user_id == user_id)
            .order_by(Dream.created_at.desc())
        )

        start = time.time()
        result = await session.execute(query)
        dreams = list(result.scalars().all())
        logger.debug(f"Listed {len(dreams)} dreams for user {user_id} in {(time.time() - start) * 1000:.2f}ms")
        return dreams
