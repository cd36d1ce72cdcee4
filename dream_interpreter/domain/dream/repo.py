"""Port interface for dream persistence."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from .entities.dream import Dream


class DreamRepository(ABC):
    """Hexagonal port: persistence operations for the Dream aggregate."""

    @abstractmethod
    async def create_dream(self, dream: Dream, session: AsyncSession) -> Dream:
        """Insert a new dream row. Raises IntegrityError if the id is taken."""
        ...

    @abstractmethod
    async def get_dream(self, user_id: Optional[str], did: UUID, session: AsyncSession) -> Optional[Dream]:
        """Fetch one dream; ``user_id=None`` skips the ownership filter."""
        ...

    @abstractmethod
    async def update_dream(self, did: UUID, values: Dict[str, Any], session: AsyncSession) -> Optional[Dream]:
        """Apply column values to an existing dream and return the fresh row."""
        ...

    @abstractmethod
    async def list_dreams_by_user(self, user_id: str, session: AsyncSession) -> List[Dream]: ...
