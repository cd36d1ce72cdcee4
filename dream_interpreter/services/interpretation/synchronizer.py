"""Mirrors interpretation sessions into the durable dreams table.

This is the only writer of dream rows. Every write is an upsert keyed by the
dream id: the synchronizer looks the row up itself and chooses insert or
update, so a caller retrying after a transient failure can never create a
second row. Storage failures are returned as ``PersistenceWarning`` instead
of raised, because the in-memory session stays authoritative and the
conversation must be able to move on.
"""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from dream_interpreter.domain.dream.entities.dream import Dream, DreamStatus
from dream_interpreter.domain.dream.repo import DreamRepository
from dream_interpreter.domain.interpretation.errors import PersistenceWarning
from dream_interpreter.domain.interpretation.session import DreamSubmission

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DreamPatch:
    """Partial update of a dream row. ``None`` means "leave as is".

    Lists replace the stored value whole, which is what makes re-applying a
    patch harmless.
    """
    status: Optional[DreamStatus] = None
    questions: Optional[Sequence[str]] = None
    answers: Optional[Sequence[str]] = None
    interpretation: Optional[str] = None
    thread_id: Optional[str] = None
    degraded: Optional[bool] = None

    def to_values(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        if self.status is not None:
            values["status"] = self.status.value
        if self.questions is not None:
            values["questions"] = list(self.questions)
        if self.answers is not None:
            values["answers"] = list(self.answers)
        if self.interpretation is not None:
            values["interpretation"] = self.interpretation
        if self.thread_id is not None:
            values["thread_id"] = self.thread_id
        if self.degraded is not None:
            values["degraded"] = self.degraded
        return values


class PersistenceSynchronizer:
    def __init__(self, dream_repo: DreamRepository) -> None:
        self._repo = dream_repo
        # one lock per dream keeps patches in the order they were produced
        self._locks: Dict[UUID, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def repository(self) -> DreamRepository:
        return self._repo

    async def upsert(self, dream: DreamSubmission, patch: DreamPatch) -> Optional[PersistenceWarning]:
        """Insert or update the row for ``dream.id``; never raises on storage errors."""
        from dream_interpreter.infrastructure.db.bootstrap import session_scope

        values = patch.to_values()
        async with self._locks[dream.id]:
            try:
                async with session_scope() as session:
                    existing = await self._repo.get_dream(None, dream.id, session)

                    if existing is None:
                        try:
                            await self._repo.create_dream(self._new_row(dream, values), session)
                            logger.info(f"Inserted dream {dream.id} with status {values.get('status')}")
                            return None
                        except IntegrityError:
                            # another writer inserted first; fall through to an update
                            await session.rollback()
                            logger.info(f"Dream {dream.id} was inserted concurrently, updating instead")
                            existing = await self._repo.get_dream(None, dream.id, session)

                    if existing is not None and existing.user_id != dream.owner_id:
                        logger.error(f"Dream {dream.id} belongs to another user, refusing to overwrite")
                        return PersistenceWarning(dream.id, "Dream record belongs to a different user")

                    changed = self._changed_values(existing, values)
                    if not changed:
                        logger.debug(f"Dream {dream.id} already up to date")
                        return None

                    await self._repo.update_dream(dream.id, changed, session)
                    logger.info(f"Updated dream {dream.id}: {', '.join(sorted(changed))}")
                    return None

            except (SQLAlchemyError, OSError, RuntimeError) as e:
                logger.warning(f"Failed to persist dream {dream.id}, session continues in memory: {str(e)}")
                return PersistenceWarning(dream.id, f"Your interpretation continues, but it could not be saved: {str(e)}")

    async def load(self, dream_id: UUID, user_id: Optional[str]) -> Optional[Dream]:
        """Read-only fetch of the durable record (used when resuming)."""
        from dream_interpreter.infrastructure.db.bootstrap import session_scope

        async with session_scope() as session:
            return await self._repo.get_dream(user_id, dream_id, session)

    async def list_for_user(self, user_id: str) -> List[Dream]:
        from dream_interpreter.infrastructure.db.bootstrap import session_scope

        async with session_scope() as session:
            return await self._repo.list_dreams_by_user(user_id, session)

    def forget(self, dream_id: UUID) -> None:
        """Drop the ordering lock of a dream that will not be written again soon."""
        lock = self._locks.get(dream_id)
        if lock is not None and not lock.locked():
            del self._locks[dream_id]

    @staticmethod
    def _new_row(dream: DreamSubmission, values: Dict[str, Any]) -> Dream:
        row_values = dict(values)
        row_values.setdefault("status", dream.status.value)
        row_values.setdefault("degraded", False)
        return Dream(
            id=dream.id,
            user_id=dream.owner_id,
            dream_text=dream.text,
            created_at=dream.created_at,
            **row_values,
        )

    @staticmethod
    def _changed_values(existing: Optional[Dream], values: Dict[str, Any]) -> Dict[str, Any]:
        if existing is None:
            return dict(values)
        return {
            key: value
            for key, value in values.items()
            if getattr(existing, key) != value
        }
