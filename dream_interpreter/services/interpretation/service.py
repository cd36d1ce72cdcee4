"""Application layer for interpretation sessions.

Keeps one ``SessionOrchestrator`` per dream that is being interpreted in this
process. Sessions that are not in memory (reload, another worker, server
restart) are rebuilt from the durable record on first access.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from uuid import UUID

from dream_interpreter.context.interpretation.providers import UserProfileProvider
from dream_interpreter.domain.dream.entities.dream import Dream
from dream_interpreter.domain.interpretation.errors import PersistenceWarning, SessionNotFound
from dream_interpreter.domain.interpretation.session import Session
from dream_interpreter.domain.ports.assistant import AssistantPort
from .orchestrator import SessionOrchestrator
from .synchronizer import PersistenceSynchronizer

logger = logging.getLogger(__name__)


@dataclass
class SessionOutcome:
    session: Session
    warnings: List[PersistenceWarning] = field(default_factory=list)


class InterpretationService:
    def __init__(
        self,
        synchronizer: PersistenceSynchronizer,
        assistant: Optional[AssistantPort] = None,
        profile_provider: Optional[UserProfileProvider] = None,
        poll_max_attempts: int = 30,
        poll_interval_s: float = 1.0,
        failure_budget: int = 2,
    ) -> None:
        self._sync = synchronizer
        self._assistant = assistant
        self._profiles = profile_provider
        self._poll_max_attempts = poll_max_attempts
        self._poll_interval_s = poll_interval_s
        self._failure_budget = failure_budget

        self._sessions: Dict[UUID, SessionOrchestrator] = {}
        self._registry_lock = asyncio.Lock()

    @property
    def degraded(self) -> bool:
        """True when no assistant is configured and every session uses fallback content."""
        return self._assistant is None

    def _new_orchestrator(self) -> SessionOrchestrator:
        return SessionOrchestrator(
            assistant=self._assistant,
            synchronizer=self._sync,
            profiles=self._profiles,
            poll_max_attempts=self._poll_max_attempts,
            poll_interval_s=self._poll_interval_s,
            failure_budget=self._failure_budget,
        )

    # ─────────────────────────────── sessions ─────────────────────────────── #

    async def start(self, user_id: str, dream_text: str) -> SessionOutcome:
        orchestrator = self._new_orchestrator()
        session = await orchestrator.start(dream_text, user_id)
        async with self._registry_lock:
            self._sessions[session.dream.id] = orchestrator
        return SessionOutcome(session, orchestrator.last_warnings)

    async def submit_answer(self, user_id: str, dream_id: UUID, answer: str) -> SessionOutcome:
        orchestrator = await self._get_orchestrator(user_id, dream_id)
        session = await orchestrator.submit_answer(answer)
        if session.is_complete:
            self._release(dream_id)
        return SessionOutcome(session, orchestrator.last_warnings)

    async def get_session(self, user_id: str, dream_id: UUID) -> Session:
        orchestrator = await self._get_orchestrator(user_id, dream_id)
        return orchestrator.session

    async def abandon(self, user_id: str, dream_id: UUID) -> bool:
        """Forget the in-memory session; an in-flight remote run is left alone."""
        async with self._registry_lock:
            orchestrator = self._sessions.get(dream_id)
            if orchestrator is None or orchestrator.session.dream.owner_id != user_id:
                return False
            del self._sessions[dream_id]
        self._sync.forget(dream_id)
        logger.info(f"Abandoned in-memory session for dream {dream_id}")
        return True

    def is_loading(self, dream_id: UUID) -> bool:
        orchestrator = self._sessions.get(dream_id)
        return orchestrator is not None and orchestrator.container.is_loading

    # ───────────────────────────── past dreams ────────────────────────────── #

    async def list_dreams(self, user_id: str) -> List[Dream]:
        return await self._sync.list_for_user(user_id)

    async def get_dream(self, user_id: str, dream_id: UUID) -> Optional[Dream]:
        return await self._sync.load(dream_id, user_id)

    # ─────────────────────────────── helpers ──────────────────────────────── #

    async def _get_orchestrator(self, user_id: str, dream_id: UUID) -> SessionOrchestrator:
        async with self._registry_lock:
            orchestrator = self._sessions.get(dream_id)
            if orchestrator is not None:
                if orchestrator.session.dream.owner_id != user_id:
                    raise SessionNotFound(f"No session for dream {dream_id}")
                return orchestrator

        # storage reads and the profile lookup happen outside the registry lock
        record = await self._sync.load(dream_id, user_id)
        if record is None:
            raise SessionNotFound(f"No session for dream {dream_id}")

        orchestrator = self._new_orchestrator()
        session = await orchestrator.resume(record)
        if session.is_complete:
            return orchestrator

        async with self._registry_lock:
            # another request may have resumed the same dream meanwhile
            existing = self._sessions.get(dream_id)
            if existing is not None:
                return existing
            self._sessions[dream_id] = orchestrator
        return orchestrator

    def _release(self, dream_id: UUID) -> None:
        # the durable record is the source of truth once the conversation is over
        self._sessions.pop(dream_id, None)
        self._sync.forget(dream_id)
