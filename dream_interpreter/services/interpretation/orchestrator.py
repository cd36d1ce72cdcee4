"""Drives one dream's question/answer conversation with the assistant.

States: IDLE -> THREAD_OPEN -> AWAITING_ANSWER(round) -> COMPLETE.

The assistant asks ``QUESTION_ROUNDS`` follow-up questions, one per round,
and the turn after the last answer is the final interpretation. Whatever the
remote service does, every accepted answer ends with an assistant turn: live
content when the service cooperates, local fallback content once it has
failed too often. Calls are strictly sequential per session.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple
from uuid import UUID, uuid4

from dream_interpreter.context.interpretation.prompts import InterpretationPrompts
from dream_interpreter.context.interpretation.providers import UserProfileProvider
from dream_interpreter.domain.dream.entities.dream import Dream, DreamStatus
from dream_interpreter.domain.interpretation.errors import (
    AssistantError,
    InvalidState,
    PersistenceWarning,
    PollTimeout,
    RoundInterrupted,
    ServiceUnavailable,
)
from dream_interpreter.domain.interpretation.session import (
    DreamSubmission,
    Session,
    SessionState,
)
from dream_interpreter.domain.ports.assistant import (
    AssistantPort,
    RunHandle,
    RunStatus,
    ThreadHandle,
    degraded_thread,
)
from dream_interpreter.domain.user.profile import UserProfile
from .state import SessionStateContainer
from .synchronizer import DreamPatch, PersistenceSynchronizer

logger = logging.getLogger(__name__)


class SessionOrchestrator:
    def __init__(
        self,
        assistant: Optional[AssistantPort],
        synchronizer: PersistenceSynchronizer,
        profiles: Optional[UserProfileProvider] = None,
        container: Optional[SessionStateContainer] = None,
        poll_max_attempts: int = 30,
        poll_interval_s: float = 1.0,
        failure_budget: int = 2,
    ) -> None:
        self._assistant = assistant
        self._sync = synchronizer
        self._profiles = profiles
        self._container = container or SessionStateContainer()
        self._poll_max_attempts = poll_max_attempts
        self._poll_interval_s = poll_interval_s
        self._failure_budget = failure_budget

        self._lock = asyncio.Lock()
        self._state = SessionState.IDLE
        self._thread: Optional[ThreadHandle] = None
        self._profile: Optional[UserProfile] = None

        # retry bookkeeping for the round currently being attempted
        self._consecutive_failures = 0
        self._posted_text: Optional[str] = None
        self._inflight_run: Optional[Tuple[int, RunHandle]] = None

        self._warnings: List[PersistenceWarning] = []

    # ───────────────────────────── accessors ────────────────────────────── #

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[Session]:
        return self._container.current

    @property
    def container(self) -> SessionStateContainer:
        return self._container

    @property
    def thread(self) -> Optional[ThreadHandle]:
        return self._thread

    @property
    def last_warnings(self) -> List[PersistenceWarning]:
        """Persistence warnings raised by the most recent start/submit call."""
        return list(self._warnings)

    # ──────────────────────────── protocol ──────────────────────────────── #

    async def start(self, dream_text: str, user_id: str, dream_id: Optional[UUID] = None) -> Session:
        """Open the conversation and return the session holding the first question."""
        self._ensure_idle_lock()
        async with self._lock:
            if self._state is not SessionState.IDLE:
                raise InvalidState(f"start() is not allowed in state {self._state.value}")
            text = dream_text.strip()
            if not text:
                raise ValueError("Dream text must not be empty")

            dream = DreamSubmission(owner_id=user_id, text=text, id=dream_id or uuid4())
            logger.info(f"Starting interpretation session for dream {dream.id}")
            self._container.set_loading(True)
            try:
                self._profile = await self._lookup_profile(user_id)
                self._thread = await self._open_thread()
                self._state = SessionState.THREAD_OPEN

                session = Session(dream=dream, degraded=self._thread.degraded).with_user_message(text)
                if self._use_fallback(session):
                    content = InterpretationPrompts.fallback_for_round(1, text)
                else:
                    try:
                        content = await self._exchange(text, 1)
                    except AssistantError as e:
                        # nothing to hand back to the user yet, so no retry round-trip here
                        logger.warning(f"First round failed for dream {dream.id}, using fallback: {str(e)}")
                        session = session.as_degraded()
                        content = InterpretationPrompts.fallback_for_round(1, text)

                self._reset_round()
                session = session.with_assistant_message(content)
                self._container.replace(session)
                self._state = SessionState.AWAITING_ANSWER
                self._warnings = await self._persist(session)
                return session
            finally:
                self._container.set_loading(False)

    async def submit_answer(self, answer: str) -> Session:
        """Record the answer to the current question and return the session with the next assistant turn.

        Raises ``RoundInterrupted`` when the assistant failed and the failure
        budget is not spent yet; the answer stays in the transcript and the
        same call can simply be repeated. Once the answer has reached the
        thread only the same text is accepted for this round.
        """
        self._ensure_idle_lock()
        async with self._lock:
            session = self._container.current
            if self._state is not SessionState.AWAITING_ANSWER or session is None or session.is_complete:
                raise InvalidState(f"submit_answer() is not allowed in state {self._state.value}")
            text = answer.strip()
            if not text:
                raise ValueError("Answer must not be empty")
            # the thread already holds the earlier answer and cannot take it back
            if self._posted_text is not None and self._posted_text != text:
                raise InvalidState("This answer was already sent; resubmit it unchanged")

            next_round = session.round + 1
            session = session.with_user_message(text)
            self._container.replace(session)
            self._container.set_loading(True)
            try:
                if self._use_fallback(session):
                    content = InterpretationPrompts.fallback_for_round(next_round, session.dream.text)
                else:
                    try:
                        content = await self._exchange(text, next_round)
                    except AssistantError as e:
                        self._consecutive_failures += 1
                        if self._consecutive_failures < self._failure_budget:
                            logger.warning(
                                f"Round {next_round} failed for dream {session.dream.id} "
                                f"({self._consecutive_failures}/{self._failure_budget}): {str(e)}"
                            )
                            raise RoundInterrupted(
                                "The interpreter could not respond. Please send your answer again.",
                                cause=e,
                            ) from e
                        logger.warning(
                            f"Assistant failed {self._consecutive_failures} times for dream {session.dream.id}, "
                            f"switching to fallback content"
                        )
                        session = session.as_degraded()
                        content = InterpretationPrompts.fallback_for_round(next_round, session.dream.text)

                self._reset_round()
                session = session.with_assistant_message(content)
                self._container.replace(session)
                self._state = SessionState.COMPLETE if session.is_complete else SessionState.AWAITING_ANSWER
                if session.is_complete:
                    logger.info(f"Interpretation complete for dream {session.dream.id} (degraded={session.degraded})")
                self._warnings = await self._persist(session)
                return session
            finally:
                self._container.set_loading(False)

    async def resume(self, record: Dream) -> Session:
        """Continue a conversation from its durable record, on the same thread."""
        self._ensure_idle_lock()
        async with self._lock:
            if self._state is not SessionState.IDLE:
                raise InvalidState(f"resume() is not allowed in state {self._state.value}")

            dream = DreamSubmission(
                owner_id=record.user_id,
                text=record.dream_text,
                id=record.id,
                status=DreamStatus(record.status),
                created_at=record.created_at,
            )
            degraded = bool(record.degraded) or not record.thread_id
            session = Session.rebuild(
                dream,
                record.questions or [],
                record.answers or [],
                record.interpretation,
                degraded=degraded,
            )
            if session.round == 0:
                raise InvalidState(f"Dream {record.id} has no conversation to resume")

            self._thread = degraded_thread() if degraded else ThreadHandle(thread_id=record.thread_id)
            if not session.is_complete:
                self._profile = await self._lookup_profile(dream.owner_id)
            self._container.replace(session)
            self._state = SessionState.COMPLETE if session.is_complete else SessionState.AWAITING_ANSWER
            logger.info(f"Resumed dream {record.id} at round {session.round} (degraded={degraded})")
            return session

    # ───────────────────────────── internals ────────────────────────────── #

    def _ensure_idle_lock(self) -> None:
        if self._lock.locked():
            raise InvalidState("A round is already in progress for this session")

    def _use_fallback(self, session: Session) -> bool:
        return (
            self._assistant is None
            or self._thread is None
            or self._thread.degraded
            or session.degraded
        )

    async def _lookup_profile(self, user_id: str) -> Optional[UserProfile]:
        if self._profiles is None:
            return None
        return await self._profiles.get_profile(user_id)

    async def _open_thread(self) -> ThreadHandle:
        if self._assistant is None:
            return degraded_thread()
        try:
            return await self._assistant.open_thread()
        except AssistantError as e:
            logger.warning(f"Could not open assistant thread, continuing in fallback mode: {str(e)}")
            return self._assistant.degraded_thread()

    async def _exchange(self, text: str, round_number: int) -> str:
        """Post ``text`` and run ``round_number``; returns the assistant's reply."""
        # a retry must not deliver the same answer to the thread twice
        if self._posted_text != text:
            await self._assistant.post_message(self._thread, text, self._profile)
            self._posted_text = text

        # a run that timed out may still finish; keep polling it rather than
        # starting a second run on the same thread
        if self._inflight_run is not None and self._inflight_run[0] == round_number:
            run = self._inflight_run[1]
        else:
            run = await self._assistant.start_run(self._thread, round_number)
            self._inflight_run = (round_number, run)

        try:
            await self._await_run(run)
        except PollTimeout:
            raise
        except AssistantError:
            self._inflight_run = None
            raise
        return await self._assistant.latest_assistant_message(self._thread, run)

    async def _await_run(self, run: RunHandle) -> None:
        for attempt in range(1, self._poll_max_attempts + 1):
            status = await self._assistant.poll_run(self._thread, run)
            if status.is_terminal:
                if status is not RunStatus.COMPLETED:
                    raise ServiceUnavailable(f"Run {run.run_id} ended with status {status.value}")
                logger.debug(f"Run {run.run_id} completed after {attempt} poll(s)")
                return
            if attempt < self._poll_max_attempts:
                await asyncio.sleep(self._poll_interval_s)
        raise PollTimeout(f"Run {run.run_id} did not finish after {self._poll_max_attempts} polls")

    def _reset_round(self) -> None:
        self._consecutive_failures = 0
        self._posted_text = None
        self._inflight_run = None

    async def _persist(self, session: Session) -> List[PersistenceWarning]:
        if session.is_complete:
            patch = DreamPatch(
                status=DreamStatus.COMPLETED,
                questions=session.questions,
                answers=session.answers,
                interpretation=session.interpretation,
                degraded=session.degraded,
            )
        else:
            patch = DreamPatch(
                status=DreamStatus.INTERPRETING,
                questions=session.questions,
                answers=session.answers,
                thread_id=None if self._thread.degraded else self._thread.thread_id,
                degraded=session.degraded,
            )
        warning = await self._sync.upsert(session.dream, patch)
        return [warning] if warning is not None else []
