"""Tests for the session registry and resuming from durable records."""

import asyncio
from datetime import datetime
from uuid import uuid4

import pytest
import pytest_asyncio

from dream_interpreter.context.interpretation.prompts import InterpretationPrompts
from dream_interpreter.domain.dream.entities.dream import Dream
from dream_interpreter.domain.interpretation.errors import InvalidState, SessionNotFound
from dream_interpreter.domain.interpretation.session import SessionState
from dream_interpreter.services.interpretation.orchestrator import SessionOrchestrator
from dream_interpreter.services.interpretation.service import InterpretationService
from dream_interpreter.services.interpretation.synchronizer import PersistenceSynchronizer

DREAM = "My late grandmother gave me a key"


def _service(synchronizer, assistant):
    return InterpretationService(
        synchronizer=synchronizer,
        assistant=assistant,
        poll_max_attempts=3,
        poll_interval_s=0,
    )


class GatedSynchronizer(PersistenceSynchronizer):
    """Loads wait on ``gate`` so a resume can be held mid-read."""

    def __init__(self, repo):
        super().__init__(repo)
        self.gate = asyncio.Event()
        self.gate.set()
        self.loads = 0

    async def load(self, dream_id, user_id):
        self.loads += 1
        await self.gate.wait()
        return await super().load(dream_id, user_id)


@pytest_asyncio.fixture
async def service(synchronizer, assistant):
    return _service(synchronizer, assistant)


class TestRegistry:
    @pytest.mark.asyncio
    async def test_conversation_through_the_service(self, service, dream_repo):
        outcome = await service.start("user-1", DREAM)
        did = outcome.session.dream.id
        assert outcome.warnings == []

        for answer in ("a1", "a2", "a3"):
            outcome = await service.submit_answer("user-1", did, answer)

        assert outcome.session.is_complete is True
        assert dream_repo.rows[did].status == "completed"
        # completed sessions are served from the record from now on
        assert did not in service._sessions

        session = await service.get_session("user-1", did)
        assert session.is_complete is True
        assert session.interpretation == outcome.session.interpretation
        assert did not in service._sessions

    @pytest.mark.asyncio
    async def test_other_users_cannot_see_a_session(self, service):
        outcome = await service.start("user-1", DREAM)
        did = outcome.session.dream.id

        with pytest.raises(SessionNotFound):
            await service.get_session("user-2", did)
        with pytest.raises(SessionNotFound):
            await service.submit_answer("user-2", did, "hello")
        assert await service.abandon("user-2", did) is False

    @pytest.mark.asyncio
    async def test_unknown_dream(self, service):
        with pytest.raises(SessionNotFound):
            await service.get_session("user-1", uuid4())

    @pytest.mark.asyncio
    async def test_submit_after_completion_is_invalid(self, service):
        outcome = await service.start("user-1", DREAM)
        did = outcome.session.dream.id
        for answer in ("a1", "a2", "a3"):
            await service.submit_answer("user-1", did, answer)

        with pytest.raises(InvalidState):
            await service.submit_answer("user-1", did, "a4")

    @pytest.mark.asyncio
    async def test_abandon_keeps_the_record(self, service, dream_repo):
        outcome = await service.start("user-1", DREAM)
        did = outcome.session.dream.id

        assert await service.abandon("user-1", did) is True
        assert await service.abandon("user-1", did) is False
        assert did in dream_repo.rows
        assert service.is_loading(did) is False

    @pytest.mark.asyncio
    async def test_past_dreams(self, service):
        first = await service.start("user-1", DREAM)
        await service.start("user-2", "Someone else's dream")

        dreams = await service.list_dreams("user-1")

        assert [d.id for d in dreams] == [first.session.dream.id]
        assert (await service.get_dream("user-1", first.session.dream.id)).dream_text == DREAM
        assert await service.get_dream("user-2", first.session.dream.id) is None

    @pytest.mark.asyncio
    async def test_degraded_without_assistant(self, synchronizer):
        assert InterpretationService(synchronizer=synchronizer).degraded is True


class TestResume:
    @pytest.mark.asyncio
    async def test_resume_continues_on_the_same_thread(self, synchronizer, assistant):
        before_restart = _service(synchronizer, assistant)
        outcome = await before_restart.start("user-1", DREAM)
        did = outcome.session.dream.id
        await before_restart.submit_answer("user-1", did, "a1")

        after_restart = _service(synchronizer, assistant)
        session = await after_restart.get_session("user-1", did)

        assert session.round == 2
        assert session.answers == ["a1"]

        outcome = await after_restart.submit_answer("user-1", did, "a2")

        assert outcome.session.round == 3
        assert assistant.threads_opened == 1
        assert assistant.runs == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_resume_degraded_record(self, synchronizer, assistant, dream_repo):
        did = uuid4()
        dream_repo.rows[did] = Dream(
            id=did,
            user_id="user-1",
            dream_text=DREAM,
            status="interpreting",
            questions=[InterpretationPrompts.fallback_question(1)],
            answers=[],
            thread_id=None,
            degraded=True,
            created_at=datetime.utcnow(),
        )
        orch = SessionOrchestrator(assistant=assistant, synchronizer=synchronizer, poll_interval_s=0)

        session = await orch.resume(dream_repo.rows[did])
        assert orch.state is SessionState.AWAITING_ANSWER
        assert orch.thread.degraded is True

        session = await orch.submit_answer("a1")

        assert session.messages[-1].content == InterpretationPrompts.fallback_question(2)
        assert assistant.runs == []

    @pytest.mark.asyncio
    async def test_record_without_questions_cannot_resume(self, synchronizer, assistant, dream_repo):
        did = uuid4()
        dream_repo.rows[did] = Dream(
            id=did,
            user_id="user-1",
            dream_text=DREAM,
            status="pending",
            degraded=False,
            created_at=datetime.utcnow(),
        )
        service = _service(synchronizer, assistant)

        with pytest.raises(InvalidState):
            await service.get_session("user-1", did)

    @pytest.mark.asyncio
    async def test_slow_resume_does_not_block_live_sessions(self, dream_repo, assistant, mock_session_scope):
        sync = GatedSynchronizer(dream_repo)
        earlier = _service(sync, assistant)
        stored = (await earlier.start("user-1", DREAM)).session.dream.id

        service = _service(sync, assistant)
        live = (await service.start("user-2", "A river of light")).session.dream.id

        sync.gate.clear()
        resuming = asyncio.create_task(service.get_session("user-1", stored))
        await asyncio.sleep(0)
        assert sync.loads == 1

        session = await asyncio.wait_for(service.get_session("user-2", live), timeout=1)
        assert session.dream.id == live
        assert resuming.done() is False

        sync.gate.set()
        session = await resuming
        assert session.round == 1
        assert stored in service._sessions

    @pytest.mark.asyncio
    async def test_concurrent_resumes_share_one_session(self, dream_repo, assistant, mock_session_scope):
        sync = GatedSynchronizer(dream_repo)
        earlier = _service(sync, assistant)
        did = (await earlier.start("user-1", DREAM)).session.dream.id

        service = _service(sync, assistant)
        sync.gate.clear()
        pending = asyncio.gather(
            service._get_orchestrator("user-1", did),
            service._get_orchestrator("user-1", did),
        )
        await asyncio.sleep(0)
        sync.gate.set()
        first, second = await pending

        assert sync.loads == 2
        assert first is second
        assert service._sessions[did] is first

        outcome = await service.submit_answer("user-1", did, "a1")
        assert outcome.session.round == 2
