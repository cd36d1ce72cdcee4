"""Interpretation session value objects.

Everything here is immutable: a state change produces a new ``Session``, so a
reader holding a reference always sees a transcript and round counter that
belong together.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple
from uuid import UUID, uuid4

from dream_interpreter.domain.dream.entities.dream import DreamStatus

# Follow-up questions asked before the closing interpretation.
QUESTION_ROUNDS = 3


class Sender(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class SessionState(str, Enum):
    IDLE = "idle"
    THREAD_OPEN = "thread_open"
    AWAITING_ANSWER = "awaiting_answer"
    COMPLETE = "complete"


@dataclass(frozen=True)
class DreamSubmission:
    """A dream as submitted by its owner; the text never changes afterwards."""
    owner_id: str
    text: str
    id: UUID = field(default_factory=uuid4)
    status: DreamStatus = DreamStatus.PENDING
    created_at: datetime = field(default_factory=datetime.utcnow)

    def with_status(self, status: DreamStatus) -> "DreamSubmission":
        return replace(self, status=status)


@dataclass(frozen=True)
class Message:
    dream_id: UUID
    content: str
    sender: Sender
    id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class Session:
    dream: DreamSubmission
    messages: Tuple[Message, ...] = ()
    round: int = 0
    is_complete: bool = False
    degraded: bool = False

    @property
    def questions(self) -> list[str]:
        """Assistant turns that asked a follow-up question."""
        assistant = [m.content for m in self.messages if m.sender is Sender.ASSISTANT]
        return assistant[:QUESTION_ROUNDS]

    @property
    def answers(self) -> list[str]:
        """User turns after the dream text that were followed by an assistant turn."""
        answers = []
        for prev, nxt in zip(self.messages[1:], self.messages[2:]):
            if prev.sender is Sender.USER and nxt.sender is Sender.ASSISTANT:
                answers.append(prev.content)
        return answers

    @property
    def interpretation(self) -> Optional[str]:
        if not self.is_complete:
            return None
        return self.messages[-1].content

    @property
    def pending_answer(self) -> Optional[Message]:
        """The trailing user message of an exchange that has not been answered yet."""
        if self.round == 0 or self.is_complete or not self.messages:
            return None
        last = self.messages[-1]
        return last if last.sender is Sender.USER else None

    def with_user_message(self, content: str) -> "Session":
        """Append a user turn, or rewrite the pending one in place."""
        pending = self.pending_answer
        if pending is not None:
            if pending.content == content:
                return self
            rewritten = replace(pending, content=content, timestamp=datetime.utcnow())
            return replace(self, messages=self.messages[:-1] + (rewritten,))
        message = Message(dream_id=self.dream.id, content=content, sender=Sender.USER)
        return replace(self, messages=self.messages + (message,))

    def with_assistant_message(self, content: str) -> "Session":
        """Append an assistant turn; this is what advances the round."""
        message = Message(dream_id=self.dream.id, content=content, sender=Sender.ASSISTANT)
        next_round = self.round + 1
        is_complete = next_round > QUESTION_ROUNDS
        status = DreamStatus.COMPLETED if is_complete else DreamStatus.INTERPRETING
        return replace(
            self,
            dream=self.dream.with_status(status),
            messages=self.messages + (message,),
            round=next_round,
            is_complete=is_complete,
        )

    def as_degraded(self) -> "Session":
        return self if self.degraded else replace(self, degraded=True)

    @classmethod
    def rebuild(
        cls,
        dream: DreamSubmission,
        questions: list[str],
        answers: list[str],
        interpretation: Optional[str] = None,
        degraded: bool = False,
    ) -> "Session":
        """Replay a persisted conversation into a session.

        Only whole exchanges are replayed: an answer without a following
        assistant turn was never synced, and a question beyond the protocol
        limit is ignored.
        """
        session = cls(dream=dream, degraded=degraded)
        session = session.with_user_message(dream.text)
        for idx, question in enumerate(questions[:QUESTION_ROUNDS]):
            if idx > 0:
                if idx - 1 >= len(answers):
                    break
                session = session.with_user_message(answers[idx - 1])
            session = session.with_assistant_message(question)
        if interpretation and session.round == QUESTION_ROUNDS and len(answers) >= QUESTION_ROUNDS:
            session = session.with_user_message(answers[QUESTION_ROUNDS - 1])
            session = session.with_assistant_message(interpretation)
        return session
