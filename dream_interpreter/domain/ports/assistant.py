"""Port for the remote conversational assistant (threads, messages, runs)."""
from __future__ import annotations

import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from dream_interpreter.domain.user.profile import UserProfile


@dataclass(frozen=True)
class ThreadHandle:
    thread_id: str
    degraded: bool = False


@dataclass(frozen=True)
class RunHandle:
    run_id: str
    thread_id: str


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL

    @classmethod
    def parse(cls, raw: str) -> "RunStatus":
        try:
            return cls(raw)
        except ValueError:
            # statuses added upstream later are treated as still running
            return cls.IN_PROGRESS


_TERMINAL = frozenset({
    RunStatus.COMPLETED,
    RunStatus.FAILED,
    RunStatus.CANCELLED,
    RunStatus.EXPIRED,
    RunStatus.INCOMPLETE,
})


class AssistantPort(ABC):
    """Raw request/response operations against the assistant service.

    Implementations never retry; every remote failure surfaces as
    ``ServiceUnavailable`` and retry policy lives with the caller.
    """

    @abstractmethod
    async def open_thread(self) -> ThreadHandle: ...

    @abstractmethod
    async def post_message(self, thread: ThreadHandle, text: str, profile: Optional[UserProfile]) -> str: ...

    @abstractmethod
    async def start_run(self, thread: ThreadHandle, round_number: int) -> RunHandle: ...

    @abstractmethod
    async def poll_run(self, thread: ThreadHandle, run: RunHandle) -> RunStatus: ...

    @abstractmethod
    async def latest_assistant_message(self, thread: ThreadHandle, run: RunHandle) -> str:
        """Text of the assistant message written by ``run``; ``NoResponse`` if it wrote none."""

    def degraded_thread(self) -> ThreadHandle:
        """Local stand-in handle used when the service cannot open a thread."""
        return degraded_thread()


def degraded_thread() -> ThreadHandle:
    return ThreadHandle(thread_id=f"thread_{secrets.token_hex(6)}", degraded=True)
