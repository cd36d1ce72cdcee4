"""Errors raised by the interpretation session engine."""
from __future__ import annotations

from typing import Optional
from uuid import UUID


class InterpretationError(Exception):
    """Base class for interpretation session errors."""


class AssistantError(InterpretationError):
    """The remote assistant could not produce the turn we asked for."""


class ServiceUnavailable(AssistantError):
    """A remote call failed or timed out."""


class PollTimeout(AssistantError):
    """A run never reached a terminal status within the polling budget."""


class NoResponse(AssistantError):
    """A finished run left no assistant message on the thread."""


class InvalidState(InterpretationError):
    """A protocol method was called out of sequence."""


class RoundInterrupted(InterpretationError):
    """The current round failed but can be retried with the same answer."""

    def __init__(self, message: str, cause: Optional[AssistantError] = None) -> None:
        super().__init__(message)
        self.cause = cause


class PersistenceWarning(InterpretationError):
    """The durable record could not be written; the session carries on."""

    def __init__(self, dream_id: UUID, message: str) -> None:
        super().__init__(message)
        self.dream_id = dream_id


class SessionNotFound(InterpretationError):
    """No live or persisted session exists for this dream and user."""
