from typing import List
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from dream_interpreter.domain.interpretation.errors import PersistenceWarning
from dream_interpreter.domain.interpretation.session import Session


class StartInterpretationRequest(BaseModel):
    dream_text: str = Field(min_length=1)


class SubmitAnswerRequest(BaseModel):
    answer: str = Field(min_length=1)


class MessageRead(BaseModel):
    id: UUID
    dream_id: UUID
    content: str
    sender: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class SessionRead(BaseModel):
    dream_id: UUID
    status: str
    round: int
    is_complete: bool
    degraded: bool
    is_loading: bool = False
    messages: List[MessageRead] = []
    warnings: List[str] = []

    @classmethod
    def from_session(
        cls,
        session: Session,
        warnings: List[PersistenceWarning] = (),
        is_loading: bool = False,
    ) -> "SessionRead":
        return cls(
            dream_id=session.dream.id,
            status=session.dream.status.value,
            round=session.round,
            is_complete=session.is_complete,
            degraded=session.degraded,
            is_loading=is_loading,
            messages=[
                MessageRead(
                    id=m.id,
                    dream_id=m.dream_id,
                    content=m.content,
                    sender=m.sender.value,
                    timestamp=m.timestamp,
                )
                for m in session.messages
            ],
            warnings=[str(w) for w in warnings],
        )
