from typing import List, Optional, Any, Dict
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict, field_validator


class DreamRead(BaseModel):
    id: UUID
    dream_text: str
    status: str
    questions: List[str] = []
    answers: List[str] = []
    interpretation: Optional[str] = None
    degraded: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("questions", "answers", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return value or []

    def model_dump(self, **kwargs) -> Dict[str, Any]:
        data = super().model_dump(**kwargs)
        if 'created_at' in data and isinstance(data['created_at'], datetime):
            data['created_at'] = data['created_at'].isoformat(timespec="seconds") + "Z"
        return data


class DreamListItem(BaseModel):
    id: UUID
    dream_text: str
    status: str
    created_at: datetime
    has_interpretation: bool = False

    @classmethod
    def from_dream(cls, dream) -> "DreamListItem":
        return cls(
            id=dream.id,
            dream_text=dream.dream_text,
            status=dream.status,
            created_at=dream.created_at,
            has_interpretation=bool(dream.interpretation),
        )
