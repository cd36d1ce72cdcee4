from datetime import datetime
from enum import Enum
from uuid import uuid4
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy import (
    Boolean, Column, DateTime, String, Text, JSON, Index, desc
)
from dream_interpreter.infrastructure.db.meta import Base


class DreamStatus(str, Enum):
    PENDING = "pending"
    INTERPRETING = "interpreting"
    COMPLETED = "completed"


class Dream(Base):
    """Durable mirror of one dream and its interpretation conversation."""
    __tablename__ = "dreams"
    id         = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id    = Column(String(64), nullable=False, index=True)
    dream_text = Column(Text, nullable=False)
    status     = Column(String(20), default=DreamStatus.PENDING.value, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=True)

    # Conversation mirror; both lists are rewritten whole on every sync
    questions      = Column(JSON, nullable=True)
    answers        = Column(JSON, nullable=True)
    interpretation = Column(Text, nullable=True)

    # Assistant thread the conversation runs on, kept so a reload can resume it
    thread_id = Column(String(64), nullable=True)
    # True once any turn was produced locally; the thread no longer matches the transcript
    degraded  = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index('ix_dreams_user_created', 'user_id', desc('created_at')),
    )
