"""User profile domain entities."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class UserProfile:
    """Personal details the dreamer filled in when completing their profile.

    Read-only for this service; used to personalise what the assistant is told
    about the dreamer.
    """
    user_id: str
    age: Optional[int] = None
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    has_kids: Optional[bool] = None
    has_pets: Optional[bool] = None
    work_status: Optional[str] = None
