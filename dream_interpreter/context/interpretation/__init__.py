"""Interpretation conversation context: prompts, fallbacks and profile lookup."""

from .prompts import InterpretationPrompts
from .providers import UserProfileProvider

__all__ = [
    "InterpretationPrompts",
    "UserProfileProvider",
]
