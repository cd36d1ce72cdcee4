"""Interpretation prompt templates and local fallback content."""

from dataclasses import dataclass
from typing import Optional

from dream_interpreter.domain.interpretation.session import QUESTION_ROUNDS
from dream_interpreter.domain.user.profile import UserProfile


@dataclass
class InterpretationPrompts:
    """Centralized prompt management for the interpretation conversation."""

    # Run instructions, chosen by round number only
    FOLLOW_UP_INSTRUCTIONS = """You are a dream interpreter specializing in Islamic dream interpretation.
The dreamer has shared a dream and may have answered some of your earlier questions.
Ask exactly ONE concise follow-up question about the dream that will help you interpret it.
This is question {round_number} of {total_rounds}.
Do NOT give any interpretation yet. Reply with the question only."""

    FINAL_INSTRUCTIONS = """You are a dream interpreter specializing in Islamic dream interpretation.
You have now collected all {total_rounds} answers from the dreamer. Provide your final interpretation, which must include:
- An explanation of what the dream and its main symbols mean for the dreamer
- A relevant Qur'anic verse related to the dream's theme, with its surah and ayah reference
- A short closing spiritual reflection or piece of advice
Do not ask any further questions."""

    # Personalisation preamble placed ahead of the dream text
    PROFILE_PREAMBLE = """User Information:
- Age: {age}
- Gender: {gender}
- Marital Status: {marital_status}
- Has Children: {has_kids}
- Has Pets: {has_pets}
- Work Status: {work_status}

Dream Content:
{content}"""

    NOT_PROVIDED = "Not provided"

    # Used whenever the assistant cannot be reached; one question per round
    FALLBACK_QUESTIONS = (
        "What emotions did you feel most strongly during the dream, and did they stay with you after waking?",
        "Were there any people, animals or places in the dream that you recognised from your waking life?",
        "Is anything happening in your life right now that this dream might be connected to?",
    )

    FALLBACK_INTERPRETATION = """Thank you for sharing your dream and answering my questions.

Interpretation: Your dream about "{excerpt}" appears to reflect a period of reflection and spiritual growth. The feelings and people you described suggest that your heart is processing changes in your life, and the dream invites you to meet them with patience rather than worry.

Qur'anic reference: "Indeed, with hardship comes ease." (Surah Ash-Sharh 94:5)

Reflection: In Islamic tradition, good dreams are counted among the glad tidings for the believer. Consider increasing your prayers and remembrance of Allah during this time, and trust that what is meant for you will reach you."""

    EXCERPT_LENGTH = 80

    @classmethod
    def instructions_for_round(cls, round_number: int) -> str:
        """Run instructions for the given round; anything past the question rounds is the interpretation."""
        if round_number < 1:
            raise ValueError(f"Rounds start at 1, got {round_number}")
        if round_number > QUESTION_ROUNDS:
            return cls.FINAL_INSTRUCTIONS.format(total_rounds=QUESTION_ROUNDS)
        return cls.FOLLOW_UP_INSTRUCTIONS.format(round_number=round_number, total_rounds=QUESTION_ROUNDS)

    @classmethod
    def build_message(cls, content: str, profile: Optional[UserProfile]) -> str:
        """Wrap the message in the profile preamble when a profile is known."""
        if profile is None:
            return content

        def _text(value) -> str:
            return str(value) if value not in (None, "") else cls.NOT_PROVIDED

        return cls.PROFILE_PREAMBLE.format(
            age=_text(profile.age),
            gender=_text(profile.gender),
            marital_status=_text(profile.marital_status),
            has_kids="Yes" if profile.has_kids else "No",
            has_pets="Yes" if profile.has_pets else "No",
            work_status=_text(profile.work_status),
            content=content,
        )

    @classmethod
    def fallback_question(cls, round_number: int) -> str:
        return cls.FALLBACK_QUESTIONS[(round_number - 1) % len(cls.FALLBACK_QUESTIONS)]

    @classmethod
    def fallback_interpretation(cls, dream_text: str) -> str:
        excerpt = " ".join(dream_text.split())
        if len(excerpt) > cls.EXCERPT_LENGTH:
            excerpt = excerpt[: cls.EXCERPT_LENGTH].rstrip() + "..."
        return cls.FALLBACK_INTERPRETATION.format(excerpt=excerpt)

    @classmethod
    def fallback_for_round(cls, round_number: int, dream_text: str) -> str:
        if round_number > QUESTION_ROUNDS:
            return cls.fallback_interpretation(dream_text)
        return cls.fallback_question(round_number)
