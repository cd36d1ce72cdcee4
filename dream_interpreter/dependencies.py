# dream_interpreter/dependencies.py

"""
Centralised FastAPI dependency providers.

Lifetimes
---------
* module-level singletons → created once at import time
* per-request values      → resolved by the provider functions below
"""

from __future__ import annotations

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from dream_interpreter.config import settings
from dream_interpreter.context.interpretation import UserProfileProvider
from dream_interpreter.infrastructure.assistant.openai_assistant import build_assistant_client
from dream_interpreter.infrastructure.implementations.dream.rds_dream_repository import RDSDreamRepository
from dream_interpreter.infrastructure.implementations.user.profile_repository import SqlProfileRepository
from dream_interpreter.services.interpretation.service import InterpretationService
from dream_interpreter.services.interpretation.synchronizer import PersistenceSynchronizer

# ────────────────────────── singletons ─────────────────────────── #

_dream_repo = RDSDreamRepository()
_profile_repo = SqlProfileRepository()
# None when credentials are missing: every session then runs on fallback content
_assistant = build_assistant_client(settings())
_profile_provider = UserProfileProvider(_profile_repo)
_synchronizer = PersistenceSynchronizer(_dream_repo)

_interpretation_service = InterpretationService(
    synchronizer=_synchronizer,
    assistant=_assistant,
    profile_provider=_profile_provider,
    poll_max_attempts=settings().assistant_poll_max_attempts,
    poll_interval_s=settings().assistant_poll_interval_s,
    failure_budget=settings().assistant_failure_budget,
)

# ─────────────────────── DI provider helpers ───────────────────── #

def get_interpretation_service() -> InterpretationService:
    return _interpretation_service

# ───────────────────────── auth helpers ───────────────────────── #
_security = HTTPBearer()

async def get_current_user_id(token: HTTPAuthorizationCredentials = Depends(_security)) -> str:
    """Return the caller's user id from our JWT; 401 if invalid.

    Tokens are issued by the account service; ``uid`` is preferred and the
    provider ``sub`` claim is accepted as a fallback.
    """
    try:
        payload = jwt.decode(token.credentials, settings().jwt_secret, algorithms=["HS256"])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id: str | None = payload.get("uid") or payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token carries no user id")
    return str(user_id)

