# dream_interpreter/api/interpretation/routes.py
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from dream_interpreter.dependencies import get_current_user_id, get_interpretation_service
from dream_interpreter.domain.interpretation.errors import (
    InvalidState,
    RoundInterrupted,
    SessionNotFound,
)
from dream_interpreter.services.interpretation.service import InterpretationService
from .schemas import SessionRead, StartInterpretationRequest, SubmitAnswerRequest

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/interpretations",
)


@router.post("/", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
async def start_interpretation(
    payload: StartInterpretationRequest,
    svc: InterpretationService = Depends(get_interpretation_service),
    user_id: str = Depends(get_current_user_id),
):
    try:
        outcome = await svc.start(user_id, payload.dream_text)
    except ValueError as e:
        raise HTTPException(422, str(e))
    return SessionRead.from_session(outcome.session, outcome.warnings)


@router.post("/{did}/answers", response_model=SessionRead)
async def submit_answer(
    did: UUID,
    payload: SubmitAnswerRequest,
    svc: InterpretationService = Depends(get_interpretation_service),
    user_id: str = Depends(get_current_user_id),
):
    try:
        outcome = await svc.submit_answer(user_id, did, payload.answer)
    except SessionNotFound:
        raise HTTPException(404, "Interpretation session not found")
    except InvalidState as e:
        raise HTTPException(409, str(e))
    except RoundInterrupted as e:
        logger.info(f"Round interrupted for dream {did}: {e.cause}")
        raise HTTPException(503, str(e), headers={"Retry-After": "1"})
    except ValueError as e:
        raise HTTPException(422, str(e))
    return SessionRead.from_session(outcome.session, outcome.warnings)


@router.get("/{did}", response_model=SessionRead)
async def read_session(
    did: UUID,
    svc: InterpretationService = Depends(get_interpretation_service),
    user_id: str = Depends(get_current_user_id),
):
    try:
        session = await svc.get_session(user_id, did)
    except SessionNotFound:
        raise HTTPException(404, "Interpretation session not found")
    except InvalidState as e:
        raise HTTPException(409, str(e))
    return SessionRead.from_session(session, is_loading=svc.is_loading(did))


@router.delete("/{did}", status_code=status.HTTP_204_NO_CONTENT)
async def abandon_session(
    did: UUID,
    svc: InterpretationService = Depends(get_interpretation_service),
    user_id: str = Depends(get_current_user_id),
):
    ok = await svc.abandon(user_id, did)
    if not ok:
        raise HTTPException(404, "Interpretation session not found")
