# dream_interpreter/api/dream/routes.py
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from dream_interpreter.dependencies import get_current_user_id, get_interpretation_service
from dream_interpreter.services.interpretation.service import InterpretationService
from .schemas import DreamListItem, DreamRead

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/dreams",
)

# ─────────────────────────────── dreams ─────────────────────────────── #

@router.get("/", name="list_dreams")
async def list_dreams(
    svc: InterpretationService = Depends(get_interpretation_service),
    user_id: str = Depends(get_current_user_id),
):
    dreams = await svc.list_dreams(user_id)
    return [DreamListItem.from_dream(dream).model_dump(mode="json") for dream in dreams]


@router.get("/{did}")
async def read_dream(
    did: UUID,
    svc: InterpretationService = Depends(get_interpretation_service),
    user_id: str = Depends(get_current_user_id),
):
    dream = await svc.get_dream(user_id, did)
    if not dream:
        raise HTTPException(404, "Dream not found")
    result = DreamRead.model_validate(dream).model_dump()
    logger.debug(f"GET dream {did} - status: {result['status']}, has interpretation: {result['interpretation'] is not None}")
    return result
