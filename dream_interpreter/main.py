# dream_interpreter/main.py
"""
FastAPI entry point.

    uvicorn dream_interpreter.main:app --reload
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dream_interpreter.config import settings
from dream_interpreter.infrastructure.db import bootstrap
from dream_interpreter.api.dream.routes import router as dream_router
from dream_interpreter.api.interpretation.routes import router as interpretation_router

logging.basicConfig(
    level=settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
for name in ("httpx", "openai", "sqlalchemy.engine.Engine"):
    logging.getLogger(name).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await bootstrap.init_engine(settings())
    logger.info("Dream interpreter API started")
    yield
    await bootstrap.dispose_engine()


app = FastAPI(title="Dream Interpreter", lifespan=lifespan)
app.include_router(dream_router)
app.include_router(interpretation_router)


@app.get("/health")
async def health():
    from dream_interpreter.dependencies import get_interpretation_service

    return {"status": "ok", "assistant": "fallback" if get_interpretation_service().degraded else "live"}
