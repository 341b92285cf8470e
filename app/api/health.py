"""Liveness endpoint.

Always 200 while the process can answer; "status" reports whether the
database (when one is configured) accepted a trivial query.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthOut(BaseModel):
    status: str
    checks: dict[str, str]


@router.get("/health", response_model=HealthOut)
async def health(request: Request) -> HealthOut:
    checks: dict[str, str] = {}
    overall = "ok"

    engine = request.app.state.engine
    if engine is None:
        checks["database"] = "not_configured"
    else:
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Health check: database unreachable (%s)", type(e).__name__)
            checks["database"] = "degraded"
            overall = "degraded"

    return HealthOut(status=overall, checks=checks)
