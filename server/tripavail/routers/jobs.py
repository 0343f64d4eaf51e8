"""Scheduled job router: entry point for an external scheduler."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.database import get_session_factory
from ..schemas.jobs import SweepResultResponse
from ..services.expiry_service import ExpirySweeper

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/jobs", tags=["jobs"])

# Define dependencies to avoid B008 linting errors
SESSION_FACTORY_DEPENDENCY = Depends(get_session_factory)


@router.post("/expire-holds", response_model=SweepResultResponse)
async def expire_holds(
    session_factory: async_sessionmaker[AsyncSession] = SESSION_FACTORY_DEPENDENCY
) -> JSONResponse:
    """
    Run one expiry sweep.

    Safe to call on any schedule and concurrently with the in-process
    worker. Partial failures answer 200 with failed_types populated; only a
    sweep where every booking type failed answers 503.
    """
    result = await ExpirySweeper(session_factory).expire_pending_holds()

    response_data = SweepResultResponse.model_validate(result.to_dict())
    status_code = 200 if result.success else 503
    return JSONResponse(status_code=status_code, content=response_data.model_dump(mode="json"))
