"""
API Routes

HTTP entry point of the repair pipeline. Requests are validated with the
Pydantic models, the batch runs on the repair service's worker thread and the
aggregated result is returned as a success or failure payload.
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request
from loguru import logger

from lofterfix.errors import FailureKind
from lofterfix.models.api_models import RepairFailure, RepairRequest, RepairResponse
from lofterfix.services.repair_service import RepairService

FAILURE_STATUS = {
    FailureKind.NO_DETECTION: 422,
    FailureKind.ERR: 500,
}


def get_repair_service(request: Request) -> RepairService:
    return request.app.state.repair_service


router = APIRouter()


@router.get("/ping")
def ping():
    logger.info("Ping endpoint called")
    return {"message": "pong"}


@router.post("/repair", response_model=RepairResponse)
async def repair(
    payload: RepairRequest,
    request: Request,
    svc: RepairService = Depends(get_repair_service),
):
    settings = request.app.state.settings
    tasks = payload.to_tasks()
    options = payload.to_options(settings.default_confidence, settings.default_padding)
    logger.info(f"► [Process] Repair requested for {len(tasks)} task(s)")

    result = await asyncio.wrap_future(svc.submit_batch(tasks, options))

    if result.failure is not None:
        failure = RepairFailure(kind=result.failure.kind, message=result.failure.message)
        logger.warning(f"  ! [Process] Batch failed: {failure.kind.value}")
        raise HTTPException(status_code=FAILURE_STATUS[failure.kind], detail=failure.model_dump(mode="json"))

    logger.info(f"✔ [Process] Repaired {result.count} of {len(tasks)} image(s)")
    return RepairResponse(count=result.count, first_path=result.first_path)
