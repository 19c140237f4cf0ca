"""Batch validation API."""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from record_validator.api.deps import get_batch_service
from record_validator.core.errors import ResourceNotFoundError
from record_validator.models.batch import BatchOptions
from record_validator.services.batch_service import BatchValidationService

router = APIRouter(prefix="/batches", tags=["Batches"])


class BatchStartRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    options: BatchOptions = Field(default_factory=BatchOptions)


@router.post("", status_code=status.HTTP_202_ACCEPTED, summary="Start a batch validation")
async def start_batch(
    request: BatchStartRequest,
    service: BatchValidationService = Depends(get_batch_service),
) -> Dict[str, Any]:
    batch_id = await service.start_batch(request.session_id, request.options)
    batch = service.get_batch_result(batch_id)
    return {
        "batch_id": batch_id,
        "status": batch.status.value,
        "total_files": batch.summary.total_files,
    }


@router.get("/stats", summary="Batch service statistics")
async def batch_stats(service: BatchValidationService = Depends(get_batch_service)) -> Dict[str, int]:
    return service.get_service_stats()


@router.get("", summary="Batches of a session, newest first")
async def list_batches(
    session_id: str = Query(..., min_length=1),
    service: BatchValidationService = Depends(get_batch_service),
) -> List[Dict[str, Any]]:
    return [batch.to_dict() for batch in service.get_session_batches(session_id)]


@router.get("/{batch_id}", summary="Batch progress and results")
async def get_batch(
    batch_id: str,
    include_findings: bool = Query(False),
    service: BatchValidationService = Depends(get_batch_service),
) -> Dict[str, Any]:
    batch = service.get_batch_result(batch_id)
    if batch is None:
        raise ResourceNotFoundError("Batch", batch_id)
    return batch.to_dict(include_findings=include_findings)


@router.post("/{batch_id}/cancel", summary="Cancel a batch")
async def cancel_batch(
    batch_id: str,
    service: BatchValidationService = Depends(get_batch_service),
) -> Dict[str, Any]:
    batch = service.get_batch_result(batch_id)
    if batch is None:
        raise ResourceNotFoundError("Batch", batch_id)

    cancelled = service.cancel_batch(batch_id)
    return {"batch_id": batch_id, "cancelled": cancelled, "status": batch.status.value}


@router.get("/{batch_id}/categories", summary="Per-category statistics of a batch")
async def batch_categories(
    batch_id: str,
    service: BatchValidationService = Depends(get_batch_service),
) -> Dict[str, Dict[str, Any]]:
    if service.get_batch_result(batch_id) is None:
        raise ResourceNotFoundError("Batch", batch_id)
    return await service.get_category_stats(batch_id)
