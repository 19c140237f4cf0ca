"""Single-document validation API."""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query, status

from record_validator.api.deps import get_document_repository, get_validation_service
from record_validator.core.errors import ResourceNotFoundError
from record_validator.repositories.documents import DocumentRepository
from record_validator.services.validation_service import ValidationService

router = APIRouter(prefix="/validations", tags=["Validations"])


def _without_findings(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if key not in ("errors", "warnings", "info")}


@router.post("/{document_id}", status_code=status.HTTP_202_ACCEPTED, summary="Start validating a document")
async def start_validation(
    document_id: str,
    documents: DocumentRepository = Depends(get_document_repository),
    service: ValidationService = Depends(get_validation_service),
) -> Dict[str, Any]:
    record = await documents.require(document_id)
    current = service.get_result(document_id)
    if current is None or current.is_terminal:
        service.register(record.document)

    result = service.start(document_id)
    return {"document_id": document_id, "status": result.status.value}


@router.get("", summary="Most recent validation results")
async def list_validations(
    limit: int = Query(10, ge=1, le=100),
    service: ValidationService = Depends(get_validation_service),
) -> List[Dict[str, Any]]:
    return [_without_findings(result.to_dict()) for result in service.get_recent(limit)]


@router.get("/{document_id}", summary="Validation result of a document")
async def get_validation(
    document_id: str,
    service: ValidationService = Depends(get_validation_service),
) -> Dict[str, Any]:
    payload = await service.fetch_result(document_id)
    if payload is None:
        raise ResourceNotFoundError("Validation", document_id)
    return payload


@router.post("/{document_id}/cancel", summary="Cancel a running validation")
async def cancel_validation(
    document_id: str,
    service: ValidationService = Depends(get_validation_service),
) -> Dict[str, Any]:
    result = service.get_result(document_id)
    if result is None:
        raise ResourceNotFoundError("Validation", document_id)

    cancelled = service.cancel(document_id)
    return {"document_id": document_id, "cancelled": cancelled, "status": result.status.value}
