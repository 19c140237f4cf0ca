from typing import Any, Dict

from fastapi import APIRouter, Depends

from record_validator.api.deps import get_batch_service, get_validation_service
from record_validator.core.config import get_settings
from record_validator.services.batch_service import BatchValidationService
from record_validator.services.validation_service import ValidationService

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check(
    validations: ValidationService = Depends(get_validation_service),
    batches: BatchValidationService = Depends(get_batch_service),
) -> Dict[str, Any]:
    """
    Health check.

    Reports in-memory service statistics and, when configured, whether the
    Redis result cache answers.
    """
    settings = get_settings()
    components: Dict[str, Any] = {
        "validations": validations.stats(),
        "batches": batches.get_service_stats(),
        "corpus_entries": validations.corpus_store.total_entries,
        "semantic_review": "enabled" if settings.semantic_enabled else "disabled",
    }

    status = "healthy"
    if validations.result_cache is not None:
        cache = await validations.result_cache.repo.health_check()
        components["result_cache"] = cache
        if cache["status"] != "healthy":
            status = "degraded"

    return {"status": status, "version": settings.version, "components": components}


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    return {"status": "alive"}
