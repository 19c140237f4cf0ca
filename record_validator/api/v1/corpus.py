"""Corpus inspection API - duplicate statistics of the shared or a batch's corpus store."""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from record_validator.api.deps import get_batch_service, get_corpus_store
from record_validator.core.errors import ResourceNotFoundError
from record_validator.core.logging import get_logger
from record_validator.services.batch_service import BatchValidationService
from record_validator.services.corpus_store import CorpusStore

logger = get_logger(__name__)
router = APIRouter(prefix="/corpus", tags=["Corpus"])


def _select_store(
    batch_id: Optional[str] = Query(None, description="Inspect a batch's corpus instead of the shared one"),
    shared: CorpusStore = Depends(get_corpus_store),
    batches: BatchValidationService = Depends(get_batch_service),
) -> CorpusStore:
    if batch_id is None:
        return shared
    store = batches.corpus_for(batch_id)
    if store is None:
        raise ResourceNotFoundError("Batch", batch_id)
    return store


@router.get("/stats", summary="Corpus statistics")
async def corpus_stats(store: CorpusStore = Depends(_select_store)) -> Dict[str, Any]:
    return store.statistics()


@router.get("/duplicates", summary="Texts stored at more than one cell")
async def corpus_duplicates(
    limit: int = Query(50, ge=1, le=500),
    store: CorpusStore = Depends(_select_store),
) -> List[Dict[str, Any]]:
    return store.duplicate_report()[:limit]


@router.delete("", summary="Clear the corpus")
async def clear_corpus(store: CorpusStore = Depends(_select_store)) -> Dict[str, Any]:
    removed = store.total_entries
    store.clear()
    logger.info("corpus_cleared", removed_entries=removed)
    return {"cleared": True, "removed_entries": removed}
