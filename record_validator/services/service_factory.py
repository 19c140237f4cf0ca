"""
Service factory - one shared instance of each service per process.
"""
from typing import TYPE_CHECKING, Any, Callable, Dict

if TYPE_CHECKING:
    from record_validator.repositories.documents import DocumentRepository
    from record_validator.services.batch_service import BatchValidationService
    from record_validator.services.corpus_store import CorpusStore
    from record_validator.services.validation_service import ValidationService


class ServiceFactory:
    """
    Unified access to the application services.

    Instances are created lazily on first access; reset() drops them so tests
    start from a clean state.
    """

    _instances: Dict[str, Any] = {}

    @classmethod
    def _get(cls, name: str, build: Callable[[], Any]) -> Any:
        if name not in cls._instances:
            cls._instances[name] = build()
        return cls._instances[name]

    @classmethod
    def get_document_repository(cls) -> 'DocumentRepository':
        from record_validator.repositories.documents import DocumentRepository
        return cls._get("documents", DocumentRepository)

    @classmethod
    def get_corpus_store(cls) -> 'CorpusStore':
        """Store shared by single-document validations."""
        from record_validator.services.corpus_store import CorpusStore
        return cls._get("corpus_store", CorpusStore)

    @classmethod
    def get_validation_service(cls) -> 'ValidationService':
        from record_validator.services.validation_service import ValidationService
        return cls._get(
            "validation",
            lambda: ValidationService(corpus_store=cls.get_corpus_store()),
        )

    @classmethod
    def get_batch_service(cls) -> 'BatchValidationService':
        from record_validator.services.batch_service import BatchValidationService
        return cls._get(
            "batch",
            lambda: BatchValidationService(
                documents=cls.get_document_repository(),
                validation_service=cls.get_validation_service(),
            ),
        )

    @classmethod
    def run_maintenance(cls) -> Dict[str, int]:
        """Drop expired validation results, finished batches and stale shared corpus entries."""
        return {
            "results": cls.get_validation_service().cleanup(),
            "batches": cls.get_batch_service().cleanup_old_batches(),
            "corpus_entries": cls.get_corpus_store().cleanup(),
        }

    @classmethod
    async def shutdown(cls):
        """Close external connections held by the services."""
        validation = cls._instances.get("validation")
        if validation is not None and validation.result_cache is not None:
            await validation.result_cache.close()

    @classmethod
    def reset(cls):
        cls._instances.clear()
