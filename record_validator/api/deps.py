from record_validator.repositories.documents import DocumentRepository
from record_validator.services.batch_service import BatchValidationService
from record_validator.services.corpus_store import CorpusStore
from record_validator.services.service_factory import ServiceFactory
from record_validator.services.validation_service import ValidationService


def get_document_repository() -> DocumentRepository:
    return ServiceFactory.get_document_repository()


def get_corpus_store() -> CorpusStore:
    return ServiceFactory.get_corpus_store()


def get_validation_service() -> ValidationService:
    return ServiceFactory.get_validation_service()


def get_batch_service() -> BatchValidationService:
    return ServiceFactory.get_batch_service()
