"""Registry of uploaded, already parsed documents per session."""
from typing import List, Optional

from record_validator.core.errors import ResourceNotFoundError
from record_validator.models.document import DocumentRecord, DocumentRecordStatus, RecordDocument
from record_validator.repositories.base import InMemoryRepository


class DocumentRepository(InMemoryRepository[DocumentRecord, str]):
    """Document source for the validation and batch services."""

    def __init__(self):
        super().__init__(key_of=lambda record: record.document_id)

    async def add(self, session_id: str, document: RecordDocument) -> DocumentRecord:
        return await self.create(DocumentRecord(document=document, session_id=session_id))

    async def get(self, document_id: str) -> Optional[DocumentRecord]:
        return await self.get_by_id(document_id)

    async def require(self, document_id: str) -> DocumentRecord:
        record = await self.get_by_id(document_id)
        if record is None:
            raise ResourceNotFoundError("Document", document_id)
        return record

    async def list_by_session(self, session_id: str) -> List[DocumentRecord]:
        return await self.filter_by(lambda record: record.session_id == session_id)

    async def list_by_category(self, session_id: str, category: str) -> List[DocumentRecord]:
        return await self.filter_by(
            lambda record: record.session_id == session_id and record.category == category
        )

    async def update_status(
        self,
        document_id: str,
        status: DocumentRecordStatus,
        validation_id: Optional[str] = None,
    ) -> Optional[DocumentRecord]:
        updates = {"status": status}
        if validation_id is not None:
            updates["last_validation_id"] = validation_id
        return await self.update(document_id, updates)
