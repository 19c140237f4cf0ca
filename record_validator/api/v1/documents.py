"""Document registry API - accepts documents already normalized by the spreadsheet parser."""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from record_validator.api.deps import get_document_repository
from record_validator.core.errors import InvalidInputError
from record_validator.core.logging import get_logger
from record_validator.models.document import (
    DocumentFormat,
    RecordDocument,
    SectionData,
    SectionType,
    SheetData,
    StudentInfo,
    StudentRecord,
)
from record_validator.repositories.documents import DocumentRepository

logger = get_logger(__name__)
router = APIRouter(prefix="/documents", tags=["Documents"])


class SectionPayload(BaseModel):
    title: str
    section_type: Optional[SectionType] = None
    start_row: int = 0
    end_row: int = 0
    headers: List[str] = Field(default_factory=list)
    content_rows: List[List[Any]] = Field(default_factory=list)

    def to_section(self) -> SectionData:
        return SectionData(
            title=self.title,
            section_type=self.section_type or SectionType.GENERAL,
            start_row=self.start_row,
            end_row=self.end_row,
            headers=list(self.headers),
            content_rows=[list(row) for row in self.content_rows],
        )


class StudentInfoPayload(BaseModel):
    name: str = ""
    student_number: Optional[str] = None
    class_name: Optional[str] = None
    grade: Optional[str] = None
    school: Optional[str] = None


class StudentPayload(BaseModel):
    info: StudentInfoPayload
    sections: Dict[str, SectionPayload] = Field(default_factory=dict)


class SheetPayload(BaseModel):
    name: str
    rows: List[List[Any]] = Field(default_factory=list)


class DocumentPayload(BaseModel):
    document_id: Optional[str] = None
    file_name: str
    format: DocumentFormat = DocumentFormat.GENERIC
    category: str = "general"
    students: List[StudentPayload] = Field(default_factory=list)
    sheets: List[SheetPayload] = Field(default_factory=list)

    def to_document(self) -> RecordDocument:
        return RecordDocument(
            document_id=self.document_id or uuid4().hex,
            file_name=self.file_name,
            format=self.format,
            category=self.category,
            students=[
                StudentRecord(
                    info=StudentInfo(**student.info.model_dump()),
                    sections={name: section.to_section() for name, section in student.sections.items()},
                )
                for student in self.students
            ],
            sheets=[SheetData(name=sheet.name, rows=[list(row) for row in sheet.rows]) for sheet in self.sheets],
        )


class DocumentUploadRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    document: DocumentPayload


@router.post("", status_code=status.HTTP_201_CREATED, summary="Register a parsed document")
async def add_document(
    request: DocumentUploadRequest,
    documents: DocumentRepository = Depends(get_document_repository),
) -> Dict[str, Any]:
    payload = request.document
    if payload.format == DocumentFormat.NEIS and not payload.students:
        raise InvalidInputError("NEIS documents must contain at least one student", field="students")
    if payload.format == DocumentFormat.GENERIC and not payload.sheets:
        raise InvalidInputError("Generic documents must contain at least one sheet", field="sheets")

    record = await documents.add(request.session_id, payload.to_document())
    logger.info(
        "document_registered",
        document_id=record.document_id,
        session_id=record.session_id,
        category=record.category,
        total_cells=record.document.total_cells,
    )
    return record.to_dict()


@router.get("", summary="List the documents of a session")
async def list_documents(
    session_id: str = Query(..., min_length=1),
    category: Optional[str] = Query(None),
    documents: DocumentRepository = Depends(get_document_repository),
) -> List[Dict[str, Any]]:
    if category:
        records = await documents.list_by_category(session_id, category)
    else:
        records = await documents.list_by_session(session_id)
    return [record.to_dict() for record in records]


@router.get("/{document_id}", summary="Get one document record")
async def get_document(
    document_id: str,
    documents: DocumentRepository = Depends(get_document_repository),
) -> Dict[str, Any]:
    record = await documents.require(document_id)
    return record.to_dict()
