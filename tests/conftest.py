"""Shared test fixtures: settings, corpus store and document builders."""

import os

# No semantic review or Redis in tests, whatever the shell environment says.
os.environ["SEMANTIC_API_KEY"] = ""
os.environ["REDIS_URL"] = ""
os.environ["JSON_LOGS"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Any, Callable, Dict, List, Optional

import pytest

from record_validator.core.config import Settings
from record_validator.models.document import (
    DocumentFormat,
    RecordDocument,
    SectionData,
    SectionType,
    SheetData,
    StudentInfo,
    StudentRecord,
)
from record_validator.models.validation import CellContext
from record_validator.services.corpus_store import CorpusStore
from record_validator.services.service_factory import ServiceFactory
from record_validator.services.similarity import SimilarityEngine

OPINION = "행동특성및종합의견"
ATTENDANCE = "출결상황"
CLUB = "동아리활동"


@pytest.fixture()
def settings() -> Settings:
    return Settings(_env_file=None, semantic_api_key=None, redis_url=None)


@pytest.fixture()
def corpus_store(settings: Settings) -> CorpusStore:
    return CorpusStore(settings)


@pytest.fixture()
def engine(settings: Settings) -> SimilarityEngine:
    return SimilarityEngine.from_settings(settings)


@pytest.fixture(autouse=True)
def fresh_services():
    """Every test starts without shared service instances."""
    ServiceFactory.reset()
    yield
    ServiceFactory.reset()


@pytest.fixture()
def make_context() -> Callable[..., CellContext]:
    """Build a NEIS-style cell context."""

    def _make(
        document_id: str = "doc-1",
        owner: Optional[str] = "김민준",
        section: Optional[str] = OPINION,
        row: int = 5,
        column: str = "A",
        section_type: Optional[SectionType] = None,
        sheet: Optional[str] = None,
        is_content_row: bool = True,
    ) -> CellContext:
        return CellContext(
            document_id=document_id,
            sheet=sheet or f"{owner}_{section}",
            row=row,
            column=column,
            cell=f"{column}{row}",
            section_name=section,
            section_type=section_type or SectionType.from_name(section),
            owner=owner,
            is_content_row=is_content_row,
        )

    return _make


@pytest.fixture()
def make_neis_document() -> Callable[..., RecordDocument]:
    """Build a NEIS document from {student: {section: [cell texts]}}; one cell per row."""

    def _make(
        students: Dict[str, Dict[str, List[Any]]],
        document_id: str = "neis-1",
        category: str = "2학년",
        start_row: int = 10,
    ) -> RecordDocument:
        records = []
        for name, sections in students.items():
            records.append(StudentRecord(
                info=StudentInfo(name=name, grade="2", class_name="3"),
                sections={
                    title: SectionData(
                        title=title,
                        start_row=start_row,
                        end_row=start_row + len(cells) + 1,
                        headers=["내용"],
                        content_rows=[[cell] for cell in cells],
                    )
                    for title, cells in sections.items()
                },
            ))
        return RecordDocument(
            document_id=document_id,
            file_name=f"{document_id}.xlsx",
            format=DocumentFormat.NEIS,
            category=category,
            students=records,
        )

    return _make


@pytest.fixture()
def make_sheet_document() -> Callable[..., RecordDocument]:
    """Build a generic single-sheet document."""

    def _make(
        rows: List[List[Any]],
        document_id: str = "sheet-1",
        category: str = "general",
        sheet_name: str = "Sheet1",
        total_cells: Optional[int] = None,
    ) -> RecordDocument:
        return RecordDocument(
            document_id=document_id,
            file_name=f"{document_id}.xlsx",
            format=DocumentFormat.GENERIC,
            category=category,
            sheets=[SheetData(name=sheet_name, rows=rows)],
            total_cells=total_cells,
        )

    return _make
