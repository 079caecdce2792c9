"""Domain entities for exam paper imports."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from exam_import.core.errors import StateMismatchError


class ImportStatus(str, Enum):
    PROCESSING = "processing"
    READY_FOR_REVIEW = "ready_for_review"
    COMPLETED = "completed"
    FAILED = "failed"


_PROGRESS = {
    ImportStatus.PROCESSING: 50,
    ImportStatus.READY_FOR_REVIEW: 100,
}


def progress_of(status: ImportStatus) -> int | None:
    """Coarse progress percentage reported to polling clients."""

    return _PROGRESS.get(status)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class SourceDescriptor:
    """What was uploaded and which exam it belongs to."""

    filename: str
    school: str
    year: int
    exam_type: str
    paper_number: int | None = None

    @property
    def label(self) -> str:
        return f"{self.school} {self.year} {self.exam_type}"


@dataclass(slots=True)
class ImportJob:
    """One upload's progress from extraction through review and commit.

    Transition methods guard the state machine; callers persist the job after
    each successful transition.
    """

    id: str
    source: SourceDescriptor
    status: ImportStatus = ImportStatus.PROCESSING
    page_count: int | None = None
    questions_count: int = 0
    lessons_count: int = 0
    error_message: str | None = None
    extracted_data: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None

    def _require(self, expected: ImportStatus, action: str) -> None:
        if self.status is not expected:
            raise StateMismatchError(
                f"Cannot {action} import {self.id}: status is {self.status.value}, expected {expected.value}"
            )

    def record_page_count(self, page_count: int) -> None:
        self._require(ImportStatus.PROCESSING, "record page count for")
        self.page_count = page_count

    def fail(self, message: str) -> None:
        self._require(ImportStatus.PROCESSING, "fail")
        if not message:
            raise ValueError("a failed import needs an error message")
        self.status = ImportStatus.FAILED
        self.error_message = message

    def mark_ready(self, questions_found: int, lessons_found: int, payload: str) -> None:
        self._require(ImportStatus.PROCESSING, "mark ready")
        if questions_found + lessons_found < 1:
            raise ValueError("an import ready for review needs at least one item")
        self.status = ImportStatus.READY_FOR_REVIEW
        self.questions_count = questions_found
        self.lessons_count = lessons_found
        self.extracted_data = payload

    def complete(self, saved_questions: int, saved_lessons: int, *, at: datetime | None = None) -> None:
        self._require(ImportStatus.READY_FOR_REVIEW, "complete")
        self.status = ImportStatus.COMPLETED
        self.questions_count = saved_questions
        self.lessons_count = saved_lessons
        self.completed_at = at or _utcnow()
        self.extracted_data = None
