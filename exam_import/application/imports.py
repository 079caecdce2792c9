"""Application service layer for import status, review and commit."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Generic, Iterable, TypeVar

from exam_import.core.errors import (
    NotFoundError,
    PayloadMissingError,
    PersistenceItemError,
    StateMismatchError,
    ValidationError,
)
from exam_import.core.schema import (
    CatalogLesson,
    CatalogQuestion,
    ExtractedLesson,
    ExtractedQuestion,
    ExtractionResult,
    ImportMetadata,
    ReviewContent,
    StatusResponse,
)
from exam_import.domain import ImportJob, ImportStatus, progress_of
from exam_import.infrastructure import ImportRepository, InMemoryImportRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class ItemOutcome(Generic[T]):
    """Result of attempting to persist one reviewed item."""

    kind: str
    item: T
    saved: bool
    error: str | None = None


@dataclass(slots=True)
class CommitResult:
    import_id: str
    outcomes: list[ItemOutcome] = field(default_factory=list)

    @property
    def saved_questions(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.kind == "question" and outcome.saved)

    @property
    def saved_lessons(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.kind == "lesson" and outcome.saved)

    @property
    def failed(self) -> list[ItemOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.saved]


def attempt_all(kind: str, items: Iterable[T], persist: Callable[[T], None]) -> list[ItemOutcome[T]]:
    """Try to persist every item, recording an outcome instead of stopping on failure."""

    outcomes: list[ItemOutcome[T]] = []
    for item in items:
        try:
            persist(item)
        except PersistenceItemError as exc:
            logger.warning("Error saving %s: %s", kind, exc)
            outcomes.append(ItemOutcome(kind=kind, item=item, saved=False, error=str(exc)))
        else:
            outcomes.append(ItemOutcome(kind=kind, item=item, saved=True))
    return outcomes


class ImportService:
    """Coordinates status queries, review and commit of import jobs."""

    def __init__(self, repository: ImportRepository) -> None:
        self._repository = repository

    @property
    def repository(self) -> ImportRepository:
        return self._repository

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def get_job(self, job_id: str) -> ImportJob:
        job = self._repository.get_job(job_id) if job_id else None
        if job is None:
            raise NotFoundError("Import not found")
        return job

    def get_status(self, job_id: str) -> StatusResponse:
        job = self.get_job(job_id)
        has_counts = job.status in (ImportStatus.READY_FOR_REVIEW, ImportStatus.COMPLETED)
        return StatusResponse(
            id=job.id,
            status=job.status.value,
            progress=progress_of(job.status),
            questions_found=job.questions_count if has_counts else None,
            lessons_found=job.lessons_count if has_counts else None,
            error_message=job.error_message,
        )

    def fetch_for_review(self, job_id: str) -> ReviewContent:
        job = self.get_job(job_id)
        if job.status is not ImportStatus.READY_FOR_REVIEW:
            raise StateMismatchError("Content not ready for review")
        if not job.extracted_data:
            raise PayloadMissingError("No extracted data found")
        payload = ExtractionResult.model_validate_json(job.extracted_data)
        return ReviewContent(
            import_id=job.id,
            questions=payload.questions,
            lessons=payload.lessons,
            metadata=payload.metadata,
        )

    def list_questions(self, job_id: str | None = None) -> list[CatalogQuestion]:
        return self._repository.list_questions(job_id)

    def list_lessons(self, job_id: str | None = None) -> list[CatalogLesson]:
        return self._repository.list_lessons(job_id)

    # ------------------------------------------------------------------
    # commit
    # ------------------------------------------------------------------
    def _persist_question(self, job: ImportJob, metadata: ImportMetadata, question: ExtractedQuestion) -> None:
        try:
            record = CatalogQuestion(
                id=uuid.uuid4().hex,
                import_id=job.id,
                content=question.content,
                solution=question.solution,
                answer=question.answer,
                hints=question.hints,
                topic=question.topic,
                difficulty=question.difficulty,
                confidence=question.confidence,
                question_num=question.question_num,
                school=metadata.school,
                year=metadata.year,
                exam_type=metadata.exam_type,
                paper_number=metadata.paper_number,
                created_at=datetime.now(timezone.utc),
            )
            self._repository.add_question(record)
        except Exception as exc:  # any store failure is scoped to this item
            raise PersistenceItemError(f"question {question.question_num or question.temp_id}: {exc}") from exc

    def _persist_lesson(self, job: ImportJob, lesson: ExtractedLesson) -> None:
        try:
            record = CatalogLesson(
                id=uuid.uuid4().hex,
                import_id=job.id,
                title=lesson.title,
                content=lesson.content,
                content_type=lesson.content_type,
                topic=lesson.topic,
                order=lesson.order,
                created_at=datetime.now(timezone.utc),
            )
            self._repository.add_lesson(record)
        except Exception as exc:  # any store failure is scoped to this item
            raise PersistenceItemError(f"lesson {lesson.title or lesson.temp_id}: {exc}") from exc

    def commit(
        self,
        job_id: str,
        questions: list[ExtractedQuestion],
        lessons: list[ExtractedLesson],
        metadata: ImportMetadata | None = None,
    ) -> CommitResult:
        """Persist reviewed items and finalise the import as completed.

        Every item is attempted; an item that cannot be saved is logged and
        counted as unsaved. The job always ends ``completed`` with the number
        of rows actually written, which may be zero.
        """

        if not job_id:
            raise ValidationError("Import ID is required")
        job = self.get_job(job_id)
        if job.status is not ImportStatus.READY_FOR_REVIEW:
            raise StateMismatchError(f"Import is {job.status.value}; only imports ready for review can be saved")
        if len(questions) > job.questions_count or len(lessons) > job.lessons_count:
            raise ValidationError(
                f"Cannot save {len(questions)} questions and {len(lessons)} lessons; "
                f"only {job.questions_count} questions and {job.lessons_count} lessons were extracted"
            )
        if metadata is None:
            metadata = ImportMetadata(
                filename=job.source.filename,
                school=job.source.school,
                year=job.source.year,
                exam_type=job.source.exam_type,
                paper_number=job.source.paper_number,
                total_pages=job.page_count,
            )

        result = CommitResult(import_id=job.id)
        result.outcomes.extend(
            attempt_all("question", questions, lambda item: self._persist_question(job, metadata, item))
        )
        result.outcomes.extend(attempt_all("lesson", lessons, lambda item: self._persist_lesson(job, item)))

        job.complete(result.saved_questions, result.saved_lessons)
        self._repository.save_job(job)
        logger.info(
            "Import %s completed: saved %d/%d questions, %d/%d lessons",
            job.id,
            result.saved_questions,
            len(questions),
            result.saved_lessons,
            len(lessons),
        )
        return result

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self._repository.reset()


_repository = InMemoryImportRepository()
_service = ImportService(_repository)


def get_import_service() -> ImportService:
    """Return the singleton import service for the process."""

    return _service


def reset_import_state() -> None:
    """Reset the in-memory store (used in tests)."""

    _service.reset()
