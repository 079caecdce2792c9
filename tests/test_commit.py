from __future__ import annotations

import pytest
from conftest import FakeContentExtractor, FakeTextExtractor

from exam_import.application import ImportService, attempt_all
from exam_import.core.config import Settings
from exam_import.core.errors import (
    NotFoundError,
    PayloadMissingError,
    PersistenceItemError,
    StateMismatchError,
    ValidationError,
)
from exam_import.core.schema import CatalogQuestion
from exam_import.core.validation import UploadForm
from exam_import.domain import ImportStatus
from exam_import.infrastructure import InMemoryImportRepository
from exam_import.workers.pipeline import ImportPipeline

PDF = b"%PDF-1.5\n" + b"1" * 512


class FlakyRepository(InMemoryImportRepository):
    """Fails to store the question at the given 1-based positions."""

    def __init__(self, failing: set[int]) -> None:
        super().__init__()
        self._failing = failing
        self._attempts = 0

    def add_question(self, record: CatalogQuestion) -> None:
        self._attempts += 1
        if self._attempts in self._failing:
            raise RuntimeError("database is locked")
        super().add_question(record)


def _ready_job(repository, questions: int = 5, lessons: int = 2) -> str:
    pipeline = ImportPipeline(
        repository,
        FakeTextExtractor(page_count=6),
        FakeContentExtractor(questions=questions, lessons=lessons),
        Settings(),
    )
    handle = pipeline.submit(
        UploadForm(
            filename="nyjc-2024-midyear.pdf",
            data=PDF,
            school="Nanyang Junior College",
            year="2024",
            exam_type="midyear",
            paper_number="1",
        )
    )
    assert handle.status is ImportStatus.READY_FOR_REVIEW
    return handle.import_id


def test_commit_continues_past_a_failing_item():
    repository = FlakyRepository(failing={3})
    service = ImportService(repository)
    import_id = _ready_job(repository, questions=5, lessons=0)
    review = service.fetch_for_review(import_id)

    result = service.commit(import_id, review.questions, review.lessons, review.metadata)

    assert result.saved_questions == 4
    assert result.saved_lessons == 0
    assert len(result.failed) == 1
    assert "database is locked" in result.failed[0].error
    assert result.failed[0].item.question_num == "Q3"

    job = repository.get_job(import_id)
    assert job.status is ImportStatus.COMPLETED
    assert job.questions_count == 4
    assert job.extracted_data is None
    assert job.completed_at is not None
    assert [row.question_num for row in service.list_questions(import_id)] == ["Q1", "Q2", "Q4", "Q5"]


def test_commit_saves_reviewed_items_with_metadata():
    repository = InMemoryImportRepository()
    service = ImportService(repository)
    import_id = _ready_job(repository)
    review = service.fetch_for_review(import_id)

    edited = review.questions[0].model_copy(update={"content": "Edited by reviewer", "difficulty": 4})
    result = service.commit(import_id, [edited, review.questions[1]], review.lessons, review.metadata)

    assert (result.saved_questions, result.saved_lessons) == (2, 2)
    rows = service.list_questions(import_id)
    assert rows[0].content == "Edited by reviewer"
    assert rows[0].difficulty == 4
    assert {row.school for row in rows} == {"Nanyang Junior College"}
    assert {row.exam_type for row in rows} == {"midyear"}
    assert {row.paper_number for row in rows} == {1}
    lessons = service.list_lessons(import_id)
    assert [lesson.order for lesson in lessons] == [1, 2]

    status = service.get_status(import_id)
    assert status.status == "completed"
    assert status.progress is None
    assert (status.questions_found, status.lessons_found) == (2, 2)


def test_commit_without_metadata_uses_job_source():
    repository = InMemoryImportRepository()
    service = ImportService(repository)
    import_id = _ready_job(repository, questions=1, lessons=0)
    review = service.fetch_for_review(import_id)

    service.commit(import_id, review.questions, [])

    row = service.list_questions(import_id)[0]
    assert row.school == "Nanyang Junior College"
    assert row.year == 2024


def test_commit_of_nothing_completes_with_zero():
    repository = InMemoryImportRepository()
    service = ImportService(repository)
    import_id = _ready_job(repository)

    result = service.commit(import_id, [], [])

    assert (result.saved_questions, result.saved_lessons) == (0, 0)
    job = repository.get_job(import_id)
    assert job.status is ImportStatus.COMPLETED
    assert (job.questions_count, job.lessons_count) == (0, 0)


def test_commit_is_rejected_once_completed():
    repository = InMemoryImportRepository()
    service = ImportService(repository)
    import_id = _ready_job(repository)
    review = service.fetch_for_review(import_id)
    service.commit(import_id, review.questions, review.lessons)

    with pytest.raises(StateMismatchError):
        service.commit(import_id, review.questions, review.lessons)
    assert len(service.list_questions(import_id)) == 5


def test_commit_cannot_save_more_than_was_found():
    repository = InMemoryImportRepository()
    service = ImportService(repository)
    import_id = _ready_job(repository, questions=2, lessons=0)
    review = service.fetch_for_review(import_id)

    with pytest.raises(ValidationError, match="only 2 questions"):
        service.commit(import_id, review.questions * 2, [])
    assert repository.get_job(import_id).status is ImportStatus.READY_FOR_REVIEW


def test_commit_requires_known_import():
    service = ImportService(InMemoryImportRepository())

    with pytest.raises(ValidationError, match="Import ID is required"):
        service.commit("", [], [])
    with pytest.raises(NotFoundError, match="Import not found"):
        service.commit("imp-unknown", [], [])


def test_failed_job_cannot_be_reviewed_or_committed():
    repository = InMemoryImportRepository()
    service = ImportService(repository)
    pipeline = ImportPipeline(
        repository,
        FakeTextExtractor(),
        FakeContentExtractor(questions=0, lessons=0),
        Settings(),
    )
    handle = pipeline.submit(
        UploadForm(filename="a.pdf", data=PDF, school="ACJC", year=2022, exam_type="topical")
    )

    with pytest.raises(StateMismatchError, match="Content not ready for review"):
        service.fetch_for_review(handle.import_id)
    with pytest.raises(StateMismatchError):
        service.commit(handle.import_id, [], [])

    status = service.get_status(handle.import_id)
    assert status.status == "failed"
    assert status.error_message == "No questions found in PDF"
    assert status.questions_found is None


def test_missing_payload_is_reported():
    repository = InMemoryImportRepository()
    service = ImportService(repository)
    import_id = _ready_job(repository)
    job = repository.get_job(import_id)
    job.extracted_data = None
    repository.save_job(job)

    with pytest.raises(PayloadMissingError, match="No extracted data found"):
        service.fetch_for_review(import_id)


def test_attempt_all_only_absorbs_item_failures():
    def persist(value: int) -> None:
        if value == 2:
            raise PersistenceItemError("two is unlucky")

    outcomes = attempt_all("question", [1, 2, 3], persist)
    assert [outcome.saved for outcome in outcomes] == [True, False, True]
    assert outcomes[1].error == "two is unlucky"

    def broken(value: int) -> None:
        raise TypeError("programming error")

    with pytest.raises(TypeError):
        attempt_all("lesson", [1], broken)
