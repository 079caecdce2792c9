from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from exam_import.application import get_import_service
from exam_import.core.config import Settings, get_settings
from exam_import.core.errors import (
    AIExtractionError,
    EmptyResultError,
    ExtractionError,
    NotFoundError,
    ValidationError,
)
from exam_import.core.schema import ImportMetadata
from exam_import.core.validation import UploadForm, check_pdf_limits, validate_upload
from exam_import.domain import ImportJob, ImportStatus, SourceDescriptor
from exam_import.infrastructure import (
    ContentExtractor,
    ImportRepository,
    TextExtractor,
    get_content_extractor,
    get_text_extractor,
)

logger = logging.getLogger(__name__)

# user-facing reasons; the job record keeps the detailed message
TEXT_FAILURE_REASON = "Failed to extract text from PDF"
AI_FAILURE_REASON = "Failed to extract content with AI"
EMPTY_RESULT_REASON = "No questions found in the PDF"
EMPTY_RESULT_MESSAGE = "No questions found in PDF"


@dataclass
class JobHandle:
    import_id: str
    status: ImportStatus
    questions_found: int | None = None
    lessons_found: int | None = None
    error: str | None = None
    failure: type[Exception] | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is not ImportStatus.FAILED


def _describe(exc: Exception) -> str:
    return str(exc) or "Unknown error"


class ImportPipeline:
    """Drives an upload through text extraction and AI extraction to review.

    Stages run one after another for a job; each stage failure is persisted
    as a terminal ``failed`` job and reported through the returned handle
    rather than raised.
    """

    def __init__(
        self,
        repository: ImportRepository,
        text_extractor: TextExtractor,
        content_extractor: ContentExtractor,
        settings: Settings | None = None,
    ) -> None:
        self._repository = repository
        self._text_extractor = text_extractor
        self._content_extractor = content_extractor
        self._settings = settings or get_settings()

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def submit(self, form: UploadForm) -> JobHandle:
        """Validate, create and fully process an upload.

        Raises :class:`ValidationError` before any job exists when the upload
        is rejected by the gate.
        """

        handle = self.accept(form)
        return self.process(handle.import_id, form.data or b"")

    def accept(self, form: UploadForm) -> JobHandle:
        try:
            metadata = validate_upload(form, self._settings)
        except ValidationError as exc:
            logger.info("Rejected upload %r: %s", form.filename, exc)
            raise

        job = ImportJob(
            id=self._repository.next_job_id(),
            source=SourceDescriptor(
                filename=metadata.filename,
                school=metadata.school,
                year=metadata.year,
                exam_type=metadata.exam_type,
                paper_number=metadata.paper_number,
            ),
        )
        self._repository.create_job(job)
        logger.info("Created import %s for %s (%s)", job.id, metadata.filename, job.source.label)
        return JobHandle(import_id=job.id, status=job.status)

    def process(self, job_id: str, data: bytes) -> JobHandle:
        job = self._repository.get_job(job_id)
        if job is None:
            raise NotFoundError("Import not found")

        logger.info("Starting PDF text extraction for %s, buffer size: %d", job.id, len(data))
        try:
            pdf = self._text_extractor.extract(data)
        except Exception as exc:  # every stage failure ends the job
            logger.error(
                "PDF extraction error for %s: %s", job.id, exc, exc_info=not isinstance(exc, ExtractionError)
            )
            return self._fail(job, f"PDF extraction failed: {_describe(exc)}", TEXT_FAILURE_REASON, ExtractionError)

        job.record_page_count(pdf.page_count)
        self._repository.save_job(job)
        logger.info("PDF extraction successful for %s, pages: %d", job.id, pdf.page_count)

        if self._settings.enforce_page_limit:
            try:
                check_pdf_limits(data, self._settings, pdf.page_count)
            except ValidationError as exc:
                logger.info("Import %s exceeds limits: %s", job.id, exc)
                return self._fail(job, f"PDF validation failed: {exc}", str(exc), ValidationError)

        metadata = ImportMetadata(
            filename=job.source.filename,
            school=job.source.school,
            year=job.source.year,
            exam_type=job.source.exam_type,
            paper_number=job.source.paper_number,
            total_pages=pdf.page_count,
        )
        logger.info("Starting AI content extraction for %s", job.id)
        try:
            result = self._content_extractor.extract(pdf.text, metadata)
        except Exception as exc:  # every stage failure ends the job
            logger.error(
                "AI extraction error for %s: %s", job.id, exc, exc_info=not isinstance(exc, AIExtractionError)
            )
            return self._fail(job, f"AI extraction failed: {_describe(exc)}", AI_FAILURE_REASON, AIExtractionError)

        if result.is_empty:
            return self._fail(job, EMPTY_RESULT_MESSAGE, EMPTY_RESULT_REASON, EmptyResultError)

        job.mark_ready(
            len(result.questions),
            len(result.lessons),
            result.model_dump_json(by_alias=True),
        )
        self._repository.save_job(job)
        logger.info(
            "Import %s ready for review: %d questions, %d lessons",
            job.id,
            job.questions_count,
            job.lessons_count,
        )
        return JobHandle(
            import_id=job.id,
            status=job.status,
            questions_found=job.questions_count,
            lessons_found=job.lessons_count,
        )

    async def enqueue(self, form: UploadForm) -> JobHandle:
        """Run :meth:`submit` off the event loop."""

        return await asyncio.to_thread(self.submit, form)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _fail(self, job: ImportJob, message: str, reason: str, failure: type[Exception]) -> JobHandle:
        job.fail(message)
        self._repository.save_job(job)
        return JobHandle(import_id=job.id, status=job.status, error=reason, failure=failure)


def get_import_pipeline() -> ImportPipeline:
    """Build a pipeline over the process repository and configured adapters."""

    return ImportPipeline(
        get_import_service().repository,
        get_text_extractor(),
        get_content_extractor(),
        get_settings(),
    )
