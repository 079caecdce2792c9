from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from exam_import.application import get_import_service
from exam_import.core.config import get_settings
from exam_import.core.errors import (
    EmptyResultError,
    NotFoundError,
    StateMismatchError,
    ValidationError,
)
from exam_import.core.schema import SaveRequest, SaveResponse, UploadResponse
from exam_import.core.validation import UploadForm
from exam_import.workers.pipeline import ImportPipeline, JobHandle, get_import_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/import", tags=["import"])


def _upload_failure(status_code: int, error: str, import_id: str | None = None) -> JSONResponse:
    body = UploadResponse(success=False, import_id=import_id, error=error)
    return JSONResponse(status_code=status_code, content=body.to_json_dict())


def _handle_response(handle: JobHandle) -> JSONResponse:
    if handle.succeeded:
        body = UploadResponse(
            success=True,
            import_id=handle.import_id,
            status=handle.status.value,
            questions_found=handle.questions_found,
            lessons_found=handle.lessons_found,
        )
        return JSONResponse(status_code=200, content=body.to_json_dict())
    # empty results and page limits are problems with the file, not the service
    status_code = 400 if handle.failure in (EmptyResultError, ValidationError) else 500
    return _upload_failure(status_code, handle.error or "Import failed", handle.import_id)


def _process_in_background(pipeline: ImportPipeline, import_id: str, data: bytes) -> None:
    handle = pipeline.process(import_id, data)
    logger.info("Background import %s finished as %s", import_id, handle.status.value)


@router.post("/upload")
async def upload_paper(
    background_tasks: BackgroundTasks,
    file: UploadFile | None = File(default=None),
    school: str | None = Form(default=None),
    year: str | None = Form(default=None),
    exam_type: str | None = Form(default=None, alias="examType"),
    paper_number: str | None = Form(default=None, alias="paperNumber"),
) -> JSONResponse:
    """Upload an exam paper PDF and extract its questions for review."""

    try:
        data = await file.read() if file is not None else None
        form = UploadForm(
            filename=file.filename if file is not None else None,
            data=data,
            school=school,
            year=year,
            exam_type=exam_type,
            paper_number=paper_number,
        )
    finally:
        if file is not None:
            await file.close()

    pipeline = get_import_pipeline()
    try:
        if get_settings().background_processing:
            handle = pipeline.accept(form)
            background_tasks.add_task(_process_in_background, pipeline, handle.import_id, form.data or b"")
            body = UploadResponse(success=True, import_id=handle.import_id, status=handle.status.value)
            return JSONResponse(status_code=201, content=body.to_json_dict())
        handle = await pipeline.enqueue(form)
    except ValidationError as exc:
        return _upload_failure(400, str(exc))
    return _handle_response(handle)


@router.get("/status/{import_id}")
async def get_import_status(import_id: str) -> dict:
    """Report an import's status and progress.

    ``questionsFound`` and ``lessonsFound`` are only included once the job is
    ``ready_for_review`` or ``completed``; processing and failed jobs omit them.
    """

    service = get_import_service()
    try:
        status = service.get_status(import_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return status.to_json_dict()


@router.post("/status/{import_id}")
async def get_import_content(import_id: str, payload: dict) -> dict:
    """Return the extracted payload of an import awaiting review."""

    if payload.get("action") != "get_content":
        raise HTTPException(status_code=400, detail="Invalid action")
    service = get_import_service()
    try:
        content = service.fetch_for_review(import_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except StateMismatchError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return content.model_dump(mode="json", by_alias=True)


@router.post("/save")
async def save_import(payload: SaveRequest) -> JSONResponse:
    """Commit reviewed questions and lessons to the catalog."""

    if not payload.import_id:
        body = SaveResponse(success=False, error="Import ID is required")
        return JSONResponse(status_code=400, content=body.to_json_dict())

    service = get_import_service()
    try:
        result = service.commit(payload.import_id, payload.questions, payload.lessons, payload.metadata)
    except NotFoundError as exc:
        body = SaveResponse(success=False, error=str(exc))
        return JSONResponse(status_code=404, content=body.to_json_dict())
    except (StateMismatchError, ValidationError) as exc:
        body = SaveResponse(success=False, error=str(exc))
        return JSONResponse(status_code=400, content=body.to_json_dict())

    body = SaveResponse(
        success=True,
        saved_questions=result.saved_questions,
        saved_lessons=result.saved_lessons,
    )
    return JSONResponse(status_code=200, content=body.to_json_dict())


@router.get("/{import_id}/questions")
async def list_import_questions(import_id: str) -> dict:
    service = get_import_service()
    try:
        service.get_job(import_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    rows = service.list_questions(import_id)
    return {"items": [row.model_dump(mode="json") for row in rows]}


@router.get("/{import_id}/lessons")
async def list_import_lessons(import_id: str) -> dict:
    service = get_import_service()
    try:
        service.get_job(import_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    rows = service.list_lessons(import_id)
    return {"items": [row.model_dump(mode="json") for row in rows]}
