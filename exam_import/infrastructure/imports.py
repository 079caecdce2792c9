"""Infrastructure layer for import job and catalog persistence."""
from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Protocol

from exam_import.core.schema import CatalogLesson, CatalogQuestion
from exam_import.domain import ImportJob


class ImportRepository(Protocol):
    """Persistence contract for import jobs and committed catalog rows."""

    def next_job_id(self) -> str: ...

    def create_job(self, job: ImportJob) -> None: ...

    def get_job(self, job_id: str) -> ImportJob | None: ...

    def save_job(self, job: ImportJob) -> None: ...

    def list_jobs(self) -> list[ImportJob]: ...

    def add_question(self, record: CatalogQuestion) -> None: ...

    def list_questions(self, import_id: str | None = None) -> list[CatalogQuestion]: ...

    def add_lesson(self, record: CatalogLesson) -> None: ...

    def list_lessons(self, import_id: str | None = None) -> list[CatalogLesson]: ...

    def reset(self) -> None: ...


class InMemoryImportRepository:
    """Simple in-memory repository for fast iteration and tests.

    Jobs are stored and handed out as copies so a caller only changes the
    stored record through :meth:`save_job`.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, ImportJob] = {}
        self._questions: list[CatalogQuestion] = []
        self._lessons: list[CatalogLesson] = []

    # ------------------------------------------------------------------
    # jobs
    # ------------------------------------------------------------------
    def next_job_id(self) -> str:
        return f"imp-{uuid.uuid4().hex}"

    def create_job(self, job: ImportJob) -> None:
        if job.id in self._jobs:
            raise KeyError(f"import {job.id} already exists")
        self._jobs[job.id] = replace(job)

    def get_job(self, job_id: str) -> ImportJob | None:
        job = self._jobs.get(job_id)
        return replace(job) if job is not None else None

    def save_job(self, job: ImportJob) -> None:
        if job.id not in self._jobs:
            raise KeyError(f"import {job.id} does not exist")
        self._jobs[job.id] = replace(job)

    def list_jobs(self) -> list[ImportJob]:
        jobs = [replace(job) for job in self._jobs.values()]
        jobs.sort(key=lambda item: item.created_at, reverse=True)
        return jobs

    # ------------------------------------------------------------------
    # catalog
    # ------------------------------------------------------------------
    def add_question(self, record: CatalogQuestion) -> None:
        self._questions.append(record)

    def list_questions(self, import_id: str | None = None) -> list[CatalogQuestion]:
        if import_id is None:
            return list(self._questions)
        return [row for row in self._questions if row.import_id == import_id]

    def add_lesson(self, record: CatalogLesson) -> None:
        self._lessons.append(record)

    def list_lessons(self, import_id: str | None = None) -> list[CatalogLesson]:
        rows = self._lessons if import_id is None else [row for row in self._lessons if row.import_id == import_id]
        return sorted(rows, key=lambda row: row.order)

    def reset(self) -> None:
        self._jobs.clear()
        self._questions.clear()
        self._lessons.clear()
