from __future__ import annotations

from dataclasses import dataclass

from exam_import.core.config import Settings
from exam_import.core.errors import ValidationError
from exam_import.core.schema import EXAM_TYPES, ImportMetadata

PDF_SIGNATURE = b"%PDF-"
_MIB = 1024 * 1024


@dataclass(slots=True)
class UploadForm:
    """Raw upload fields as received, before any coercion."""

    filename: str | None
    data: bytes | None
    school: str | None = None
    year: str | int | None = None
    exam_type: str | None = None
    paper_number: str | int | None = None


def is_valid_pdf(data: bytes) -> bool:
    return data[:5] == PDF_SIGNATURE


def check_pdf_limits(data: bytes, settings: Settings, page_count: int | None = None) -> None:
    """Enforce the size ceiling and, once known, the page ceiling."""

    size_mb = len(data) / _MIB
    if size_mb > settings.max_file_size_mb:
        raise ValidationError(
            f"PDF is too large ({size_mb:.1f}MB). Maximum is {settings.max_file_size_mb:g}MB."
        )
    if page_count and page_count > settings.max_pages:
        raise ValidationError(f"PDF has too many pages ({page_count}). Maximum is {settings.max_pages}.")


def _parse_int(value: str | int | None, message: str) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ValidationError(message) from exc


def validate_upload(form: UploadForm, settings: Settings) -> ImportMetadata:
    """Run the upload gate and return the metadata for a new import job.

    Checks run in a fixed order and the first failure wins: file presence and
    extension, required metadata, PDF signature, then size limits.
    """

    if not form.data or not form.filename:
        raise ValidationError("No file provided")
    if not form.filename.lower().endswith(".pdf"):
        raise ValidationError("File must be a PDF")

    school = (form.school or "").strip()
    exam_type = (form.exam_type or "").strip()
    if not school or form.year in (None, "") or not exam_type:
        raise ValidationError("School, year, and exam type are required")
    year = _parse_int(form.year, "Year must be a number")
    if year is None:
        raise ValidationError("School, year, and exam type are required")
    if exam_type not in EXAM_TYPES:
        raise ValidationError(f"Unknown exam type: {exam_type}")
    paper_number = _parse_int(form.paper_number, "Paper number must be a number")

    if not is_valid_pdf(form.data):
        raise ValidationError("Invalid PDF file")
    check_pdf_limits(form.data, settings)

    return ImportMetadata(
        filename=form.filename,
        school=school,
        year=year,
        exam_type=exam_type,
        paper_number=paper_number,
    )
