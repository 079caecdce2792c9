"""PDF text extraction hooks.

The pipeline only depends on the :class:`TextExtractor` protocol so tests can
swap in deterministic fakes. The default implementation reads the document
with PyMuPDF; another backend only needs to provide a compatible extractor
and call ``configure_text_extractor`` during application start-up.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import fitz

from exam_import.core.errors import ExtractionError
from exam_import.core.text_normalize import normalize_text


@dataclass(slots=True)
class PDFExtractionResult:
    """Container returned by :class:`TextExtractor` implementations."""

    text: str
    page_count: int
    pages: list[str] = field(default_factory=list)
    title: str | None = None
    author: str | None = None


class TextExtractor(Protocol):
    """Contract for PDF text extraction backends."""

    def extract(self, data: bytes) -> PDFExtractionResult:
        """Return normalised text for the provided PDF bytes."""


class PyMuPDFTextExtractor:
    """Extract page text with PyMuPDF."""

    def extract(self, data: bytes) -> PDFExtractionResult:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise ExtractionError(f"Failed to extract PDF text: {exc}") from exc

        try:
            pages = [normalize_text(page.get_text("text")) for page in doc]
            metadata = doc.metadata or {}
            return PDFExtractionResult(
                text=normalize_text("\n\n".join(pages)),
                page_count=doc.page_count,
                pages=pages,
                title=metadata.get("title") or None,
                author=metadata.get("author") or None,
            )
        except Exception as exc:
            raise ExtractionError(f"Failed to extract PDF text: {exc}") from exc
        finally:
            doc.close()


_extractor: TextExtractor = PyMuPDFTextExtractor()


def configure_text_extractor(extractor: TextExtractor) -> None:
    """Install the text extractor used by the import pipeline."""

    global _extractor
    _extractor = extractor


def get_text_extractor() -> TextExtractor:
    """Return the currently configured text extractor."""

    return _extractor
