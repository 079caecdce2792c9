from __future__ import annotations

import sys
from pathlib import Path

import fitz
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from exam_import.application import reset_import_state
from exam_import.core.config import get_settings
from exam_import.core.schema import ExtractedLesson, ExtractedQuestion, ExtractionResult, ImportMetadata
from exam_import.infrastructure.content_ai import configure_content_extractor
from exam_import.infrastructure.pdf_text import (
    PDFExtractionResult,
    PyMuPDFTextExtractor,
    configure_text_extractor,
)

PAPER_TEXT = "1 Solve the inequality x^2 - 4 > 0. [3]\n\n2 Find the roots of z^3 = 1. [4]"


def make_pdf(pages: list[str]) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


def build_result(metadata: ImportMetadata, questions: int, lessons: int) -> ExtractionResult:
    return ExtractionResult(
        questions=[
            ExtractedQuestion(
                temp_id=f"q-{index}",
                content=f"Question {index} content [4]",
                question_num=f"Q{index}",
                topic="calculus",
                difficulty=3,
                confidence=0.9,
                marks=4,
            )
            for index in range(1, questions + 1)
        ],
        lessons=[
            ExtractedLesson(
                temp_id=f"l-{index}",
                title=f"Lesson {index}",
                content=f"Worked method {index}",
                content_type="worked_solution",
                topic="functions",
                order=index,
            )
            for index in range(1, lessons + 1)
        ],
        metadata=metadata,
    )


class FakeTextExtractor:
    def __init__(self, text: str = PAPER_TEXT, page_count: int = 3, error: Exception | None = None) -> None:
        self.text = text
        self.page_count = page_count
        self.error = error
        self.calls = 0

    def extract(self, data: bytes) -> PDFExtractionResult:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return PDFExtractionResult(text=self.text, page_count=self.page_count, pages=[self.text])


class FakeContentExtractor:
    def __init__(self, questions: int = 5, lessons: int = 2, error: Exception | None = None) -> None:
        self.questions = questions
        self.lessons = lessons
        self.error = error
        self.calls: list[tuple[str, ImportMetadata]] = []

    def extract(self, text: str, metadata: ImportMetadata) -> ExtractionResult:
        self.calls.append((text, metadata))
        if self.error is not None:
            raise self.error
        return build_result(metadata, self.questions, self.lessons)


@pytest.fixture(autouse=True)
def reset_state():
    reset_import_state()
    get_settings.cache_clear()
    yield
    reset_import_state()
    get_settings.cache_clear()
    configure_text_extractor(PyMuPDFTextExtractor())
    configure_content_extractor(None)


@pytest.fixture()
def pdf_bytes() -> bytes:
    return b"%PDF-1.4\n" + b"0" * 2048


@pytest.fixture()
def text_extractor() -> FakeTextExtractor:
    extractor = FakeTextExtractor()
    configure_text_extractor(extractor)
    return extractor


@pytest.fixture()
def content_extractor() -> FakeContentExtractor:
    extractor = FakeContentExtractor()
    configure_content_extractor(extractor)
    return extractor
