from __future__ import annotations

from datetime import datetime
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Topic = Literal[
    "vectors",
    "probability",
    "statistics",
    "combinatorics",
    "calculus",
    "complex-numbers",
    "functions",
]
ExamType = Literal["midyear", "promo", "prelim", "topical"]
ContentType = Literal["theory", "example", "worked_solution", "summary"]

TOPICS: tuple[str, ...] = get_args(Topic)
EXAM_TYPES: tuple[str, ...] = get_args(ExamType)
CONTENT_TYPES: tuple[str, ...] = get_args(ContentType)


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys on the HTTP surface."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ImportMetadata(CamelModel):
    filename: str
    school: str
    year: int
    exam_type: ExamType
    paper_number: int | None = None
    total_pages: int | None = None


class ExtractedQuestion(CamelModel):
    temp_id: str
    content: str
    solution: str | None = None
    answer: str | None = None
    hints: list[str] | None = None
    topic: Topic = "calculus"
    difficulty: int = Field(default=2, ge=1, le=5)
    confidence: float = Field(default=0.8, ge=0, le=1)
    question_num: str | None = None
    marks: int | None = None
    diagram_description: str | None = None
    needs_review: bool = False


class ExtractedLesson(CamelModel):
    temp_id: str
    title: str
    content: str
    content_type: ContentType = "theory"
    topic: Topic = "calculus"
    order: int = 0
    confidence: float = Field(default=0.8, ge=0, le=1)


class ExtractionResult(CamelModel):
    questions: list[ExtractedQuestion] = Field(default_factory=list)
    lessons: list[ExtractedLesson] = Field(default_factory=list)
    metadata: ImportMetadata

    @property
    def is_empty(self) -> bool:
        return not self.questions and not self.lessons


class CatalogQuestion(BaseModel):
    """A reviewed question committed to the permanent catalog."""

    id: str
    import_id: str
    content: str = Field(min_length=1)
    solution: str | None = None
    answer: str | None = None
    hints: list[str] | None = None
    topic: Topic
    difficulty: int = Field(ge=1, le=5)
    confidence: float = Field(ge=0, le=1)
    question_num: str | None = None
    school: str
    year: int
    exam_type: ExamType
    paper_number: int | None = None
    created_at: datetime


class CatalogLesson(BaseModel):
    """A reviewed lesson committed to the permanent catalog."""

    id: str
    import_id: str
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    content_type: ContentType
    topic: Topic
    order: int
    created_at: datetime


# ----------------------------------------------------------------------
# HTTP payloads
# ----------------------------------------------------------------------
class UploadResponse(CamelModel):
    success: bool
    import_id: str | None = None
    status: str | None = None
    error: str | None = None
    questions_found: int | None = None
    lessons_found: int | None = None


class StatusResponse(CamelModel):
    id: str
    status: str
    progress: int | None = None
    questions_found: int | None = None
    lessons_found: int | None = None
    error_message: str | None = None


class ReviewContent(CamelModel):
    import_id: str
    questions: list[ExtractedQuestion]
    lessons: list[ExtractedLesson]
    metadata: ImportMetadata


class SaveRequest(CamelModel):
    import_id: str | None = None
    questions: list[ExtractedQuestion] = Field(default_factory=list)
    lessons: list[ExtractedLesson] = Field(default_factory=list)
    metadata: ImportMetadata | None = None


class SaveResponse(CamelModel):
    success: bool
    saved_questions: int = 0
    saved_lessons: int = 0
    error: str | None = None
