"""AI-backed extraction of questions and lessons from exam paper text."""
from __future__ import annotations

import json
import logging
import math
import re
import uuid
from dataclasses import dataclass
from typing import Any, Protocol

from exam_import.core.config import get_settings
from exam_import.core.errors import AIExtractionError
from exam_import.core.schema import (
    CONTENT_TYPES,
    TOPICS,
    ExtractedLesson,
    ExtractedQuestion,
    ExtractionResult,
    ImportMetadata,
)

from .ollama import OllamaClient, OllamaError

logger = logging.getLogger(__name__)


class ContentExtractor(Protocol):
    """Contract for turning normalised paper text into reviewable items."""

    def extract(self, text: str, metadata: ImportMetadata) -> ExtractionResult:
        """Return the questions and lessons found in ``text``."""


EXTRACTION_SYSTEM_PROMPT = """You extract math questions from Singapore H2 Mathematics exam papers into JSON.

CRITICAL RULES:
1. Keep multi-part questions TOGETHER as ONE question (Q1 with parts (i), (ii), (iii) is ONE question)
2. Include ALL text exactly as written - equations, conditions, "Hence" parts, mark allocations
3. Note if a question has a diagram by setting hasDiagram: true
4. Wrap ALL math expressions in dollar signs: $\\frac{a}{b}$, $\\sqrt{x}$, $\\int_0^1 f(x) dx$
5. Use $...$ for inline math and $$...$$ for displayed equations
6. If the text teaches a method (notes, worked examples, summaries) add it to "lessons"

Topics (use exact slug):
- vectors, probability, statistics, combinatorics, calculus, complex-numbers, functions

Lesson contentType is one of: theory, example, worked_solution, summary

Output ONLY this JSON structure:
{
  "questions": [
    {
      "questionNum": "1",
      "content": "Solve the equation $x^2 + 2x + 1 = 0$.\\n(i) Find the roots [2]\\n(ii) Hence find $\\sum_{n=1}^{\\infty} x^n$ [3]",
      "marks": 5,
      "hasDiagram": false,
      "topic": "calculus",
      "difficulty": 2,
      "confidence": 0.9
    }
  ],
  "lessons": [
    {
      "title": "Solving quadratic equations",
      "content": "A quadratic $ax^2 + bx + c = 0$ ...",
      "contentType": "theory",
      "topic": "functions",
      "confidence": 0.8
    }
  ]
}"""

TOPIC_KEYWORDS: dict[str, str] = {
    "integration": "calculus",
    "differentiation": "calculus",
    "derivatives": "calculus",
    "integrals": "calculus",
    "series": "calculus",
    "sequences": "calculus",
    "maclaurin": "calculus",
    "complex": "complex-numbers",
    "argand": "complex-numbers",
    "vector": "vectors",
    "planes": "vectors",
    "lines": "vectors",
    "permutations": "combinatorics",
    "combinations": "combinatorics",
    "distribution": "statistics",
    "hypothesis": "statistics",
    "regression": "statistics",
    "graphs": "functions",
    "transformations": "functions",
    "inequality": "functions",
    "inequalities": "functions",
}

QUESTION_NUMBER_KEYS = ("questionNum", "questionNumber", "question_number", "number", "num", "qNum", "q")
DIAGRAM_PATTERN = re.compile(r"diagram|figure|graph|sketch", re.IGNORECASE)
DIAGRAM_NOTE = "This question includes a diagram"


@dataclass(slots=True)
class ParsedQuestion:
    question_num: str
    content: str
    topic: str
    difficulty: float
    confidence: float
    marks: int | None = None
    has_diagram: bool = False


@dataclass(slots=True)
class ParsedLesson:
    title: str
    content: str
    content_type: str
    topic: str
    order: int | None
    confidence: float


# ----------------------------------------------------------------------
# pure helpers
# ----------------------------------------------------------------------
def split_into_chunks(text: str, max_chars: int = 10000) -> list[str]:
    """Split text on paragraph boundaries into chunks of at most ``max_chars``.

    A single paragraph longer than the limit is kept whole.
    """

    if len(text) <= max_chars:
        return [text]

    chunks: list[str] = []
    current = ""
    for paragraph in re.split(r"\n\n+", text):
        if len(current) + len(paragraph) > max_chars:
            if current:
                chunks.append(current.strip())
            current = paragraph
        else:
            current = f"{current}\n\n{paragraph}" if current else paragraph
    if current:
        chunks.append(current.strip())
    return chunks


def validate_topic(topic: Any) -> str:
    normalised = re.sub(r"\s+", "-", str(topic or "").strip().lower())
    if normalised in TOPICS:
        return normalised
    for keyword, value in TOPIC_KEYWORDS.items():
        if keyword in normalised:
            return value
    return "calculus"


def normalize_question_num(value: Any) -> str:
    raw = str(value or "").strip()
    if not raw:
        return "Q?"
    match = re.search(r"\d+", raw)
    return f"Q{match.group(0)}" if match else f"Q{raw}"


def _question_sort_key(question: ExtractedQuestion) -> int:
    digits = re.sub(r"\D", "", question.question_num or "")
    return int(digits) if digits else 0


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    # NaN and Infinity are valid in model JSON but never a usable value
    return number if math.isfinite(number) else None


def _extract_json_object(response: str) -> str:
    candidate = response
    fenced = re.search(r"```(?:json)?\s*([\s\S]*?)```", response)
    if fenced:
        candidate = fenced.group(1)
    start = candidate.find("{")
    end = candidate.rfind("}")
    if start != -1 and end != -1:
        candidate = candidate[start : end + 1]
    return candidate.strip()


def normalize_question(raw: Any) -> ParsedQuestion | None:
    """Coerce one model-produced question into a :class:`ParsedQuestion`.

    Models disagree on field names, so several spellings are accepted for the
    question number and the body may arrive as ``content``, ``parts`` or
    ``text``. Items missing a number or a body are dropped.
    """

    if not isinstance(raw, dict):
        return None

    question_num = next((raw[key] for key in QUESTION_NUMBER_KEYS if raw.get(key)), "")
    if not question_num:
        logger.debug("Skipping question without a number: keys=%s", sorted(raw))
        return None

    content = ""
    if isinstance(raw.get("content"), str) and raw["content"]:
        content = raw["content"]
    elif isinstance(raw.get("parts"), list):
        lines = []
        for part in raw["parts"]:
            if not isinstance(part, dict):
                continue
            part_num = part.get("part_number") or part.get("partNum") or ""
            part_text = part.get("text") or part.get("content") or ""
            lines.append(f"{part_num} {part_text}" if part_num else str(part_text))
        content = "\n".join(lines)
    elif isinstance(raw.get("text"), str):
        content = raw["text"]
    if not content:
        logger.debug("Skipping question %s without content", question_num)
        return None

    topic = raw.get("topic") or raw.get("category") or "calculus"
    marks = _number(raw.get("marks"))
    if marks is None:
        marks = _number(raw.get("total_marks"))
    diagram = raw.get("diagram")
    has_diagram = (
        raw.get("hasDiagram") is True
        or raw.get("has_diagram") is True
        or diagram is True
        or (isinstance(diagram, str) and bool(diagram))
        or bool(DIAGRAM_PATTERN.search(content))
    )
    difficulty = _number(raw.get("difficulty"))
    confidence = _number(raw.get("confidence"))

    return ParsedQuestion(
        question_num=str(question_num),
        content=content,
        topic=topic if isinstance(topic, str) else "calculus",
        difficulty=difficulty if difficulty is not None else 2,
        confidence=confidence if confidence is not None else 0.8,
        marks=int(marks) if marks is not None else None,
        has_diagram=has_diagram,
    )


def normalize_lesson(raw: Any) -> ParsedLesson | None:
    if not isinstance(raw, dict):
        return None
    title = raw.get("title") or raw.get("heading")
    content = raw.get("content") or raw.get("text")
    if not isinstance(title, str) or not isinstance(content, str) or not title or not content:
        return None
    content_type = str(raw.get("contentType") or raw.get("content_type") or "theory").strip().lower()
    order = _number(raw.get("order"))
    confidence = _number(raw.get("confidence"))
    return ParsedLesson(
        title=title.strip(),
        content=content,
        content_type=content_type if content_type in CONTENT_TYPES else "theory",
        topic=validate_topic(raw.get("topic")),
        order=int(order) if order is not None else None,
        confidence=confidence if confidence is not None else 0.8,
    )


def parse_ai_response(response: str) -> tuple[list[ParsedQuestion], list[ParsedLesson]]:
    """Parse a model reply; an unparseable reply yields no items."""

    json_text = _extract_json_object(response)
    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError:
        logger.warning("Failed to parse AI response: %s", json_text[:500])
        return [], []
    if not isinstance(parsed, dict):
        return [], []

    raw_questions = parsed.get("questions") if isinstance(parsed.get("questions"), list) else []
    raw_lessons = parsed.get("lessons") if isinstance(parsed.get("lessons"), list) else []
    questions = [item for item in map(normalize_question, raw_questions) if item is not None]
    lessons = [item for item in map(normalize_lesson, raw_lessons) if item is not None]
    logger.debug(
        "Parsed AI response: %d/%d questions, %d/%d lessons",
        len(questions),
        len(raw_questions),
        len(lessons),
        len(raw_lessons),
    )
    return questions, lessons


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


# ----------------------------------------------------------------------
# extractor
# ----------------------------------------------------------------------
class OllamaContentExtractor:
    """Extract questions and lessons by prompting a local Ollama model."""

    def __init__(self, client: OllamaClient, *, chunk_max_chars: int = 10000) -> None:
        self._client = client
        self._chunk_max_chars = chunk_max_chars

    def _chunk_messages(self, chunk: str, index: int, total: int) -> list[dict[str, str]]:
        context = f"\n\n[Section {index + 1} of {total}]" if total > 1 else ""
        return [
            {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": (
                    "Extract all questions from this H2 Math paper. "
                    f"Keep multi-part questions together as single questions.{context}\n\n---\n\n{chunk}"
                ),
            },
        ]

    def extract(self, text: str, metadata: ImportMetadata) -> ExtractionResult:
        if not self._client.is_available():
            raise AIExtractionError("Ollama is not running. Please start Ollama and try again.")

        chunks = split_into_chunks(text, self._chunk_max_chars)
        questions_by_num: dict[str, ExtractedQuestion] = {}
        lessons: list[ExtractedLesson] = []
        failures: list[str] = []

        for index, chunk in enumerate(chunks):
            try:
                response = self._client.chat(self._chunk_messages(chunk, index, len(chunks)))
            except OllamaError as exc:
                logger.error("Error processing chunk %d/%d: %s", index + 1, len(chunks), exc)
                failures.append(str(exc))
                continue

            parsed_questions, parsed_lessons = parse_ai_response(response)
            for parsed in parsed_questions:
                self._merge_question(questions_by_num, parsed)
            for parsed in parsed_lessons:
                lessons.append(
                    ExtractedLesson(
                        temp_id=f"l-{uuid.uuid4().hex[:12]}",
                        title=parsed.title,
                        content=parsed.content,
                        content_type=parsed.content_type,
                        topic=parsed.topic,
                        order=parsed.order if parsed.order is not None else len(lessons),
                        confidence=_clamp(parsed.confidence, 0, 1),
                    )
                )

        if failures and len(failures) == len(chunks):
            raise AIExtractionError(failures[-1])

        questions = sorted(questions_by_num.values(), key=_question_sort_key)
        logger.info("AI extraction found %d questions and %d lessons", len(questions), len(lessons))
        return ExtractionResult(questions=questions, lessons=lessons, metadata=metadata)

    @staticmethod
    def _merge_question(questions_by_num: dict[str, ExtractedQuestion], parsed: ParsedQuestion) -> None:
        question_num = normalize_question_num(parsed.question_num)
        existing = questions_by_num.get(question_num)
        if existing is not None:
            # continuation of a question split across chunks
            existing.content = f"{existing.content}\n\n{parsed.content}"
            if parsed.marks:
                existing.marks = (existing.marks or 0) + parsed.marks
            if parsed.has_diagram:
                existing.diagram_description = DIAGRAM_NOTE
                existing.needs_review = True
            return

        confidence = _clamp(parsed.confidence, 0, 1)
        questions_by_num[question_num] = ExtractedQuestion(
            temp_id=f"q-{uuid.uuid4().hex[:12]}",
            content=parsed.content,
            topic=validate_topic(parsed.topic),
            difficulty=int(_clamp(round(parsed.difficulty or 2), 1, 5)),
            confidence=confidence,
            question_num=question_num,
            marks=parsed.marks,
            diagram_description=DIAGRAM_NOTE if parsed.has_diagram else None,
            needs_review=confidence < 0.7 or parsed.has_diagram,
        )


_extractor: ContentExtractor | None = None


def configure_content_extractor(extractor: ContentExtractor | None) -> None:
    """Install the content extractor used by the import pipeline."""

    global _extractor
    _extractor = extractor


def get_content_extractor() -> ContentExtractor:
    """Return the configured content extractor, building the Ollama default on first use."""

    global _extractor
    if _extractor is None:
        settings = get_settings()
        client = OllamaClient(
            settings.ollama_base_url,
            model=settings.ollama_model,
            temperature=settings.ollama_temperature,
            max_tokens=settings.ollama_max_tokens,
            timeout=settings.ollama_timeout,
        )
        _extractor = OllamaContentExtractor(client, chunk_max_chars=settings.chunk_max_chars)
    return _extractor


__all__ = [
    "ContentExtractor",
    "OllamaContentExtractor",
    "configure_content_extractor",
    "get_content_extractor",
    "normalize_question",
    "normalize_question_num",
    "parse_ai_response",
    "split_into_chunks",
    "validate_topic",
]
