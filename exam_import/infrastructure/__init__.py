"""Infrastructure layer exports."""

from .content_ai import (
    ContentExtractor,
    OllamaContentExtractor,
    configure_content_extractor,
    get_content_extractor,
)
from .imports import ImportRepository, InMemoryImportRepository
from .ollama import OllamaClient, OllamaError
from .pdf_text import (
    PDFExtractionResult,
    PyMuPDFTextExtractor,
    TextExtractor,
    configure_text_extractor,
    get_text_extractor,
)

__all__ = [
    "ContentExtractor",
    "ImportRepository",
    "InMemoryImportRepository",
    "OllamaClient",
    "OllamaContentExtractor",
    "OllamaError",
    "PDFExtractionResult",
    "PyMuPDFTextExtractor",
    "TextExtractor",
    "configure_content_extractor",
    "configure_text_extractor",
    "get_content_extractor",
    "get_text_extractor",
]
