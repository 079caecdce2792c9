"""Error taxonomy shared by the import pipeline layers."""
from __future__ import annotations


class ImportPipelineError(Exception):
    """Base class for all import pipeline failures."""


class ValidationError(ImportPipelineError):
    """Raised when an upload fails a precondition check."""


class ExtractionError(ImportPipelineError):
    """Raised when the text extraction adapter cannot read the PDF."""


class AIExtractionError(ImportPipelineError):
    """Raised when the AI extraction adapter cannot structure the text."""


class EmptyResultError(ImportPipelineError):
    """Raised when extraction succeeded but produced nothing to review."""


class StateMismatchError(ImportPipelineError):
    """Raised when an operation targets a job in the wrong status."""


class PersistenceItemError(ImportPipelineError):
    """Raised when a single reviewed question or lesson cannot be saved."""


class NotFoundError(ImportPipelineError):
    """Raised when an import job id is unknown."""


class PayloadMissingError(NotFoundError):
    """Raised when a job awaiting review has no stored extraction payload."""
