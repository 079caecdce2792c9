"""Application services."""

from .imports import (
    CommitResult,
    ImportService,
    ItemOutcome,
    attempt_all,
    get_import_service,
    reset_import_state,
)

__all__ = [
    "CommitResult",
    "ImportService",
    "ItemOutcome",
    "attempt_all",
    "get_import_service",
    "reset_import_state",
]
