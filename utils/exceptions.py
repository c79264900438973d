"""
Unified exception hierarchy for Studycast.

All domain exceptions inherit from StudycastError and carry:
- error_code: machine-readable string (e.g. "NO_CONTENT")
- status_code: HTTP status code
- message: human-readable description
- context: optional structured metadata dict

Retryable failures (UpstreamError, ExtractionError, ContentValidationError)
are absorbed by the retry loop and the synthesis chain; only terminal
errors reach the HTTP boundary.
"""

from typing import Optional, Dict, Any


class StudycastError(Exception):
    """Base exception for all Studycast domain errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.context = context or {}
        super().__init__(message)


class PreconditionError(StudycastError):
    """Caller/environment problem, e.g. a file with no source chunks. Never retried."""

    def __init__(
        self,
        message: str,
        error_code: str = "NO_CONTENT",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=400, context=context)


class NotFoundError(StudycastError):
    """404 resource-not-found errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "FILE_NOT_FOUND",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=404, context=context)


class UpstreamError(StudycastError):
    """Text-completion or TTS provider failure (network, non-2xx, empty content)."""

    def __init__(
        self,
        message: str,
        error_code: str = "UPSTREAM_ERROR",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=502, context=context)


class ExtractionError(StudycastError):
    """No extraction strategy could recover the expected shape from provider text."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="EXTRACTION_FAILED", status_code=500, context=context)


class ContentValidationError(StudycastError):
    """Parsed data did not meet the artifact kind's structural minimum."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="VALIDATION_FAILED", status_code=500, context=context)


class GenerationExhaustedError(StudycastError):
    """Terminal: every attempt failed (or the deadline passed)."""

    def __init__(
        self,
        kind: str,
        attempts: int,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.kind = kind
        self.attempts = attempts
        ctx = {"kind": kind, "attempts": attempts}
        if context:
            ctx.update(context)
        super().__init__(
            message or f"Failed to generate {kind} from PDF content. Please try again.",
            error_code="GENERATION_EXHAUSTED",
            status_code=500,
            context=ctx,
        )


class PersistenceError(StudycastError):
    """Record store write/read failed."""

    def __init__(
        self,
        message: str,
        error_code: str = "PERSISTENCE_FAILED",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=500, context=context)


class DuplicateRecordError(PersistenceError):
    """The store's uniqueness constraint rejected a create (a concurrent writer won)."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="DUPLICATE_RECORD", context=context)


class SynthesisError(StudycastError):
    """Audio could not be produced (only reachable with empty input)."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="SYNTHESIS_FAILED", status_code=500, context=context)


class StorageError(StudycastError):
    """500-level durable audio storage failures."""

    def __init__(
        self,
        message: str,
        error_code: str = "STORAGE_ERROR",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=500, context=context)
