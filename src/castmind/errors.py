"""
Error taxonomy for the ingestion and memory pipeline.

Transport and storage failures are fatal to the run. PostValidationError is the
only per-record error and is counted and skipped by the callers that raise it.
"""
from typing import Optional


class CastMindError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(CastMindError):
    """Required configuration is missing or invalid."""


class TransportError(CastMindError):
    """The feed or reaction API was unreachable or returned a non-success status."""

    def __init__(self, message: str, operation: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code


class PostValidationError(CastMindError):
    """A post is missing required fields. Non-fatal: the post is skipped."""


class InsufficientDataError(CastMindError):
    """Similarity was requested on an empty memory tier."""


class PersistenceError(CastMindError):
    """A write to the analytics or memory store failed and was rolled back."""


class PipelineError(CastMindError):
    """A pipeline stage failed; wraps the underlying error with the stage name."""

    def __init__(self, stage: str, cause: Exception):
        super().__init__(f"Pipeline stage '{stage}' failed: {cause}")
        self.stage = stage
        self.cause = cause
