"""
Error taxonomy for the test generation pipeline.

Every stage operation either returns its success value or raises exactly one
of the errors below. The `kind` attribute is what the presentation layer
shows next to the human-readable message.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    PROVIDER = "provider"
    FETCH = "fetch"
    GENERATION = "generation"
    PUBLISH = "publish"
    PRECONDITION = "precondition"


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, object]:
        return {"error": type(self).__name__, "kind": self.kind.value, "message": self.message}


class ValidationError(PipelineError):
    """Bad input. Raised before any remote call is made."""

    kind = ErrorKind.VALIDATION


class PreconditionError(PipelineError):
    """A stage was invoked while the pipeline is not in a state that allows it."""

    kind = ErrorKind.PRECONDITION


class ProviderError(PipelineError):
    """Repository provider returned an unexpected response."""

    kind = ErrorKind.PROVIDER

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(ProviderError):
    """Credential rejected by the repository provider."""

    kind = ErrorKind.AUTH


class NotFoundError(ProviderError):
    """Repository, branch or path does not exist (or is not visible to the credential)."""

    kind = ErrorKind.NOT_FOUND


class TransientError(ProviderError):
    """Network failure, timeout, rate limit or provider-side outage. Safe to retry."""

    kind = ErrorKind.TRANSIENT


class FetchError(PipelineError):
    """Content of one selected file could not be fetched; aborts the whole stage."""

    kind = ErrorKind.FETCH

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path


class GenerationError(PipelineError):
    """Model service failed, returned malformed output, or returned nothing."""

    kind = ErrorKind.GENERATION


class PublishError(PipelineError):
    """
    Publishing failed part-way.

    Completed steps are not rolled back: when `branch_name` is set the branch
    already exists on the remote and a retry creates another one.
    """

    kind = ErrorKind.PUBLISH

    def __init__(
        self,
        message: str,
        branch_name: str | None = None,
        completed_steps: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.branch_name = branch_name
        self.completed_steps = completed_steps or []

    def to_dict(self) -> dict[str, object]:
        data = super().to_dict()
        data["branch_name"] = self.branch_name
        data["completed_steps"] = list(self.completed_steps)
        return data
