"""
API request/response models for FastAPI endpoints.

Pydantic models for:
- Session lifecycle and pipeline stage requests
- Session snapshots
- Error handling
- Health checks
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from testgenius.orchestrator import PipelineSnapshot

# ============================================================================
# Request Models
# ============================================================================


class GitHubCredentials(BaseModel):
    """GitHub repository access credentials."""

    access_token: str = Field(description="GitHub personal access token")
    repository_url: str = Field(
        description="GitHub repository URL or owner/name (e.g., https://github.com/acme/widgets)"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "access_token": "ghp_xxxxxxxxxxxxxxxxxxxx",
                "repository_url": "https://github.com/acme/widgets",
            }
        }
    )


class SelectFilesRequest(BaseModel):
    paths: list[str] = Field(description="Listed source file paths to use as context")


class ChooseSummaryRequest(BaseModel):
    summary: str = Field(description="One of the generated test case summaries")


class GenerateCodeRequest(BaseModel):
    """
    Request to generate test code.

    Fields left out fall back to what the session already holds.
    """

    summary: str | None = Field(default=None, description="Test case summary to implement")
    class_name: str | None = Field(default=None, description="Class under test")
    filename: str | None = Field(
        default=None, description="Filename to publish under (skips the derived name)"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"summary": "resizes on update", "class_name": "Widget", "filename": None}
        }
    )


class PublishRequestBody(BaseModel):
    filename: str | None = Field(default=None, description="Overrides the session filename")
    commit_message: str | None = Field(
        default=None, description="Defaults to 'Feat: Add test case for <ClassName>'"
    )


# ============================================================================
# Response Models
# ============================================================================


class SessionResponse(BaseModel):
    """Current state of one pipeline session."""

    session_id: str = Field(description="Unique session identifier")
    snapshot: PipelineSnapshot = Field(description="Read-only pipeline state")
    messages: list[str] = Field(default_factory=list, description="Progress messages so far")
    created_at: datetime = Field(default_factory=datetime.now)


class PublishResponse(BaseModel):
    session_id: str
    pull_request_url: str = Field(description="Web URL of the opened pull request")
    branch_name: str = Field(description="Branch holding the committed test")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "session_id": "session_20250126_143022_1a2b3c4d",
                "pull_request_url": "https://github.com/acme/widgets/pull/7",
                "branch_name": "testgenius/widgettest-ts-20250126T143022Z-1",
            }
        }
    )


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(description="Error type")
    kind: str = Field(description="Error kind (validation, auth, publish, ...)")
    message: str = Field(description="Error message")
    session_id: str | None = Field(default=None)
    branch_name: str | None = Field(
        default=None, description="Branch left behind by a failed publish"
    )
    completed_steps: list[str] | None = None
    timestamp: datetime = Field(default_factory=datetime.now)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "PublishError",
                "kind": "publish",
                "message": "Publishing failed after branch 'testgenius/widgettest-ts-...' was created",
                "session_id": "session_20250126_143022_1a2b3c4d",
                "branch_name": "testgenius/widgettest-ts-20250126T143022Z-1",
                "completed_steps": ["resolved main at 1a2b3c4", "created branch ..."],
                "timestamp": "2025-01-26T14:30:00",
            }
        }
    )


# ============================================================================
# Health Check
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status (healthy, degraded)")
    version: str = Field(description="API version")
    timestamp: datetime = Field(default_factory=datetime.now)

    services: dict[str, str] = Field(
        description="Status of dependent services", default_factory=dict
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "version": "0.1.0",
                "timestamp": "2025-01-26T14:30:00",
                "services": {"gemini_api": "configured", "config": "loaded"},
            }
        }
    )
