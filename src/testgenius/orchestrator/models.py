"""Data models for the Pipeline Orchestrator."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from testgenius.errors import ErrorKind
from testgenius.explainability import StageMetadata
from testgenius.models import FileEntry, GeneratedArtifact, RepositoryRef

T = TypeVar("T")


class PipelineStage(str, Enum):
    """
    Workflow states.

    Each `*_LOADING` state marks a stage in flight and doubles as the
    mutual-exclusion marker for the session.
    """

    INITIAL = "initial"
    FILES_LOADING = "files_loading"
    FILES_LOADED = "files_loaded"
    SUMMARIES_LOADING = "summaries_loading"
    SUMMARIES_LOADED = "summaries_loaded"
    CODE_LOADING = "code_loading"
    CODE_LOADED = "code_loaded"
    PUBLISH_LOADING = "publish_loading"
    PUBLISHED = "published"
    ERROR = "error"

    @property
    def is_loading(self) -> bool:
        return self.value.endswith("_loading")


class StageEvent(str, Enum):
    """Inputs of the transition function."""

    START_LISTING = "start_listing"
    START_SUMMARIES = "start_summaries"
    START_CODE = "start_code"
    START_PUBLISH = "start_publish"
    SUCCEED = "succeed"
    FAIL = "fail"
    RESTART = "restart"
    RESUME = "resume"


@dataclass(frozen=True)
class StageSuccess(Generic[T]):
    """A stage finished and produced `value`."""

    value: T


@dataclass(frozen=True)
class StageFailure:
    """A stage failed with one error kind and a human-readable message."""

    kind: ErrorKind
    message: str


StageResult = StageSuccess | StageFailure


@dataclass
class ErrorInfo:
    """What went wrong in the last failed stage."""

    kind: ErrorKind
    message: str
    failed_stage: PipelineStage
    branch_name: str | None = None
    """Branch left behind by a partially completed publish, if any"""


@dataclass
class PipelineState:
    """
    Complete state of one test generation session.

    Owned exclusively by PipelineOrchestrator; callers only ever see a
    PipelineSnapshot of it.

    Example:
        state = PipelineState(session_id="session_123")
        print(state.stage)  # PipelineStage.INITIAL
    """

    # Identity
    session_id: str
    """Unique session identifier"""

    stage: PipelineStage = PipelineStage.INITIAL
    """Current pipeline stage"""

    revision: int = 0
    """Bumped on restart; a stage started under an older revision drops its result"""

    # Connection
    repository: RepositoryRef | None = None
    credential: SecretStr | None = None
    """Bearer token, kept in memory only"""

    # Stage outputs (populated as pipeline progresses)
    files: list[FileEntry] = field(default_factory=list)
    """Source files offered for selection, in provider order"""

    selection: set[str] = field(default_factory=set)
    """Paths chosen as generation context"""

    summaries: list[str] = field(default_factory=list)
    """Summary set returned by the Summary Generator"""

    summary_metadata: StageMetadata | None = None
    """Model, inputs and timing of the run that produced `summaries`"""

    chosen_summary: str | None = None
    class_name: str = ""

    filename: str | None = None
    """Filename set by the caller or derived on the first code generation"""

    artifact: GeneratedArtifact | None = None
    pull_request_url: str | None = None
    branch_name: str | None = None

    # Outcome tracking
    error: ErrorInfo | None = None
    last_result: StageSuccess | StageFailure | None = None

    # Timing
    created_at: float = field(default_factory=time.time)
    stage_timings: dict[str, float] = field(default_factory=dict)
    """Duration of the last run of each stage (ms)"""

    @property
    def is_busy(self) -> bool:
        return self.stage.is_loading

    @property
    def listed_paths(self) -> set[str]:
        return {entry.path for entry in self.files}

    def record_stage_time(self, stage: PipelineStage, duration_ms: float) -> None:
        """Record time spent in a stage."""
        self.stage_timings[stage.value] = duration_ms

    def clear_after_files(self) -> None:
        """Drop everything produced after the file listing."""
        self.selection = set()
        self.clear_after_selection()

    def clear_after_selection(self) -> None:
        self.summaries = []
        self.summary_metadata = None
        self.chosen_summary = None
        self.clear_generated()

    def clear_generated(self) -> None:
        self.artifact = None
        self.pull_request_url = None
        self.branch_name = None


class ErrorSnapshot(BaseModel):
    kind: ErrorKind
    message: str
    failed_stage: PipelineStage
    branch_name: str | None = None


class PipelineSnapshot(BaseModel):
    """
    Read-only view of the pipeline state for the presentation layer.

    Never carries the credential.
    """

    session_id: str = Field(description="Session identifier")
    stage: PipelineStage = Field(description="Current pipeline stage")
    repository: str | None = Field(default=None, description="owner/name of the repository")
    files: list[str] = Field(default_factory=list, description="Selectable source file paths")
    selection: list[str] = Field(default_factory=list, description="Selected paths, sorted")
    summaries: list[str] = Field(default_factory=list, description="Generated test case summaries")
    summary_metadata: StageMetadata | None = None
    chosen_summary: str | None = None
    class_name: str = ""
    filename: str | None = None
    artifact: GeneratedArtifact | None = None
    pull_request_url: str | None = None
    branch_name: str | None = None
    error: ErrorSnapshot | None = None
    stage_timings: dict[str, float] = Field(default_factory=dict)

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "session_id": "session_123",
                "stage": "summaries_loaded",
                "repository": "acme/widgets",
                "files": ["src/Widget.ts"],
                "selection": ["src/Widget.ts"],
                "summaries": ["constructs with default size", "resizes on update"],
                "chosen_summary": None,
                "class_name": "",
                "filename": None,
            }
        },
    )

    @classmethod
    def from_state(cls, state: PipelineState) -> PipelineSnapshot:
        error = None
        if state.error:
            error = ErrorSnapshot(
                kind=state.error.kind,
                message=state.error.message,
                failed_stage=state.error.failed_stage,
                branch_name=state.error.branch_name,
            )
        return cls(
            session_id=state.session_id,
            stage=state.stage,
            repository=state.repository.full_name if state.repository else None,
            files=[entry.path for entry in state.files],
            selection=sorted(state.selection),
            summaries=list(state.summaries),
            summary_metadata=state.summary_metadata,
            chosen_summary=state.chosen_summary,
            class_name=state.class_name,
            filename=state.filename,
            artifact=state.artifact,
            pull_request_url=state.pull_request_url,
            branch_name=state.branch_name,
            error=error,
            stage_timings=dict(state.stage_timings),
        )
