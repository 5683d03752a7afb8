"""
Pipeline orchestration for TestGenius.

PipelineOrchestrator owns the session state and gates the four stages
through the transition table in state_machine.
"""

from .models import (
    ErrorInfo,
    PipelineSnapshot,
    PipelineStage,
    PipelineState,
    StageEvent,
    StageFailure,
    StageResult,
    StageSuccess,
)
from .pipeline_orchestrator import PipelineOrchestrator, default_commit_message
from .stages import (
    CodeGenerator,
    FileLister,
    Publisher,
    SummaryGenerator,
    derive_test_filename,
    fetch_code_files,
    make_branch_name,
)
from .state_machine import allowed_events, next_stage

__all__ = [
    "CodeGenerator",
    "ErrorInfo",
    "FileLister",
    "PipelineOrchestrator",
    "PipelineSnapshot",
    "PipelineStage",
    "PipelineState",
    "Publisher",
    "StageEvent",
    "StageFailure",
    "StageResult",
    "StageSuccess",
    "SummaryGenerator",
    "allowed_events",
    "default_commit_message",
    "derive_test_filename",
    "fetch_code_files",
    "make_branch_name",
    "next_stage",
]
