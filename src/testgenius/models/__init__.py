"""
Data Models package for TestGenius.
"""

from .generation import (
    CodeFile,
    GenerateTestCodeInput,
    GenerateTestCodeOutput,
    GeneratedArtifact,
    GenerationRequest,
    SummarizeTestCasesInput,
    SummarizeTestCasesOutput,
)
from .publish import PublishRequest, PublishResult
from .repository import FileEntry, FileKind, RepositoryRef

__all__ = [
    "CodeFile",
    "FileEntry",
    "FileKind",
    "GenerateTestCodeInput",
    "GenerateTestCodeOutput",
    "GeneratedArtifact",
    "GenerationRequest",
    "PublishRequest",
    "PublishResult",
    "RepositoryRef",
    "SummarizeTestCasesInput",
    "SummarizeTestCasesOutput",
]
