"""
Generation models - typed request/response pairs for the two model calls,
plus the pipeline-level request and artifact built around them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from testgenius.errors import ValidationError
from testgenius.explainability.metadata import StageMetadata


class CodeFile(BaseModel):
    """A repository file sent to the model as context."""

    name: str = Field(description="The path of the code file")
    content: str = Field(description="The content of the code file")


# ---------------------------------------------------------------------------
# Summary stage
# ---------------------------------------------------------------------------


class SummarizeTestCasesInput(BaseModel):
    code_files: list[CodeFile] = Field(
        description="Code files to generate test case summaries for"
    )


class SummarizeTestCasesOutput(BaseModel):
    """Output shape requested from the model: one sentence per test case."""

    test_case_summaries: list[str] = Field(
        description="Test case summaries, each a single sentence describing one test"
    )

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "test_case_summaries": [
                    "Constructs a widget with the default size.",
                    "Resizes the widget when update is called with new dimensions.",
                ]
            }
        },
    )


# ---------------------------------------------------------------------------
# Code stage
# ---------------------------------------------------------------------------


class GenerateTestCodeInput(BaseModel):
    code_files: list[CodeFile] = Field(description="Code files giving context for the test")
    test_case_summary: str = Field(description="Summary of the test case to generate")
    class_name: str = Field(description="Name of the class to be tested")


class GenerateTestCodeOutput(BaseModel):
    """Output shape requested from the model: the complete test source."""

    test_code: str = Field(
        description="Complete, compilable test source including all necessary imports"
    )


class GenerationRequest(BaseModel):
    """
    Everything the code stage needs besides repository access.

    Built by the orchestrator from the pipeline state; checked with
    ensure_valid() before any remote call is made.
    """

    context_files: list[str] = Field(description="Repository paths used as context")
    chosen_summary: str = Field(description="Summary picked from the current summary set")
    class_name: str = Field(description="Class the generated test targets")

    def ensure_valid(self, summaries: list[str]) -> None:
        """
        Raises:
            ValidationError: On empty context, blank class name, or a summary
                that is not part of `summaries`.
        """
        if not self.context_files:
            raise ValidationError("At least one context file is required to generate code")
        if not self.class_name.strip():
            raise ValidationError("Class name must not be empty")
        if not self.chosen_summary.strip():
            raise ValidationError("A test case summary must be chosen")
        if self.chosen_summary not in summaries:
            raise ValidationError(
                "Chosen summary is not one of the summaries generated in this session"
            )


class GeneratedArtifact(BaseModel):
    """Generated test source plus the filename it will be published under."""

    source_text: str = Field(description="Generated test source")
    suggested_filename: str = Field(description="Filename proposed for the test file")
    class_name: str = Field(description="Class under test")
    test_case_summary: str = Field(description="Summary the code was generated for")
    context_files: list[str] = Field(default_factory=list)
    metadata: StageMetadata | None = Field(default=None)
