"""
Metadata for explainability.

Records which model produced a generation result, from which inputs, and how
long it took.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class StageMetadata(BaseModel):
    """
    Audit record for one model invocation.

    Example:
        metadata = StageMetadata(
            agent_name="TestCodeAgent",
            model_used="gemini-2.0-flash",
            input_files=["src/Widget.ts"],
            reasoning_chain=["Generated test for Widget: resizes on update"],
            execution_time_ms=1834.2,
        )
    """

    timestamp: datetime = Field(default_factory=datetime.now, description="When the run finished")

    agent_name: str = Field(description="Name of the agent that produced the output")

    model_used: str = Field(description="LLM model identifier used for this run")

    input_files: list[str] = Field(
        default_factory=list, description="Repository paths sent to the model as context"
    )

    reasoning_chain: list[str] = Field(
        default_factory=list, description="Short notes describing what was produced"
    )

    execution_time_ms: float = Field(default=0.0, description="Wall time of the model call")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "timestamp": "2026-01-15T10:30:00",
                "agent_name": "SummaryAgent",
                "model_used": "gemini-2.0-flash",
                "input_files": ["src/main/java/com/acme/Calculator.java"],
                "reasoning_chain": ["Proposed 6 test cases for 1 file"],
                "execution_time_ms": 2500.0,
            }
        }
    )
