"""
Summary Agent implementation.

First model call of the pipeline:
1. Receives the (path, content) pairs of the selected files.
2. Asks the model for one-sentence test case descriptions.
3. Validates the returned list before anyone downstream trusts it.
"""

from __future__ import annotations

import time
from datetime import datetime

from pydantic_ai import Agent

from testgenius.errors import GenerationError
from testgenius.explainability import StageMetadata
from testgenius.llm import ModelRole, PydanticAIAdapter
from testgenius.models import SummarizeTestCasesInput, SummarizeTestCasesOutput
from testgenius.utils.logger import get_logger

from .prompts import SUMMARY_INSTRUCTIONS, SUMMARY_SYSTEM_PROMPT

logger = get_logger(__name__)


def create_summary_agent(adapter: PydanticAIAdapter) -> Agent[None, SummarizeTestCasesOutput]:
    """
    Create and configure the Summary Agent.

    Output retries are disabled: a malformed answer fails the stage instead of
    triggering another model request.

    Example:
        adapter = PydanticAIAdapter()
        agent = create_summary_agent(adapter)
        result = await agent.run(build_summary_prompt(payload))
        print(result.output.test_case_summaries)
    """
    model = adapter.get_model(role=ModelRole.SUMMARIZER)
    settings = adapter.get_model_settings(role=ModelRole.SUMMARIZER)

    logger.debug(f"Creating Summary Agent with model: {adapter.model_name(ModelRole.SUMMARIZER)}")

    return Agent(
        model=model,
        output_type=SummarizeTestCasesOutput,
        system_prompt=f"{SUMMARY_SYSTEM_PROMPT}\n{SUMMARY_INSTRUCTIONS}",
        model_settings=settings,
        output_retries=0,
    )


def build_summary_prompt(payload: SummarizeTestCasesInput) -> str:
    """Render all code files into one prompt, in the order given."""
    sections = ["Here are the code files:\n"]
    for code_file in payload.code_files:
        sections.append(f"File name: {code_file.name}\nFile content:\n{code_file.content}\n")
    sections.append("Here are the test case summaries, as a list of strings:")
    return "\n".join(sections)


def _check_summaries(output: SummarizeTestCasesOutput) -> None:
    if not output.test_case_summaries:
        raise GenerationError("Model returned no test case summaries")

    blank = [i for i, summary in enumerate(output.test_case_summaries) if not summary]
    if blank:
        raise GenerationError(
            f"Model returned {len(blank)} empty test case summaries (positions {blank})"
        )


async def run_summary_agent(
    payload: SummarizeTestCasesInput,
    adapter: PydanticAIAdapter | None = None,
) -> tuple[SummarizeTestCasesOutput, StageMetadata]:
    """
    Run the Summary Agent once.

    Args:
        payload: Code files to summarize
        adapter: Optional PydanticAIAdapter (creates new one if not provided)

    Returns:
        tuple: (SummarizeTestCasesOutput, StageMetadata)

    Raises:
        GenerationError: If the model call fails, its output does not match
            the output shape, or the list is empty or contains blank entries.
    """
    if adapter is None:
        adapter = PydanticAIAdapter()

    file_names = [code_file.name for code_file in payload.code_files]
    logger.info(f"Running Summary Agent for {len(file_names)} files")

    start_time = time.time()
    try:
        agent = create_summary_agent(adapter)
        result = await agent.run(build_summary_prompt(payload))
    except Exception as exc:
        logger.error(f"Summary Agent failed: {exc}")
        raise GenerationError(f"Test case summary generation failed: {exc}") from exc

    duration_ms = (time.time() - start_time) * 1000
    output = result.output
    _check_summaries(output)

    metadata = StageMetadata(
        timestamp=datetime.now(),
        agent_name="SummaryAgent",
        model_used=adapter.model_name(ModelRole.SUMMARIZER),
        input_files=file_names,
        reasoning_chain=[
            f"Proposed {len(output.test_case_summaries)} test cases for {len(file_names)} files",
        ],
        execution_time_ms=duration_ms,
    )

    logger.info(
        f"Summary Agent completed: summaries={len(output.test_case_summaries)}, "
        f"duration={duration_ms:.0f}ms"
    )
    return output, metadata
