"""
Test Code Agent implementation.

Second model call of the pipeline: one chosen test case summary plus the
context files and a class name in, one complete test source file out.
"""

from __future__ import annotations

import time
from datetime import datetime

from pydantic_ai import Agent

from testgenius.errors import GenerationError
from testgenius.explainability import StageMetadata
from testgenius.llm import ModelRole, PydanticAIAdapter
from testgenius.models import GenerateTestCodeInput, GenerateTestCodeOutput
from testgenius.utils.logger import get_logger

from .prompts import TEST_CODE_INSTRUCTIONS, TEST_CODE_SYSTEM_PROMPT

logger = get_logger(__name__)


def create_test_code_agent(adapter: PydanticAIAdapter) -> Agent[None, GenerateTestCodeOutput]:
    """
    Create and configure the Test Code Agent.

    Example:
        agent = create_test_code_agent(PydanticAIAdapter())
        result = await agent.run(build_test_code_prompt(payload))
        print(result.output.test_code)
    """
    model = adapter.get_model(role=ModelRole.CODER)
    settings = adapter.get_model_settings(role=ModelRole.CODER)

    logger.debug(f"Creating Test Code Agent with model: {adapter.model_name(ModelRole.CODER)}")

    return Agent(
        model=model,
        output_type=GenerateTestCodeOutput,
        system_prompt=f"{TEST_CODE_SYSTEM_PROMPT}\n{TEST_CODE_INSTRUCTIONS}",
        model_settings=settings,
        output_retries=0,
    )


def build_test_code_prompt(payload: GenerateTestCodeInput) -> str:
    sections = ["Code File Content:\n"]
    for code_file in payload.code_files:
        sections.append(f"File name: {code_file.name}\n{code_file.content}\n")
    sections.append(f"Class Name:\n{payload.class_name}\n")
    sections.append(f"Test Case Summary:\n{payload.test_case_summary}\n")
    sections.append(
        "Ensure the generated test code is complete, correct, and includes all necessary imports."
    )
    return "\n".join(sections)


def strip_code_fence(text: str) -> str:
    """
    Remove one Markdown code fence wrapping the whole text, if present.

    Example:
        strip_code_fence("```java\\nclass A {}\\n```")  # "class A {}\\n"
    """
    cleaned = text.strip()
    if not cleaned.startswith("```") or not cleaned.endswith("```") or len(cleaned) < 6:
        return text

    inner = cleaned[3:-3]
    # First line holds the optional language header
    if "\n" in inner:
        header, rest = inner.split("\n", 1)
        if not header.strip() or header.strip().isidentifier():
            inner = rest
    return inner.strip("\n") + "\n"


async def run_test_code_agent(
    payload: GenerateTestCodeInput,
    adapter: PydanticAIAdapter | None = None,
) -> tuple[GenerateTestCodeOutput, StageMetadata]:
    """
    Run the Test Code Agent once.

    Returns:
        tuple: (GenerateTestCodeOutput, StageMetadata)

    Raises:
        GenerationError: If the model call fails, its output does not match
            the output shape, or the returned source is blank.
    """
    if adapter is None:
        adapter = PydanticAIAdapter()

    file_names = [code_file.name for code_file in payload.code_files]
    logger.info(
        f"Running Test Code Agent: class={payload.class_name}, context_files={len(file_names)}"
    )

    start_time = time.time()
    try:
        agent = create_test_code_agent(adapter)
        result = await agent.run(build_test_code_prompt(payload))
    except Exception as exc:
        logger.error(f"Test Code Agent failed: {exc}")
        raise GenerationError(f"Test code generation failed: {exc}") from exc

    duration_ms = (time.time() - start_time) * 1000

    test_code = strip_code_fence(result.output.test_code)
    if not test_code.strip():
        raise GenerationError("Model returned empty test code")
    output = GenerateTestCodeOutput(test_code=test_code)

    metadata = StageMetadata(
        timestamp=datetime.now(),
        agent_name="TestCodeAgent",
        model_used=adapter.model_name(ModelRole.CODER),
        input_files=file_names,
        reasoning_chain=[
            f"Generated test for {payload.class_name}: {payload.test_case_summary}",
            f"Produced {len(test_code.splitlines())} lines of test code",
        ],
        execution_time_ms=duration_ms,
    )

    logger.info(
        f"Test Code Agent completed: lines={len(test_code.splitlines())}, "
        f"duration={duration_ms:.0f}ms"
    )
    return output, metadata
