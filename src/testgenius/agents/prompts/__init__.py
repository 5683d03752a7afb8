"""System prompts for TestGenius agents."""

from .summary_prompts import SUMMARY_INSTRUCTIONS, SUMMARY_SYSTEM_PROMPT
from .test_code_prompts import TEST_CODE_INSTRUCTIONS, TEST_CODE_SYSTEM_PROMPT

__all__ = [
    "SUMMARY_SYSTEM_PROMPT",
    "SUMMARY_INSTRUCTIONS",
    "TEST_CODE_SYSTEM_PROMPT",
    "TEST_CODE_INSTRUCTIONS",
]
