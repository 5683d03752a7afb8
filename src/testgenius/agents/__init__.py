"""
Agent implementations for TestGenius.

- SummaryAgent: proposes one-sentence test cases for a set of files.
- TestCodeAgent: writes the test source for one chosen test case.
"""

from .summary_agent import create_summary_agent, run_summary_agent
from .test_code_agent import create_test_code_agent, run_test_code_agent

__all__ = [
    "create_summary_agent",
    "run_summary_agent",
    "create_test_code_agent",
    "run_test_code_agent",
]
