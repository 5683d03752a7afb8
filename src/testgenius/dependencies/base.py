"""
Dependencies for the Pipeline Orchestrator.

Collaborators are injected rather than constructed inside the orchestrator,
so tests can swap the repository provider and the model adapter.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from testgenius.config.settings import Settings
from testgenius.llm import PydanticAIAdapter

if TYPE_CHECKING:
    from testgenius.providers import RepositoryProvider


@dataclass
class OrchestratorDependencies:
    """
    Dependencies for the Pipeline Orchestrator.

    Example:
        deps = OrchestratorDependencies(
            session_id="session_123",
            provider=GitHubProvider(),
            adapter=PydanticAIAdapter(),
            send_message=print,
        )

        orchestrator = PipelineOrchestrator(deps)
        await orchestrator.load_files("acme/widgets", token)
    """

    session_id: str
    """Unique identifier for this session"""

    provider: RepositoryProvider | None = None
    """Repository host client (defaults to a GitHubProvider)"""

    adapter: PydanticAIAdapter | None = None
    """Model adapter shared by both model calls (defaults to routed Gemini models)"""

    settings: Settings | None = None
    """Settings override (defaults to get_settings())"""

    # Presentation callbacks (optional)
    send_message: Callable[[str], None] | None = None
    """Function to send progress messages to the user (e.g., console.print)"""

    enable_progress_updates: bool = True
    """Whether to send progress updates through send_message"""
