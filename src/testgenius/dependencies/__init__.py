"""
Dependencies for TestGenius.

Implements the dependency injection pattern: the orchestrator receives a
dependencies object with every collaborator it talks to.
"""

from .base import OrchestratorDependencies

__all__ = ["OrchestratorDependencies"]
