"""
Repository providers for TestGenius.
"""

from .base import BranchHead, RepositoryProvider
from .github import GitHubProvider

__all__ = ["BranchHead", "RepositoryProvider", "GitHubProvider"]
