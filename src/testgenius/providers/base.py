"""
Repository provider contract.

The pipeline only talks to repository hosting through this protocol, so the
stages can be exercised against an in-memory provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from pydantic import SecretStr

from testgenius.models import FileEntry, RepositoryRef


@dataclass(frozen=True)
class BranchHead:
    """A branch name and the commit it currently points to."""

    name: str
    sha: str


class RepositoryProvider(Protocol):
    """
    Operations the pipeline needs from a repository host.

    Every method raises AuthError, NotFoundError or TransientError (all
    ProviderError subclasses) on failure.
    """

    async def list_files(self, repo: RepositoryRef, credential: SecretStr) -> list[FileEntry]:
        """Full file tree of the default branch, in provider order."""
        ...

    async def get_content(self, repo: RepositoryRef, credential: SecretStr, path: str) -> str:
        """Text content of `path` on the default branch."""
        ...

    async def get_default_branch(self, repo: RepositoryRef, credential: SecretStr) -> BranchHead:
        ...

    async def create_branch(
        self, repo: RepositoryRef, credential: SecretStr, branch_name: str, from_sha: str
    ) -> None:
        ...

    async def commit_file(
        self,
        repo: RepositoryRef,
        credential: SecretStr,
        branch_name: str,
        path: str,
        content: str,
        message: str,
    ) -> str:
        """Create or update `path` on `branch_name`; returns the commit sha."""
        ...

    async def open_pull_request(
        self,
        repo: RepositoryRef,
        credential: SecretStr,
        head: str,
        base: str,
        title: str,
        body: str,
    ) -> str:
        """Open a pull request from `head` into `base`; returns its web URL."""
        ...
