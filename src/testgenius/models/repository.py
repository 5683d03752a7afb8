"""
Repository-side models: which repository, and which files it holds.
"""

from __future__ import annotations

import re
from enum import Enum
from posixpath import splitext

from pydantic import BaseModel, ConfigDict, Field

from testgenius.errors import ValidationError

_SEGMENT = re.compile(r"^[A-Za-z0-9_.-]+$")
_HOST_PREFIX = re.compile(r"^(?:https?://)?(?:www\.)?github\.com/", re.IGNORECASE)


class RepositoryRef(BaseModel):
    """
    Owner/name pair identifying a repository.

    Example:
        RepositoryRef.parse("https://github.com/acme/widgets")
        # RepositoryRef(owner="acme", name="widgets")
    """

    owner: str = Field(description="Account or organization owning the repository")
    name: str = Field(description="Repository name")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, value: str) -> RepositoryRef:
        """
        Build a RepositoryRef from a URL or an "owner/name" string.

        Accepts `owner/name`, `github.com/owner/name`, `https://github.com/owner/name`,
        with an optional `.git` suffix and trailing slash.

        Raises:
            ValidationError: If the value does not name exactly one owner and one repository.
        """
        raw = (value or "").strip()
        if not raw:
            raise ValidationError("Repository reference must not be empty")

        path = _HOST_PREFIX.sub("", raw).strip("/")
        if path.endswith(".git"):
            path = path[: -len(".git")]

        parts = path.split("/")
        if len(parts) != 2 or not all(parts):
            raise ValidationError(
                f"Repository reference must look like 'owner/name' or a GitHub URL, got: {value!r}"
            )

        owner, name = parts
        for segment in (owner, name):
            if not _SEGMENT.match(segment):
                raise ValidationError(f"Invalid repository reference segment: {segment!r}")

        return cls(owner=owner, name=name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def html_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


class FileKind(str, Enum):
    BLOB = "blob"
    TREE = "tree"


class FileEntry(BaseModel):
    """One entry of a repository file tree."""

    path: str = Field(description="Path relative to the repository root")
    kind: FileKind = Field(description="blob for files, tree for directories")

    model_config = ConfigDict(frozen=True)

    @property
    def extension(self) -> str:
        """Lower-cased extension including the dot, '' when there is none."""
        return splitext(self.path)[1].lower()

    def is_source(self, extensions: list[str] | tuple[str, ...]) -> bool:
        """Whether this is a file whose extension is in the allow-list."""
        allowed = {ext.lower() for ext in extensions}
        return self.kind is FileKind.BLOB and self.extension in allowed
