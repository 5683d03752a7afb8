"""
Publish models - what gets committed and where it ended up.
"""

from pydantic import BaseModel, Field

from testgenius.errors import ValidationError


class PublishRequest(BaseModel):
    filename: str = Field(description="Repository path the test file is written to")
    content: str = Field(description="File content")
    commit_message: str = Field(description="Commit message, reused as the pull request title")
    body: str = Field(default="", description="Pull request body")

    def ensure_valid(self) -> None:
        """
        Raises:
            ValidationError: If filename or content is empty.
        """
        if not self.filename.strip():
            raise ValidationError("Filename must not be empty")
        if self.filename.startswith("/") or self.filename.endswith("/"):
            raise ValidationError(f"Filename must be a relative file path: {self.filename!r}")
        if not self.content.strip():
            raise ValidationError("Content must not be empty")
        if not self.commit_message.strip():
            raise ValidationError("Commit message must not be empty")


class PublishResult(BaseModel):
    pull_request_url: str = Field(description="Web URL of the opened pull request")
    branch_name: str = Field(description="Branch the file was committed to")
    commit_sha: str = Field(default="", description="Commit created on the branch")
