"""
Stage handlers.

Each handler performs the remote work of one pipeline stage and returns its
result (or raises one error kind). None of them touch PipelineState; the
orchestrator decides what to record.
"""

from __future__ import annotations

import itertools
import posixpath
import re
from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timezone

from pydantic import SecretStr

from testgenius.agents import run_summary_agent, run_test_code_agent
from testgenius.errors import (
    FetchError,
    PipelineError,
    ProviderError,
    PublishError,
    ValidationError,
)
from testgenius.explainability import StageMetadata
from testgenius.llm import PydanticAIAdapter
from testgenius.models import (
    CodeFile,
    FileEntry,
    GenerateTestCodeInput,
    GeneratedArtifact,
    GenerationRequest,
    PublishRequest,
    PublishResult,
    RepositoryRef,
    SummarizeTestCasesInput,
)
from testgenius.providers import RepositoryProvider
from testgenius.utils.logger import get_logger

logger = get_logger(__name__)

# Process-wide disambiguator for branch names created within the same second
_branch_counter = itertools.count(1)


def _require_credential(credential: SecretStr | None) -> SecretStr:
    if credential is None or not credential.get_secret_value().strip():
        raise ValidationError("Credential must not be empty")
    return credential


async def fetch_code_files(
    provider: RepositoryProvider,
    repo: RepositoryRef,
    credential: SecretStr,
    paths: Iterable[str],
) -> list[CodeFile]:
    """
    Fetch the content of every path, sorted by path.

    Raises:
        FetchError: On the first path that cannot be fetched. No partial
            result is returned.
    """
    code_files: list[CodeFile] = []
    for path in sorted(paths):
        try:
            content = await provider.get_content(repo, credential, path)
        except ProviderError as exc:
            logger.error(f"Failed to fetch {path}: {exc.message}")
            raise FetchError(path, f"Could not fetch {path}: {exc.message}") from exc
        code_files.append(CodeFile(name=path, content=content))

    logger.debug(f"Fetched {len(code_files)} files from {repo}")
    return code_files


def derive_test_filename(class_name: str, context_paths: Iterable[str], default_ext: str) -> str:
    """
    Default test filename for `class_name`: "<ClassName>Test.<ext>".

    The extension comes from the context file named after the class, else
    from the most common extension among the context files, else
    `default_ext`.

    Example:
        derive_test_filename("Widget", ["src/Widget.ts"], "java")  # "WidgetTest.ts"
    """
    paths = sorted(context_paths)
    extension = ""

    for path in paths:
        stem, ext = posixpath.splitext(posixpath.basename(path))
        if stem == class_name and ext:
            extension = ext
            break

    if not extension:
        counts = Counter(posixpath.splitext(path)[1] for path in paths)
        counts.pop("", None)
        if counts:
            extension = counts.most_common(1)[0][0]

    extension = (extension or default_ext).lstrip(".")
    return f"{class_name}Test.{extension}"


def make_branch_name(filename: str, prefix: str = "testgenius", now: datetime | None = None) -> str:
    """
    Unique branch name for publishing `filename`.

    Example:
        make_branch_name("src/WidgetTest.ts")
        # "testgenius/widgettest-ts-20240101T120000Z-1"
    """
    slug = re.sub(r"[^a-z0-9]+", "-", posixpath.basename(filename).lower()).strip("-") or "test"
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%SZ")
    return f"{prefix}/{slug}-{stamp}-{next(_branch_counter)}"


class FileLister:
    """Lists the files a user may select as generation context."""

    def __init__(self, provider: RepositoryProvider, extensions: list[str]):
        self.provider = provider
        self.extensions = extensions

    async def list_source_files(
        self, repo: RepositoryRef, credential: SecretStr
    ) -> list[FileEntry]:
        """
        Blob entries with a recognized source extension, in provider order.

        Raises:
            ValidationError: If the credential is empty.
            AuthError, NotFoundError, TransientError: From the provider.
        """
        credential = _require_credential(credential)
        entries = await self.provider.list_files(repo, credential)
        files = [entry for entry in entries if entry.is_source(self.extensions)]
        logger.info(f"{len(files)} of {len(entries)} entries in {repo} are source files")
        return files


class SummaryGenerator:
    """Fetches the selected files and asks the model for test case summaries."""

    def __init__(self, provider: RepositoryProvider, adapter: PydanticAIAdapter):
        self.provider = provider
        self.adapter = adapter

    async def generate_summaries(
        self, repo: RepositoryRef, credential: SecretStr, selection: Iterable[str]
    ) -> tuple[list[str], StageMetadata]:
        paths = list(selection)
        if not paths:
            raise ValidationError("Select at least one file to summarize")
        credential = _require_credential(credential)

        code_files = await fetch_code_files(self.provider, repo, credential, paths)
        output, metadata = await run_summary_agent(
            SummarizeTestCasesInput(code_files=code_files), self.adapter
        )
        return list(output.test_case_summaries), metadata


class CodeGenerator:
    """Generates the test source for one chosen summary."""

    def __init__(
        self,
        provider: RepositoryProvider,
        adapter: PydanticAIAdapter,
        default_extension: str = "java",
    ):
        self.provider = provider
        self.adapter = adapter
        self.default_extension = default_extension

    async def generate_code(
        self,
        repo: RepositoryRef,
        credential: SecretStr,
        request: GenerationRequest,
        summaries: list[str],
        filename: str | None = None,
    ) -> GeneratedArtifact:
        """
        Generate test code for `request`.

        `filename` is the name already set for the session; the derived
        "<ClassName>Test.<ext>" name is only used when it is None.

        Raises:
            ValidationError: Before any remote call, on an invalid request.
            FetchError: If a context file cannot be fetched.
            GenerationError: If the model call fails.
        """
        request.ensure_valid(summaries)
        credential = _require_credential(credential)
        class_name = request.class_name.strip()

        code_files = await fetch_code_files(self.provider, repo, credential, request.context_files)
        output, metadata = await run_test_code_agent(
            GenerateTestCodeInput(
                code_files=code_files,
                test_case_summary=request.chosen_summary,
                class_name=class_name,
            ),
            self.adapter,
        )

        suggested = filename or derive_test_filename(
            class_name, request.context_files, self.default_extension
        )
        return GeneratedArtifact(
            source_text=output.test_code,
            suggested_filename=suggested,
            class_name=class_name,
            test_case_summary=request.chosen_summary,
            context_files=sorted(request.context_files),
            metadata=metadata,
        )


class Publisher:
    """
    Commits one file to a fresh branch and opens a pull request.

    Steps run in order: resolve default branch, create branch, commit,
    open pull request. Nothing is rolled back when a later step fails.
    """

    def __init__(self, provider: RepositoryProvider, branch_prefix: str = "testgenius"):
        self.provider = provider
        self.branch_prefix = branch_prefix

    async def publish(
        self, repo: RepositoryRef, credential: SecretStr, request: PublishRequest
    ) -> PublishResult:
        request.ensure_valid()
        credential = _require_credential(credential)

        completed: list[str] = []
        created_branch: str | None = None
        try:
            base = await self.provider.get_default_branch(repo, credential)
            completed.append(f"resolved {base.name} at {base.sha[:7]}")

            branch_name = make_branch_name(request.filename, self.branch_prefix)
            await self.provider.create_branch(repo, credential, branch_name, base.sha)
            created_branch = branch_name
            completed.append(f"created branch {branch_name}")

            commit_sha = await self.provider.commit_file(
                repo,
                credential,
                branch_name,
                request.filename,
                request.content,
                request.commit_message,
            )
            completed.append(f"committed {request.filename}")

            url = await self.provider.open_pull_request(
                repo,
                credential,
                head=branch_name,
                base=base.name,
                title=request.commit_message,
                body=request.body,
            )
        except Exception as exc:
            detail = exc.message if isinstance(exc, PipelineError) else f"{type(exc).__name__}: {exc}"
            if created_branch:
                message = (
                    f"Publishing failed after branch '{created_branch}' was created: "
                    f"{detail}. The branch still exists on {repo}; publishing again "
                    f"creates a new branch."
                )
            else:
                message = f"Publishing failed before any branch was created: {detail}"
            logger.error(message)
            raise PublishError(
                message, branch_name=created_branch, completed_steps=completed
            ) from exc

        return PublishResult(pull_request_url=url, branch_name=branch_name, commit_sha=commit_sha)
