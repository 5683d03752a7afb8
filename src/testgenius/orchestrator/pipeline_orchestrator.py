"""
PipelineOrchestrator - owns one session's PipelineState.

Coordinates the four stages:
1. File Lister - list selectable source files
2. Summary Generator - propose test case summaries
3. Code Generator - write the test for one summary
4. Publisher - commit to a new branch and open a pull request

Every public operation checks the state machine first (PreconditionError),
then its input (ValidationError), and only then talks to a remote service.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import SecretStr

from testgenius.config.settings import get_settings
from testgenius.dependencies import OrchestratorDependencies
from testgenius.errors import (
    GenerationError,
    PipelineError,
    PreconditionError,
    ProviderError,
    PublishError,
    ValidationError,
)
from testgenius.explainability import StageMetadata
from testgenius.llm import PydanticAIAdapter
from testgenius.models import (
    FileEntry,
    GeneratedArtifact,
    GenerationRequest,
    PublishRequest,
    PublishResult,
    RepositoryRef,
)
from testgenius.providers import GitHubProvider
from testgenius.utils.logger import get_logger, mask_secret

from .models import (
    ErrorInfo,
    PipelineSnapshot,
    PipelineStage,
    PipelineState,
    StageEvent,
    StageFailure,
    StageSuccess,
)
from .stages import CodeGenerator, FileLister, Publisher, SummaryGenerator
from .state_machine import next_stage

logger = get_logger(__name__)

T = TypeVar("T")

# Error raised when a stage dies on something outside the error taxonomy
_UNEXPECTED_ERROR: dict[PipelineStage, type[PipelineError]] = {
    PipelineStage.FILES_LOADING: ProviderError,
    PipelineStage.SUMMARIES_LOADING: GenerationError,
    PipelineStage.CODE_LOADING: GenerationError,
    PipelineStage.PUBLISH_LOADING: PublishError,
}

_IDLE_WITH_FILES = {
    PipelineStage.FILES_LOADED,
    PipelineStage.SUMMARIES_LOADED,
    PipelineStage.CODE_LOADED,
    PipelineStage.PUBLISHED,
    PipelineStage.ERROR,
}


def default_commit_message(class_name: str) -> str:
    return f"Feat: Add test case for {class_name}"


def _clean_filename(filename: str | None) -> str:
    name = (filename or "").strip()
    if not name or name.startswith("/") or name.endswith("/"):
        raise ValidationError(f"Filename must be a relative file path, got: {filename!r}")
    return name


def build_pull_request_body(artifact: GeneratedArtifact) -> str:
    lines = [
        f"Adds a generated test for `{artifact.class_name}`.",
        "",
        f"**Test case:** {artifact.test_case_summary}",
    ]
    if artifact.context_files:
        lines += ["", "**Context files:**"]
        lines += [f"- `{path}`" for path in artifact.context_files]
    if artifact.metadata:
        lines += ["", f"_Generated with {artifact.metadata.model_used}._"]
    return "\n".join(lines)


class PipelineOrchestrator:
    """
    Single-session pipeline with an explicit state machine.

    At most one stage runs at a time: a second call while a `*_LOADING`
    stage is in flight fails with PreconditionError.

    Example:
        deps = OrchestratorDependencies(session_id="session_123", send_message=print)
        orchestrator = PipelineOrchestrator(deps)

        await orchestrator.load_files("acme/widgets", token)
        orchestrator.select_files(["src/Widget.ts"])
        summaries = await orchestrator.generate_summaries()
        orchestrator.choose_summary(summaries[1])
        orchestrator.set_class_name("Widget")
        artifact = await orchestrator.generate_code()
        result = await orchestrator.publish()
        print(result.pull_request_url)
    """

    def __init__(self, dependencies: OrchestratorDependencies):
        self.deps = dependencies
        self.settings = dependencies.settings or get_settings()
        # A provider built here is closed by aclose(); an injected one belongs to the caller
        self._owned_provider = None if dependencies.provider else GitHubProvider(self.settings)
        self.provider = dependencies.provider or self._owned_provider
        self.adapter = dependencies.adapter or PydanticAIAdapter()

        self.file_lister = FileLister(self.provider, self.settings.SOURCE_EXTENSIONS)
        self.summary_generator = SummaryGenerator(self.provider, self.adapter)
        self.code_generator = CodeGenerator(
            self.provider, self.adapter, self.settings.DEFAULT_TEST_EXTENSION
        )
        self.publisher = Publisher(self.provider, self.settings.BRANCH_PREFIX)

        self.state = PipelineState(session_id=dependencies.session_id)

        logger.info(f"PipelineOrchestrator initialized: session={self.state.session_id}")

    # ----------------------------------------------------------------
    # Helpers
    # ----------------------------------------------------------------

    def _send_progress(self, message: str) -> None:
        """Send progress update via callback if configured."""
        if self.deps.enable_progress_updates and self.deps.send_message:
            try:
                self.deps.send_message(message)
            except Exception as e:
                logger.warning(f"Failed to send progress update: {e}")

    def _require_idle_with_files(self, action: str) -> None:
        if self.state.stage not in _IDLE_WITH_FILES:
            raise PreconditionError(f"Cannot {action} while pipeline is {self.state.stage.value}")

    def _connection(self) -> tuple[RepositoryRef, SecretStr]:
        if self.state.repository is None or self.state.credential is None:
            raise PreconditionError("No repository connected; load files first")
        return self.state.repository, self.state.credential

    def _record_failure(
        self, loading: PipelineStage, error: PipelineError, duration_ms: float
    ) -> None:
        branch_name = error.branch_name if isinstance(error, PublishError) else None

        self.state.stage = next_stage(loading, StageEvent.FAIL)
        self.state.error = ErrorInfo(
            kind=error.kind, message=error.message, failed_stage=loading, branch_name=branch_name
        )
        self.state.last_result = StageFailure(kind=error.kind, message=error.message)
        self.state.record_stage_time(loading, duration_ms)
        logger.error(f"Stage failed: {loading.value} [{error.kind.value}] {error.message}")
        self._send_progress(f"❌ {error.message}")

    async def _run_stage(
        self,
        event: StageEvent,
        work: Callable[[], Awaitable[T]],
        apply: Callable[[T], None],
    ) -> T:
        """
        Enter the `*_LOADING` stage for `event`, run `work`, record the outcome.

        The caller has already validated its input. State is written on entry
        and on exit only; if the session was restarted meanwhile, the outcome
        is dropped.
        """
        loading = next_stage(self.state.stage, event)
        self.state.stage = loading
        self.state.error = None
        revision = self.state.revision
        start_time = time.time()
        logger.info(f"Stage started: {loading.value} (session={self.state.session_id})")

        try:
            value = await work()
        except Exception as exc:
            duration_ms = (time.time() - start_time) * 1000
            error = exc if isinstance(exc, PipelineError) else _UNEXPECTED_ERROR[loading](
                f"Unexpected error during {loading.value}: {type(exc).__name__}: {exc}"
            )
            if revision != self.state.revision:
                logger.info(f"Dropping failure of {loading.value}: session was restarted")
            else:
                self._record_failure(loading, error, duration_ms)
            if error is exc:
                raise
            raise error from exc

        duration_ms = (time.time() - start_time) * 1000
        if revision != self.state.revision:
            logger.info(f"Dropping result of {loading.value}: session was restarted")
            raise PreconditionError(
                f"Session was restarted while {loading.value} was running; result discarded"
            )

        apply(value)
        self.state.stage = next_stage(loading, StageEvent.SUCCEED)
        self.state.last_result = StageSuccess(value=value)
        self.state.record_stage_time(loading, duration_ms)
        logger.info(f"Stage completed: {loading.value} in {duration_ms:.0f}ms")
        return value

    # ----------------------------------------------------------------
    # Read access
    # ----------------------------------------------------------------

    def snapshot(self) -> PipelineSnapshot:
        """Read-only copy of the current state, without the credential."""
        return PipelineSnapshot.from_state(self.state)

    # ----------------------------------------------------------------
    # Stage 1: File listing
    # ----------------------------------------------------------------

    async def load_files(
        self, repository: str | RepositoryRef, credential: str | SecretStr
    ) -> list[FileEntry]:
        """
        Connect a repository and list its selectable source files.

        Raises:
            PreconditionError: Unless the pipeline is in its initial state.
            ValidationError: On a malformed repository reference or empty credential.
            AuthError, NotFoundError, TransientError: From the provider.
        """
        next_stage(self.state.stage, StageEvent.START_LISTING)

        repo = repository if isinstance(repository, RepositoryRef) else RepositoryRef.parse(repository)
        secret = credential if isinstance(credential, SecretStr) else SecretStr(credential or "")
        if not secret.get_secret_value().strip():
            raise ValidationError("Credential must not be empty")

        self.state.repository = repo
        self.state.credential = secret
        logger.info(f"Connecting {repo} with token {mask_secret(secret.get_secret_value())}")
        self._send_progress(f"📂 Loading files from {repo}...")

        def apply(files: list[FileEntry]) -> None:
            self.state.files = files
            self.state.clear_after_files()

        files = await self._run_stage(
            StageEvent.START_LISTING,
            lambda: self.file_lister.list_source_files(repo, secret),
            apply,
        )
        self._send_progress(f"✅ Found {len(files)} source files")
        return files

    def select_files(self, paths: list[str]) -> list[str]:
        """
        Replace the selection set.

        Allowed whenever files are listed and no stage is running, so the
        code stage can use a re-specified file set.

        Raises:
            ValidationError: If a path was not part of the listing.
        """
        self._require_idle_with_files("select files")

        listed = self.state.listed_paths
        unknown = sorted(set(paths) - listed)
        if unknown:
            raise ValidationError(f"Not a listed source file: {', '.join(unknown)}")

        self.state.selection = set(paths)
        logger.debug(f"Selection updated: {len(self.state.selection)} files")
        return sorted(self.state.selection)

    # ----------------------------------------------------------------
    # Stage 2: Summaries
    # ----------------------------------------------------------------

    async def generate_summaries(self) -> list[str]:
        """
        Ask the model for test case summaries of the selected files.

        Raises:
            PreconditionError: Unless files are loaded and nothing else runs.
            ValidationError: If the selection is empty.
            FetchError, GenerationError: From the stage.
        """
        next_stage(self.state.stage, StageEvent.START_SUMMARIES)
        if not self.state.selection:
            raise ValidationError("Select at least one file to summarize")
        repo, credential = self._connection()
        selection = sorted(self.state.selection)

        self._send_progress(f"🧠 Generating test case summaries for {len(selection)} files...")

        def apply(result: tuple[list[str], StageMetadata]) -> None:
            self.state.clear_after_selection()
            self.state.summaries, self.state.summary_metadata = result

        summaries, _ = await self._run_stage(
            StageEvent.START_SUMMARIES,
            lambda: self.summary_generator.generate_summaries(repo, credential, selection),
            apply,
        )
        self._send_progress(f"✅ {len(summaries)} test case summaries ready")
        return summaries

    def choose_summary(self, summary: str) -> str:
        """
        Raises:
            PreconditionError: If no summary set is available.
            ValidationError: If `summary` is not in the current summary set.
        """
        if self.state.stage not in (PipelineStage.SUMMARIES_LOADED, PipelineStage.CODE_LOADED):
            raise PreconditionError(
                f"Cannot choose a summary while pipeline is {self.state.stage.value}"
            )
        if summary not in self.state.summaries:
            raise ValidationError("Chosen summary is not one of the generated summaries")

        self.state.chosen_summary = summary
        return summary

    def set_class_name(self, class_name: str) -> str:
        if self.state.is_busy:
            raise PreconditionError(f"Cannot set class name while {self.state.stage.value}")
        name = (class_name or "").strip()
        if not name:
            raise ValidationError("Class name must not be empty")

        self.state.class_name = name
        return name

    def set_filename(self, filename: str) -> str:
        """
        Set the filename the test is published under.

        Once set, later code generations keep it instead of deriving one.
        """
        if self.state.is_busy:
            raise PreconditionError(f"Cannot set filename while {self.state.stage.value}")
        name = _clean_filename(filename)

        self.state.filename = name
        if self.state.artifact:
            self.state.artifact = self.state.artifact.model_copy(
                update={"suggested_filename": name}
            )
        return name

    # ----------------------------------------------------------------
    # Stage 3: Code
    # ----------------------------------------------------------------

    async def generate_code(
        self,
        summary: str | None = None,
        class_name: str | None = None,
        filename: str | None = None,
    ) -> GeneratedArtifact:
        """
        Generate test code for the chosen summary and class name.

        `summary`, `class_name` and `filename` override the values set earlier.

        Raises:
            PreconditionError: Unless summaries (or code) are loaded.
            ValidationError: On a missing summary, class name or selection.
                No remote call is made in that case.
            FetchError, GenerationError: From the stage.
        """
        next_stage(self.state.stage, StageEvent.START_CODE)

        request = GenerationRequest(
            context_files=sorted(self.state.selection),
            chosen_summary=summary if summary is not None else (self.state.chosen_summary or ""),
            class_name=(class_name if class_name is not None else self.state.class_name).strip(),
        )
        request.ensure_valid(self.state.summaries)
        override = _clean_filename(filename) if filename is not None else None
        repo, credential = self._connection()

        self.state.chosen_summary = request.chosen_summary
        self.state.class_name = request.class_name
        if override:
            self.state.filename = override
        filename = self.state.filename
        summaries = list(self.state.summaries)

        self._send_progress(f"🔨 Generating test code for {request.class_name}...")

        def apply(artifact: GeneratedArtifact) -> None:
            self.state.clear_generated()
            self.state.artifact = artifact
            if self.state.filename is None:
                self.state.filename = artifact.suggested_filename

        artifact = await self._run_stage(
            StageEvent.START_CODE,
            lambda: self.code_generator.generate_code(
                repo, credential, request, summaries, filename
            ),
            apply,
        )
        self._send_progress(f"✅ Test code ready: {artifact.suggested_filename}")
        return artifact

    # ----------------------------------------------------------------
    # Stage 4: Publish
    # ----------------------------------------------------------------

    async def publish(
        self, commit_message: str | None = None, filename: str | None = None
    ) -> PublishResult:
        """
        Commit the generated test to a new branch and open a pull request.

        Raises:
            PreconditionError: Unless code is loaded.
            ValidationError: On empty content, filename or commit message.
            PublishError: If any publishing step fails. `branch_name` is set
                when the branch was already created.
        """
        next_stage(self.state.stage, StageEvent.START_PUBLISH)
        artifact = self.state.artifact
        if artifact is None or not artifact.source_text.strip():
            raise ValidationError("There is no generated test code to publish")
        if filename is not None:
            filename = _clean_filename(filename)
        else:
            filename = self.state.filename or artifact.suggested_filename

        request = PublishRequest(
            filename=filename,
            content=artifact.source_text,
            commit_message=(
                commit_message
                if commit_message is not None
                else default_commit_message(artifact.class_name)
            ),
            body=build_pull_request_body(artifact),
        )
        request.ensure_valid()
        repo, credential = self._connection()
        self.state.filename = filename

        self._send_progress(f"🚀 Publishing {filename} to {repo}...")

        def apply(result: PublishResult) -> None:
            self.state.pull_request_url = result.pull_request_url
            self.state.branch_name = result.branch_name

        result = await self._run_stage(
            StageEvent.START_PUBLISH,
            lambda: self.publisher.publish(repo, credential, request),
            apply,
        )
        self._send_progress(f"✅ Pull request opened: {result.pull_request_url}")
        return result

    # ----------------------------------------------------------------
    # Recovery
    # ----------------------------------------------------------------

    def restart(self) -> PipelineSnapshot:
        """Discard everything, including the credential, and go back to INITIAL."""
        next_stage(self.state.stage, StageEvent.RESTART)
        if self.state.is_busy:
            logger.warning(f"Restart while {self.state.stage.value}; its result will be dropped")

        self.state = PipelineState(
            session_id=self.state.session_id,
            revision=self.state.revision + 1,
        )
        logger.info(f"Pipeline restarted: session={self.state.session_id}")
        self._send_progress("🔄 Pipeline restarted")
        return self.snapshot()

    def resume(self) -> PipelineSnapshot:
        """
        Go back to FILES_LOADED, keeping the listing and everything produced since.

        Raises:
            PreconditionError: From a running stage or INITIAL, or when the
                file listing itself never succeeded.
        """
        target = next_stage(self.state.stage, StageEvent.RESUME)
        failed_listing = (
            self.state.error is not None
            and self.state.error.failed_stage is PipelineStage.FILES_LOADING
        )
        if self.state.repository is None or failed_listing:
            raise PreconditionError("No file list to resume from; restart instead")

        self.state.stage = target
        self.state.error = None
        logger.info(f"Pipeline resumed at {target.value}: session={self.state.session_id}")
        self._send_progress("↩️ Resumed from the file list")
        return self.snapshot()

    async def aclose(self) -> None:
        """Close the GitHub client this orchestrator created, if any."""
        if self._owned_provider is not None:
            await self._owned_provider.aclose()
            logger.debug(f"Provider closed: session={self.state.session_id}")
