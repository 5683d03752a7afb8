"""
Tests for the stage handlers and their helpers.
"""

from datetime import datetime, timezone

import pytest
from pydantic import SecretStr

from testgenius.errors import (
    AuthError,
    FetchError,
    NotFoundError,
    PublishError,
    TransientError,
    ValidationError,
)
from testgenius.llm import PydanticAIAdapter
from testgenius.models import GenerationRequest, PublishRequest, RepositoryRef
from testgenius.orchestrator import (
    CodeGenerator,
    FileLister,
    Publisher,
    SummaryGenerator,
    derive_test_filename,
    fetch_code_files,
    make_branch_name,
)

from .conftest import FakeProvider, ScriptedModel

SOURCE_EXTENSIONS = [".java", ".js", ".py", ".ts", ".tsx"]


class TestDeriveTestFilename:
    def test_java_default(self):
        """No context extension at all falls back to the default."""
        assert derive_test_filename("Calculator", [], "java") == "CalculatorTest.java"

    def test_matching_context_file_wins(self):
        paths = ["src/helpers.py", "src/other.py", "src/Widget.ts"]
        assert derive_test_filename("Widget", paths, "java") == "WidgetTest.ts"

    def test_most_common_extension(self):
        paths = ["src/a.ts", "src/b.ts", "src/c.js"]
        assert derive_test_filename("Store", paths, "java") == "StoreTest.ts"

    def test_default_extension_may_have_dot(self):
        assert derive_test_filename("Calculator", [], ".py") == "CalculatorTest.py"


class TestMakeBranchName:
    def test_shape(self):
        now = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        name = make_branch_name("src/WidgetTest.ts", "testgenius", now)

        prefix, rest = name.split("/", 1)
        assert prefix == "testgenius"
        assert rest.startswith("widgettest-ts-20240102T030405Z-")
        assert rest.rsplit("-", 1)[1].isdigit()

    def test_unique_within_same_second(self):
        now = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        names = {make_branch_name("WidgetTest.ts", "testgenius", now) for _ in range(5)}

        assert len(names) == 5


class TestFetchCodeFiles:
    @pytest.mark.asyncio
    async def test_sorted_by_path(self, provider: FakeProvider, repo: RepositoryRef, credential):
        files = await fetch_code_files(
            provider, repo, credential, ["src/Widget.ts", "src/Gadget.java"]
        )

        assert [f.name for f in files] == ["src/Gadget.java", "src/Widget.ts"]

    @pytest.mark.asyncio
    async def test_first_failure_aborts(self, provider: FakeProvider, repo, credential):
        provider.missing_paths.add("src/Gadget.java")

        with pytest.raises(FetchError) as exc_info:
            await fetch_code_files(provider, repo, credential, ["src/Widget.ts", "src/Gadget.java"])

        assert exc_info.value.path == "src/Gadget.java"
        assert isinstance(exc_info.value.__cause__, NotFoundError)
        assert provider.calls_to("get_content") == ["src/Gadget.java"]


class TestFileLister:
    @pytest.mark.asyncio
    async def test_filters_to_source_blobs(self, provider: FakeProvider, repo, credential):
        files = await FileLister(provider, SOURCE_EXTENSIONS).list_source_files(repo, credential)

        assert [f.path for f in files] == ["src/Widget.ts", "src/Gadget.java"]

    @pytest.mark.asyncio
    async def test_empty_credential(self, provider: FakeProvider, repo):
        with pytest.raises(ValidationError):
            await FileLister(provider, SOURCE_EXTENSIONS).list_source_files(repo, SecretStr(""))
        assert provider.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [AuthError("bad"), NotFoundError("gone"), TransientError("x")])
    async def test_provider_errors_pass_through(self, provider: FakeProvider, repo, credential, error):
        provider.failures["list_files"] = error

        with pytest.raises(type(error)):
            await FileLister(provider, SOURCE_EXTENSIONS).list_source_files(repo, credential)


class TestSummaryGenerator:
    @pytest.mark.asyncio
    async def test_single_model_call_for_all_files(
        self, provider: FakeProvider, scripted_model: ScriptedModel, adapter, repo, credential
    ):
        summaries, metadata = await SummaryGenerator(provider, adapter).generate_summaries(
            repo, credential, {"src/Widget.ts", "src/Gadget.java"}
        )

        assert summaries == ["constructs with default size", "resizes on update"]
        assert scripted_model.calls == 1
        assert "src/Gadget.java" in scripted_model.summary_prompts[0]
        assert "src/Widget.ts" in scripted_model.summary_prompts[0]
        assert metadata.input_files == ["src/Gadget.java", "src/Widget.ts"]

    @pytest.mark.asyncio
    async def test_fetch_failure_skips_model(
        self, provider: FakeProvider, scripted_model: ScriptedModel, adapter, repo, credential
    ):
        provider.missing_paths.add("src/Widget.ts")

        with pytest.raises(FetchError):
            await SummaryGenerator(provider, adapter).generate_summaries(
                repo, credential, {"src/Widget.ts"}
            )
        assert scripted_model.calls == 0

    @pytest.mark.asyncio
    async def test_empty_selection(self, provider: FakeProvider, adapter, repo, credential):
        with pytest.raises(ValidationError):
            await SummaryGenerator(provider, adapter).generate_summaries(repo, credential, set())
        assert provider.calls == []


class TestCodeGenerator:
    summaries = ["constructs with default size", "resizes on update"]

    @pytest.mark.asyncio
    async def test_derives_filename(
        self, provider: FakeProvider, scripted_model: ScriptedModel, adapter, repo, credential
    ):
        request = GenerationRequest(
            context_files=["src/Widget.ts"], chosen_summary="resizes on update", class_name="Widget"
        )
        artifact = await CodeGenerator(provider, adapter).generate_code(
            repo, credential, request, self.summaries
        )

        assert artifact.suggested_filename == "WidgetTest.ts"
        assert artifact.class_name == "Widget"
        assert artifact.test_case_summary == "resizes on update"
        assert artifact.metadata is not None
        assert "Class Name:\nWidget" in scripted_model.code_prompts[0]

    @pytest.mark.asyncio
    async def test_keeps_existing_filename(self, provider: FakeProvider, adapter, repo, credential):
        request = GenerationRequest(
            context_files=["src/Widget.ts"], chosen_summary="resizes on update", class_name="Widget"
        )
        artifact = await CodeGenerator(provider, adapter).generate_code(
            repo, credential, request, self.summaries, filename="tests/widget.spec.ts"
        )

        assert artifact.suggested_filename == "tests/widget.spec.ts"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "summary,class_name",
        [("resizes on update", ""), ("resizes on update", "   "), ("not generated", "Widget")],
    )
    async def test_invalid_request_makes_no_remote_call(
        self,
        provider: FakeProvider,
        scripted_model: ScriptedModel,
        adapter: PydanticAIAdapter,
        repo,
        credential,
        summary: str,
        class_name: str,
    ):
        request = GenerationRequest(
            context_files=["src/Widget.ts"], chosen_summary=summary, class_name=class_name
        )

        with pytest.raises(ValidationError):
            await CodeGenerator(provider, adapter).generate_code(
                repo, credential, request, self.summaries
            )
        assert scripted_model.calls == 0
        assert provider.calls == []


class TestPublisher:
    def request(self) -> PublishRequest:
        return PublishRequest(
            filename="WidgetTest.ts",
            content="it()\n",
            commit_message="Feat: Add test case for Widget",
            body="body",
        )

    @pytest.mark.asyncio
    async def test_steps_in_order(self, provider: FakeProvider, repo, credential):
        result = await Publisher(provider).publish(repo, credential, self.request())

        assert [name for name, _ in provider.calls] == [
            "get_default_branch",
            "create_branch",
            "commit_file",
            "open_pull_request",
        ]
        assert result.pull_request_url == "https://github.com/acme/widgets/pull/1"
        assert provider.branches[result.branch_name] == provider.head_sha
        assert provider.commits[0]["branch"] == result.branch_name
        assert provider.pull_requests[0]["base"] == "main"
        assert provider.pull_requests[0]["title"] == "Feat: Add test case for Widget"

    @pytest.mark.asyncio
    async def test_repeated_publish_uses_new_branch(self, provider: FakeProvider, repo, credential):
        first = await Publisher(provider).publish(repo, credential, self.request())
        second = await Publisher(provider).publish(repo, credential, self.request())

        assert first.branch_name != second.branch_name

    @pytest.mark.asyncio
    async def test_failure_before_branch(self, provider: FakeProvider, repo, credential):
        provider.failures["get_default_branch"] = AuthError("Bad credentials", status_code=401)

        with pytest.raises(PublishError) as exc_info:
            await Publisher(provider).publish(repo, credential, self.request())

        assert exc_info.value.branch_name is None
        assert "before any branch was created" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_commit_failure_names_branch(self, provider: FakeProvider, repo, credential):
        provider.failures["commit_file"] = TransientError("Committing failed (502)", status_code=502)

        with pytest.raises(PublishError) as exc_info:
            await Publisher(provider).publish(repo, credential, self.request())

        error = exc_info.value
        created = next(iter(provider.branches))
        assert error.branch_name == created
        assert created in error.message
        assert provider.pull_requests == []
        assert any("created branch" in step for step in error.completed_steps)

    @pytest.mark.asyncio
    async def test_invalid_request_makes_no_call(self, provider: FakeProvider, repo, credential):
        request = PublishRequest(filename="", content="it()", commit_message="msg")

        with pytest.raises(ValidationError):
            await Publisher(provider).publish(repo, credential, request)
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_non_provider_failure_after_branch(
        self, provider: FakeProvider, repo, credential
    ):
        provider.failures["commit_file"] = ValueError("Expecting value: line 1 column 1")

        with pytest.raises(PublishError) as exc_info:
            await Publisher(provider).publish(repo, credential, self.request())

        error = exc_info.value
        created = next(iter(provider.branches))
        assert error.branch_name == created
        assert f"after branch '{created}' was created" in error.message
        assert "ValueError: Expecting value" in error.message
        assert isinstance(error.__cause__, ValueError)
