"""
Shared fixtures: an in-memory repository provider and a scripted model.

Neither fixture touches the network, so the whole suite runs offline.
"""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import SecretStr
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    ToolCallPart,
    UserPromptPart,
)
from pydantic_ai.models.function import AgentInfo, FunctionModel

from testgenius.config.settings import Settings
from testgenius.dependencies import OrchestratorDependencies
from testgenius.errors import NotFoundError
from testgenius.llm import PydanticAIAdapter
from testgenius.models import FileEntry, FileKind, RepositoryRef
from testgenius.orchestrator import PipelineOrchestrator
from testgenius.providers import BranchHead

WIDGET_SOURCE = """export class Widget {
  constructor(public width = 10, public height = 10) {}
  update(width: number, height: number) {
    this.width = width;
    this.height = height;
  }
}
"""

WIDGET_TEST = """import { Widget } from "./Widget";

describe("Widget", () => {
  it("resizes on update", () => {
    const widget = new Widget();
    widget.update(20, 30);
    expect(widget.width).toBe(20);
  });
});
"""


class FakeProvider:
    """
    RepositoryProvider holding one repository in memory.

    `failures` maps a method name to the error that method raises.
    """

    def __init__(self, files: dict[str, str] | None = None, default_branch: str = "main"):
        self.files = dict(files or {})
        self.default_branch = default_branch
        self.head_sha = "a1b2c3d4e5f6a7b8c9d0"
        self.failures: dict[str, Exception] = {}
        self.missing_paths: set[str] = set()
        self.calls: list[tuple[str, Any]] = []
        self.branches: dict[str, str] = {}
        self.commits: list[dict[str, str]] = []
        self.pull_requests: list[dict[str, str]] = []

    def _record(self, method: str, detail: Any = None) -> None:
        self.calls.append((method, detail))
        if method in self.failures:
            raise self.failures[method]

    def calls_to(self, method: str) -> list[Any]:
        return [detail for name, detail in self.calls if name == method]

    def _entries(self) -> list[FileEntry]:
        entries: list[FileEntry] = []
        directories: set[str] = set()
        for path in self.files:
            parent = path.rsplit("/", 1)[0] if "/" in path else ""
            if parent and parent not in directories:
                directories.add(parent)
                entries.append(FileEntry(path=parent, kind=FileKind.TREE))
            entries.append(FileEntry(path=path, kind=FileKind.BLOB))
        return entries

    async def list_files(self, repo: RepositoryRef, credential: SecretStr) -> list[FileEntry]:
        self._record("list_files", repo.full_name)
        return self._entries()

    async def get_content(self, repo: RepositoryRef, credential: SecretStr, path: str) -> str:
        self._record("get_content", path)
        if path in self.missing_paths or path not in self.files:
            raise NotFoundError(f"Fetching {path} failed (404): Not Found", status_code=404)
        return self.files[path]

    async def get_default_branch(self, repo: RepositoryRef, credential: SecretStr) -> BranchHead:
        self._record("get_default_branch", repo.full_name)
        return BranchHead(name=self.default_branch, sha=self.head_sha)

    async def create_branch(
        self, repo: RepositoryRef, credential: SecretStr, branch_name: str, from_sha: str
    ) -> None:
        self._record("create_branch", branch_name)
        self.branches[branch_name] = from_sha

    async def commit_file(
        self,
        repo: RepositoryRef,
        credential: SecretStr,
        branch_name: str,
        path: str,
        content: str,
        message: str,
    ) -> str:
        self._record("commit_file", path)
        self.commits.append(
            {"branch": branch_name, "path": path, "content": content, "message": message}
        )
        return f"c0ffee{len(self.commits):034d}"

    async def open_pull_request(
        self,
        repo: RepositoryRef,
        credential: SecretStr,
        head: str,
        base: str,
        title: str,
        body: str,
    ) -> str:
        self._record("open_pull_request", head)
        self.pull_requests.append({"head": head, "base": base, "title": title, "body": body})
        return f"https://github.com/{repo.full_name}/pull/{len(self.pull_requests)}"


class ScriptedModel:
    """
    FunctionModel answering both model calls from canned outputs.

    The output tool's schema tells the summary call apart from the code call.
    Setting `summary_error` / `code_error` makes that call raise instead.
    """

    def __init__(self, summaries: list[str], test_code: str = WIDGET_TEST):
        self.summaries = summaries
        self.test_code = test_code
        self.summary_error: Exception | None = None
        self.code_error: Exception | None = None
        self.summary_prompts: list[str] = []
        self.code_prompts: list[str] = []
        self.model = FunctionModel(self._respond, model_name="scripted")

    @property
    def calls(self) -> int:
        return len(self.summary_prompts) + len(self.code_prompts)

    @staticmethod
    def _prompt_text(messages: list[ModelMessage]) -> str:
        texts = [
            part.content
            for message in messages
            if isinstance(message, ModelRequest)
            for part in message.parts
            if isinstance(part, UserPromptPart) and isinstance(part.content, str)
        ]
        return "\n".join(texts)

    def _respond(self, messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        tool = info.output_tools[0]
        properties = tool.parameters_json_schema.get("properties", {})

        if "test_case_summaries" in properties:
            self.summary_prompts.append(self._prompt_text(messages))
            if self.summary_error:
                raise self.summary_error
            args: dict[str, Any] = {"test_case_summaries": self.summaries}
        else:
            self.code_prompts.append(self._prompt_text(messages))
            if self.code_error:
                raise self.code_error
            args = {"test_code": self.test_code}

        return ModelResponse(parts=[ToolCallPart(tool_name=tool.name, args=args)])


@pytest.fixture
def settings() -> Settings:
    return Settings(
        GOOGLE_API_KEY="",
        DEFAULT_TEST_EXTENSION="java",
        BRANCH_PREFIX="testgenius",
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(
        {
            "README.md": "# widgets\n",
            "src/Widget.ts": WIDGET_SOURCE,
            "src/widget.css": ".widget {}\n",
            "src/Gadget.java": "public class Gadget {}\n",
        }
    )


@pytest.fixture
def scripted_model() -> ScriptedModel:
    return ScriptedModel(["constructs with default size", "resizes on update"])


@pytest.fixture
def adapter(scripted_model: ScriptedModel) -> PydanticAIAdapter:
    return PydanticAIAdapter(model=scripted_model.model)


@pytest.fixture
def progress_messages() -> list[str]:
    return []


@pytest.fixture
def orchestrator(
    provider: FakeProvider,
    adapter: PydanticAIAdapter,
    settings: Settings,
    progress_messages: list[str],
) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        OrchestratorDependencies(
            session_id="session_test",
            provider=provider,
            adapter=adapter,
            settings=settings,
            send_message=progress_messages.append,
        )
    )


@pytest.fixture
def repo() -> RepositoryRef:
    return RepositoryRef(owner="acme", name="widgets")


@pytest.fixture
def credential() -> SecretStr:
    return SecretStr("ghp_test_token_1234")
