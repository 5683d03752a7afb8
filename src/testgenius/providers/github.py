"""
GitHub REST API provider.

Provides:
- Listing the recursive file tree of the default branch
- Fetching raw file content
- Resolving the default branch head
- Creating branches, committing a single file, and opening pull requests

All calls authenticate with the caller's token; the token is never logged.
"""

from __future__ import annotations

import base64
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import SecretStr

from testgenius.config.settings import Settings, get_settings
from testgenius.errors import AuthError, NotFoundError, ProviderError, TransientError
from testgenius.models import FileEntry, FileKind, RepositoryRef
from testgenius.utils.logger import get_logger

from .base import BranchHead

logger = get_logger(__name__)

GITHUB_API_VERSION = "2022-11-28"


def _error_for_response(response: httpx.Response, action: str) -> ProviderError:
    """Map a failed GitHub response onto the provider error taxonomy."""
    status = response.status_code
    try:
        detail = response.json().get("message", "")
    except (ValueError, AttributeError):
        detail = response.text[:200]
    message = f"{action} failed ({status}): {detail}" if detail else f"{action} failed ({status})"

    if status == 401:
        return AuthError(message, status_code=status)
    if status == 403:
        if response.headers.get("x-ratelimit-remaining") == "0" or "rate limit" in detail.lower():
            return TransientError(message, status_code=status)
        return AuthError(message, status_code=status)
    if status == 404:
        return NotFoundError(message, status_code=status)
    if status == 429 or status >= 500:
        return TransientError(message, status_code=status)
    return ProviderError(message, status_code=status)


def _json_body(response: httpx.Response, action: str, *keys: str) -> Any:
    """
    Decode a successful response and walk `keys` into it.

    A body that is not JSON, or lacks one of the keys, raises ProviderError.
    """
    try:
        value = response.json()
    except ValueError as exc:
        raise ProviderError(
            f"{action} returned a body that is not JSON ({response.status_code})",
            status_code=response.status_code,
        ) from exc

    for depth, key in enumerate(keys):
        if not isinstance(value, dict) or key not in value:
            raise ProviderError(
                f"{action} returned an unexpected body: no '{'.'.join(keys[: depth + 1])}'",
                status_code=response.status_code,
            )
        value = value[key]
    return value


class GitHubProvider:
    """
    RepositoryProvider backed by the GitHub REST API.

    Example:
        async with GitHubProvider() as github:
            files = await github.list_files(
                RepositoryRef.parse("acme/widgets"), SecretStr("ghp_xxxxx")
            )
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = httpx.AsyncClient(
            base_url=self.settings.GITHUB_API_URL,
            timeout=self.settings.GITHUB_TIMEOUT_SECONDS,
            transport=transport,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
            },
        )

    async def __aenter__(self) -> GitHubProvider:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ----------------------------------------------------------------
    # HTTP helpers
    # ----------------------------------------------------------------

    async def _request(
        self,
        method: str,
        url: str,
        credential: SecretStr,
        action: str,
        *,
        accept: str | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {credential.get_secret_value()}"}
        if accept:
            headers["Accept"] = accept

        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise TransientError(f"{action} timed out") from exc
        except httpx.HTTPError as exc:
            raise TransientError(f"{action} failed: {exc}") from exc

        if response.is_error:
            error = _error_for_response(response, action)
            logger.warning(f"GitHub {method} {url} -> {response.status_code} ({error.kind.value})")
            raise error
        return response

    @staticmethod
    def _repo_path(repo: RepositoryRef) -> str:
        return f"/repos/{quote(repo.owner, safe='')}/{quote(repo.name, safe='')}"

    # ----------------------------------------------------------------
    # Read operations
    # ----------------------------------------------------------------

    async def _default_branch_name(self, repo: RepositoryRef, credential: SecretStr) -> str:
        response = await self._request(
            "GET", self._repo_path(repo), credential, f"Loading repository {repo}"
        )
        return _json_body(response, f"Loading repository {repo}", "default_branch")

    async def list_files(self, repo: RepositoryRef, credential: SecretStr) -> list[FileEntry]:
        """
        List every blob and tree of the default branch.

        Submodule entries are skipped since they have no content to read.
        """
        branch = await self._default_branch_name(repo, credential)
        response = await self._request(
            "GET",
            f"{self._repo_path(repo)}/git/trees/{quote(branch, safe='')}",
            credential,
            f"Listing files of {repo}",
            params={"recursive": "1"},
        )
        tree = _json_body(response, f"Listing files of {repo}", "tree")
        if response.json().get("truncated"):
            logger.warning(f"File tree of {repo} was truncated by GitHub; listing is partial")

        entries: list[FileEntry] = []
        for item in tree if isinstance(tree, list) else []:
            kind = item.get("type") if isinstance(item, dict) else None
            if kind not in (FileKind.BLOB.value, FileKind.TREE.value) or "path" not in item:
                continue
            entries.append(FileEntry(path=item["path"], kind=FileKind(kind)))

        logger.info(f"Listed {len(entries)} tree entries in {repo}@{branch}")
        return entries

    async def get_content(self, repo: RepositoryRef, credential: SecretStr, path: str) -> str:
        response = await self._request(
            "GET",
            f"{self._repo_path(repo)}/contents/{quote(path)}",
            credential,
            f"Fetching {path}",
            accept="application/vnd.github.raw+json",
        )
        return response.text

    async def get_default_branch(self, repo: RepositoryRef, credential: SecretStr) -> BranchHead:
        branch = await self._default_branch_name(repo, credential)
        response = await self._request(
            "GET",
            f"{self._repo_path(repo)}/git/ref/heads/{quote(branch)}",
            credential,
            f"Resolving head of {branch}",
        )
        sha = _json_body(response, f"Resolving head of {branch}", "object", "sha")
        return BranchHead(name=branch, sha=sha)

    async def _existing_blob_sha(
        self, repo: RepositoryRef, credential: SecretStr, branch_name: str, path: str
    ) -> str | None:
        try:
            response = await self._request(
                "GET",
                f"{self._repo_path(repo)}/contents/{quote(path)}",
                credential,
                f"Looking up {path}",
                params={"ref": branch_name},
            )
        except NotFoundError:
            return None
        data = _json_body(response, f"Looking up {path}")
        return data.get("sha") if isinstance(data, dict) else None

    # ----------------------------------------------------------------
    # Write operations
    # ----------------------------------------------------------------

    async def create_branch(
        self, repo: RepositoryRef, credential: SecretStr, branch_name: str, from_sha: str
    ) -> None:
        await self._request(
            "POST",
            f"{self._repo_path(repo)}/git/refs",
            credential,
            f"Creating branch {branch_name}",
            json={"ref": f"refs/heads/{branch_name}", "sha": from_sha},
        )
        logger.info(f"Branch created: {branch_name} at {from_sha[:7]}")

    async def commit_file(
        self,
        repo: RepositoryRef,
        credential: SecretStr,
        branch_name: str,
        path: str,
        content: str,
        message: str,
    ) -> str:
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch_name,
        }
        existing_sha = await self._existing_blob_sha(repo, credential, branch_name, path)
        if existing_sha:
            body["sha"] = existing_sha

        response = await self._request(
            "PUT",
            f"{self._repo_path(repo)}/contents/{quote(path)}",
            credential,
            f"Committing {path}",
            json=body,
        )
        commit_sha = _json_body(response, f"Committing {path}", "commit", "sha")
        logger.info(
            f"{'Updated' if existing_sha else 'Created'} {path} on {branch_name}: {commit_sha[:7]}"
        )
        return commit_sha

    async def open_pull_request(
        self,
        repo: RepositoryRef,
        credential: SecretStr,
        head: str,
        base: str,
        title: str,
        body: str,
    ) -> str:
        response = await self._request(
            "POST",
            f"{self._repo_path(repo)}/pulls",
            credential,
            "Opening pull request",
            json={"title": title, "head": head, "base": base, "body": body},
        )
        url = _json_body(response, "Opening pull request", "html_url")
        logger.info(f"Pull request opened: {url}")
        return url
