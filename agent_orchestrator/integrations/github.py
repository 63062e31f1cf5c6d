"""
GitHub integration: branches, commits and pull requests via the REST API.

Commits use the git data API: one blob per file, a tree on top of the branch's
current tree, a commit with the branch head as parent, then a ref update.
The orchestration pipeline never calls this module directly.
"""

import hashlib
import hmac
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class GitHubError(Exception):
    """Non-2xx response from the GitHub API."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"GitHub API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class CreateBranchRequest(BaseModel):
    repo_owner: str
    repo_name: str
    branch_name: str
    base_branch: str = "main"


class CreateBranchResponse(BaseModel):
    branch_ref: str
    object_sha: str


class FileChange(BaseModel):
    path: str
    content: str
    encoding: str = "utf-8"  # utf-8 or base64


class CreateCommitRequest(BaseModel):
    repo_owner: str
    repo_name: str
    branch_name: str
    message: str
    changes: List[FileChange] = Field(default_factory=list)
    author_name: Optional[str] = None
    author_email: Optional[str] = None


class CreateCommitResponse(BaseModel):
    commit_sha: str
    tree_sha: str


class CreatePullRequestRequest(BaseModel):
    repo_owner: str
    repo_name: str
    title: str
    body: str = ""
    head_branch: str
    base_branch: str = "main"
    draft: bool = False


class CreatePullRequestResponse(BaseModel):
    pr_number: int
    pr_url: str
    html_url: str


def verify_webhook_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Check an X-Hub-Signature-256 header against the raw request body.

    Args:
        payload: Raw request body
        signature: Header value, "sha256=<hexdigest>"
        secret: Webhook secret configured on GitHub

    Returns:
        True if the signature matches
    """
    if not signature or not signature.startswith("sha256="):
        return False
    expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature.split("=", 1)[1])


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return body.get("message") or response.text
    return response.text


class GitHubClient:
    """Async GitHub REST client authenticated with a token."""

    def __init__(
        self,
        token: Optional[str],
        base_url: str = "https://api.github.com",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "agent-orchestrator",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        # Injected clients may be shared; URL and headers go on each request
        self.base_url = base_url.rstrip("/")
        self._headers = headers
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = await self._client.request(method, f"{self.base_url}{path}", json=json, headers=self._headers)
        if response.is_error:
            message = _error_message(response)
            logger.warning(f"GitHub {method} {path} failed with {response.status_code}: {message}")
            raise GitHubError(response.status_code, message or response.reason_phrase)
        return response.json()

    async def get_branch_sha(self, owner: str, repo: str, branch: str) -> str:
        data = await self._request("GET", f"/repos/{owner}/{repo}/git/ref/heads/{branch}")
        return data["object"]["sha"]

    async def create_branch(self, request: CreateBranchRequest) -> CreateBranchResponse:
        """Create a branch pointing at the head of the base branch."""
        base_sha = await self.get_branch_sha(request.repo_owner, request.repo_name, request.base_branch)
        data = await self._request(
            "POST",
            f"/repos/{request.repo_owner}/{request.repo_name}/git/refs",
            json={"ref": f"refs/heads/{request.branch_name}", "sha": base_sha},
        )
        logger.info(f"Created branch {request.branch_name} in {request.repo_owner}/{request.repo_name}")
        return CreateBranchResponse(branch_ref=data["ref"], object_sha=data["object"]["sha"])

    async def create_commit(self, request: CreateCommitRequest) -> CreateCommitResponse:
        """
        Commit file changes on top of a branch and move the branch to the new commit.

        Raises:
            GitHubError: If any API call fails
        """
        repo_path = f"/repos/{request.repo_owner}/{request.repo_name}"

        parent_sha = await self.get_branch_sha(request.repo_owner, request.repo_name, request.branch_name)
        parent = await self._request("GET", f"{repo_path}/git/commits/{parent_sha}")
        base_tree = parent["tree"]["sha"]

        entries = []
        for change in request.changes:
            blob = await self._request(
                "POST",
                f"{repo_path}/git/blobs",
                json={"content": change.content, "encoding": change.encoding},
            )
            entries.append({"path": change.path, "mode": "100644", "type": "blob", "sha": blob["sha"]})

        tree = await self._request("POST", f"{repo_path}/git/trees", json={"base_tree": base_tree, "tree": entries})

        commit_body: Dict[str, Any] = {
            "message": request.message,
            "tree": tree["sha"],
            "parents": [parent_sha],
        }
        if request.author_name and request.author_email:
            commit_body["author"] = {"name": request.author_name, "email": request.author_email}
        commit = await self._request("POST", f"{repo_path}/git/commits", json=commit_body)

        await self._request(
            "PATCH",
            f"{repo_path}/git/refs/heads/{request.branch_name}",
            json={"sha": commit["sha"]},
        )
        logger.info(f"Committed {len(entries)} files to {request.branch_name}: {commit['sha']}")
        return CreateCommitResponse(commit_sha=commit["sha"], tree_sha=tree["sha"])

    async def create_pull_request(self, request: CreatePullRequestRequest) -> CreatePullRequestResponse:
        data = await self._request(
            "POST",
            f"/repos/{request.repo_owner}/{request.repo_name}/pulls",
            json={
                "title": request.title,
                "body": request.body,
                "head": request.head_branch,
                "base": request.base_branch,
                "draft": request.draft,
            },
        )
        logger.info(f"Opened pull request #{data['number']} in {request.repo_owner}/{request.repo_name}")
        return CreatePullRequestResponse(pr_number=data["number"], pr_url=data["url"], html_url=data["html_url"])
