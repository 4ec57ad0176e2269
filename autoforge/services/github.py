"""GitHub REST client for pull request automation and bot review comments."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

from autoforge.config import GitHubConfig
from autoforge.core.errors import InvalidInputError, RepositoryError
from autoforge.logging import get_logger

logger = get_logger(__name__)

PR_STATES = ("open", "closed", "all")

_CODE_BLOCK = re.compile(r"```[\s\S]*?```")
_SUGGESTION_LINE = re.compile(r"(?:suggestion|recommendation):\s*(.+)", re.IGNORECASE)


@dataclass(slots=True)
class CreatePRParams:
    title: str
    head: str
    body: str = ""
    base: Optional[str] = None
    repo: Optional[str] = None  # "owner/name"; defaults to the configured repository


@dataclass(slots=True)
class FileChange:
    path: str
    content: str
    mode: str = "100644"


def extract_suggestion(body: str) -> Optional[str]:
    """First fenced code block, else the text after ``suggestion:``/``recommendation:``."""
    block = _CODE_BLOCK.search(body)
    if block:
        return block.group(0)
    line = _SUGGESTION_LINE.search(body)
    if line:
        return line.group(1)
    return None


def detect_severity(body: str) -> str:
    text = body.lower()
    if any(word in text for word in ("error", "critical", "security")):
        return "error"
    if any(word in text for word in ("warning", "consider", "suggest")):
        return "warning"
    return "info"


def _pull_request(data: Dict[str, Any]) -> Dict[str, Any]:
    head = data.get("head") or {}
    base = data.get("base") or {}
    return {
        "number": data["number"],
        "title": data.get("title", ""),
        "body": data.get("body") or "",
        "state": data.get("state", "open"),
        "html_url": data.get("html_url", ""),
        "head": {"ref": head.get("ref", ""), "sha": head.get("sha", "")},
        "base": {"ref": base.get("ref", "")},
        "created_at": data.get("created_at"),
        "updated_at": data.get("updated_at"),
    }


def _describe(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            detail = exc.response.json().get("message")
        except ValueError:
            detail = None
        return f"HTTP {exc.response.status_code}" + (f": {detail}" if detail else "")
    return str(exc) or exc.__class__.__name__


class GitHubService:
    """Thin async wrapper over the pull request endpoints of the GitHub REST API."""

    def __init__(self, config: Optional[GitHubConfig] = None, client: Optional[httpx.AsyncClient] = None) -> None:
        self.config = config or GitHubConfig()
        self._client = client
        if not self.config.token:
            logger.warning("github_token_missing")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "Accept": "application/vnd.github+json",
                "User-Agent": "autoforge-pr-automation",
            }
            if self.config.token:
                headers["Authorization"] = f"token {self.config.token}"
            self._client = httpx.AsyncClient(
                base_url=self.config.api_url,
                headers=headers,
                timeout=self.config.timeout,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _repo_path(self, repo: Optional[str] = None) -> str:
        return f"/repos/{repo or self.config.full_name}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = await self._get_client().request(method, path, **kwargs)
        response.raise_for_status()
        return response

    def _is_bot(self, comment: Dict[str, Any]) -> bool:
        bot = self.config.review_bot.lower()
        login = str((comment.get("user") or {}).get("login", "")).lower()
        body = str(comment.get("body") or "").lower()
        return bot in login or bot in body

    async def check_status(self) -> Dict[str, Any]:
        try:
            await self._request("GET", "/user")
        except httpx.HTTPError as exc:
            logger.error("github_status_failed", error=_describe(exc))
            return {"github": False, "review_bot": False, "message": _describe(exc)}
        try:
            await self._request("GET", self._repo_path())
            repo_access = True
        except httpx.HTTPError:
            repo_access = False
        return {
            "github": repo_access,
            "review_bot": repo_access,
            "message": (
                "GitHub and review bot are connected"
                if repo_access
                else "GitHub connection failed. Check GITHUB_TOKEN and repository access."
            ),
        }

    async def create_pr(self, params: CreatePRParams) -> Dict[str, Any]:
        base = params.base or self.config.base_branch
        logger.info("github_create_pr", title=params.title, head=params.head, base=base)
        try:
            response = await self._request(
                "POST",
                f"{self._repo_path(params.repo)}/pulls",
                json={"title": params.title, "body": params.body, "head": params.head, "base": base},
            )
        except httpx.HTTPError as exc:
            logger.error("github_create_pr_failed", error=_describe(exc))
            raise RepositoryError(f"Failed to create PR: {_describe(exc)}") from exc
        pr = _pull_request(response.json())
        logger.info("github_pr_created", number=pr["number"], url=pr["html_url"])
        return pr

    async def get_prs(self, state: str = "open") -> List[Dict[str, Any]]:
        if state not in PR_STATES:
            raise InvalidInputError(f"Invalid PR state: {state}")
        try:
            response = await self._request(
                "GET",
                f"{self._repo_path()}/pulls",
                params={"state": state, "sort": "updated", "direction": "desc"},
            )
        except httpx.HTTPError as exc:
            logger.error("github_list_prs_failed", error=_describe(exc))
            raise RepositoryError(f"Failed to fetch PRs: {_describe(exc)}") from exc
        return [_pull_request(item) for item in response.json()]

    async def get_pr(self, number: int) -> Dict[str, Any]:
        try:
            response = await self._request("GET", f"{self._repo_path()}/pulls/{number}")
        except httpx.HTTPError as exc:
            logger.error("github_get_pr_failed", number=number, error=_describe(exc))
            raise RepositoryError(f"Failed to fetch PR #{number}: {_describe(exc)}") from exc
        return _pull_request(response.json())

    async def trigger_review(self, number: int, repo: Optional[str] = None) -> bool:
        """Ask the review bot for a fresh review by commenting on the PR."""
        try:
            await self._request(
                "POST",
                f"{self._repo_path(repo)}/issues/{number}/comments",
                json={"body": self.config.review_command},
            )
        except httpx.HTTPError as exc:
            logger.error("github_trigger_review_failed", number=number, error=_describe(exc))
            return False
        logger.info("github_review_triggered", number=number)
        return True

    async def fetch_review_comments(self, number: int, repo: Optional[str] = None) -> List[Dict[str, Any]]:
        """Review-bot comments from both the diff and the PR conversation."""
        try:
            review = await self._request("GET", f"{self._repo_path(repo)}/pulls/{number}/comments")
            issue = await self._request("GET", f"{self._repo_path(repo)}/issues/{number}/comments")
        except httpx.HTTPError as exc:
            logger.error("github_fetch_comments_failed", number=number, error=_describe(exc))
            raise RepositoryError(f"Failed to fetch review comments: {_describe(exc)}") from exc

        comments: List[Dict[str, Any]] = []
        for item in review.json():
            if not self._is_bot(item):
                continue
            body = item.get("body") or ""
            comments.append({
                "id": str(item["id"]),
                "path": item.get("path", ""),
                "line": item.get("line") or 0,
                "body": body,
                "side": item.get("side") or "RIGHT",
                "start_line": item.get("start_line"),
                "user": item.get("user"),
                "created_at": item.get("created_at"),
                "suggestion": extract_suggestion(body),
                "severity": detect_severity(body),
            })
        for item in issue.json():
            if not self._is_bot(item):
                continue
            body = item.get("body") or ""
            comments.append({
                "id": f"issue-{item['id']}",
                "path": "",
                "line": 0,
                "body": body,
                "side": "RIGHT",
                "start_line": None,
                "user": item.get("user"),
                "created_at": item.get("created_at"),
                "suggestion": extract_suggestion(body),
                "severity": detect_severity(body),
            })
        logger.info("github_comments_fetched", number=number, count=len(comments))
        return comments

    async def close_pr(self, number: int, repo: Optional[str] = None) -> bool:
        try:
            await self._request("PATCH", f"{self._repo_path(repo)}/pulls/{number}", json={"state": "closed"})
        except httpx.HTTPError as exc:
            logger.error("github_close_pr_failed", number=number, error=_describe(exc))
            return False
        logger.info("github_pr_closed", number=number)
        return True

    async def post_commit(self, number: int, message: str, changes: Sequence[FileChange]) -> bool:
        """Commit ``changes`` on top of the PR head through the git data API."""
        repo = self._repo_path()
        try:
            pr = await self.get_pr(number)
            branch, head_sha = pr["head"]["ref"], pr["head"]["sha"]
            tree = []
            for change in changes:
                blob = await self._request(
                    "POST", f"{repo}/git/blobs", json={"content": change.content, "encoding": "utf-8"}
                )
                tree.append({"path": change.path, "mode": change.mode, "type": "blob", "sha": blob.json()["sha"]})
            new_tree = await self._request("POST", f"{repo}/git/trees", json={"base_tree": head_sha, "tree": tree})
            commit = await self._request(
                "POST",
                f"{repo}/git/commits",
                json={"message": message, "tree": new_tree.json()["sha"], "parents": [head_sha]},
            )
            await self._request("PATCH", f"{repo}/git/refs/heads/{branch}", json={"sha": commit.json()["sha"]})
        except (httpx.HTTPError, RepositoryError) as exc:
            logger.error("github_post_commit_failed", number=number, error=str(exc))
            return False
        logger.info("github_commit_posted", number=number, message=message)
        return True
