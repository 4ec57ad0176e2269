"""GitHub REST client against a mocked API."""
from __future__ import annotations

import json
from typing import AsyncIterator, Iterator

import httpx
import pytest
import respx

from autoforge.config import GitHubConfig
from autoforge.core.errors import InvalidInputError, RepositoryError
from autoforge.services.github import (
    CreatePRParams,
    FileChange,
    GitHubService,
    detect_severity,
    extract_suggestion,
)

API = "https://api.github.com"
REPO = "/repos/acme/widgets"

PR = {
    "number": 42,
    "title": "Add widgets",
    "body": None,
    "state": "open",
    "html_url": "https://github.com/acme/widgets/pull/42",
    "head": {"ref": "feature/widgets", "sha": "abc123"},
    "base": {"ref": "main"},
    "created_at": "2024-01-01T00:00:00Z",
    "updated_at": "2024-01-02T00:00:00Z",
}


@pytest.fixture
def github_api() -> Iterator[respx.MockRouter]:
    with respx.mock(base_url=API, assert_all_called=False) as router:
        yield router


@pytest.fixture
async def github() -> AsyncIterator[GitHubService]:
    service = GitHubService(GitHubConfig(token="test-token", owner="acme", repo="widgets", api_url=API))
    yield service
    await service.aclose()


def test_extract_suggestion_prefers_code_block() -> None:
    body = "Suggestion: use a constant\n```ts\nconst LIMIT = 10;\n```"
    assert extract_suggestion(body) == "```ts\nconst LIMIT = 10;\n```"
    assert extract_suggestion("Recommendation: add a test") == "add a test"
    assert extract_suggestion("Nice work") is None


def test_detect_severity() -> None:
    assert detect_severity("Critical: SQL injection") == "error"
    assert detect_severity("Consider renaming this") == "warning"
    assert detect_severity("Nice work") == "info"


@pytest.mark.anyio
async def test_create_pr_sends_auth_and_defaults_base(github_api: respx.MockRouter, github: GitHubService) -> None:
    route = github_api.post(f"{REPO}/pulls").mock(return_value=httpx.Response(201, json=PR))

    pr = await github.create_pr(CreatePRParams(title="Add widgets", head="feature/widgets"))

    request = route.calls.last.request
    assert request.headers["Authorization"] == "token test-token"
    assert json.loads(request.content) == {
        "title": "Add widgets",
        "body": "",
        "head": "feature/widgets",
        "base": "main",
    }
    assert pr["number"] == 42
    assert pr["body"] == ""
    assert pr["head"] == {"ref": "feature/widgets", "sha": "abc123"}


@pytest.mark.anyio
async def test_create_pr_failure_raises_descriptive_error(
    github_api: respx.MockRouter, github: GitHubService
) -> None:
    github_api.post(f"{REPO}/pulls").mock(return_value=httpx.Response(422, json={"message": "Validation Failed"}))

    with pytest.raises(RepositoryError, match="Failed to create PR: HTTP 422: Validation Failed"):
        await github.create_pr(CreatePRParams(title="Add widgets", head="feature/widgets"))


@pytest.mark.anyio
async def test_get_prs_validates_state(github: GitHubService) -> None:
    with pytest.raises(InvalidInputError):
        await github.get_prs("merged")


@pytest.mark.anyio
async def test_get_prs_lists_pull_requests(github_api: respx.MockRouter, github: GitHubService) -> None:
    route = github_api.get(f"{REPO}/pulls").mock(return_value=httpx.Response(200, json=[PR]))

    prs = await github.get_prs("all")

    assert [pr["number"] for pr in prs] == [42]
    assert route.calls.last.request.url.params["state"] == "all"


@pytest.mark.anyio
async def test_fetch_review_comments_keeps_bot_comments(github_api: respx.MockRouter, github: GitHubService) -> None:
    github_api.get(f"{REPO}/pulls/42/comments").mock(
        return_value=httpx.Response(
            200,
            json=[
                {
                    "id": 1,
                    "path": "src/app.ts",
                    "line": 10,
                    "body": "Consider a guard clause.\n```ts\nif (!x) return;\n```",
                    "user": {"login": "coderabbitai[bot]"},
                },
                {"id": 2, "path": "src/app.ts", "line": 11, "body": "lgtm", "user": {"login": "alice"}},
            ],
        )
    )
    github_api.get(f"{REPO}/issues/42/comments").mock(
        return_value=httpx.Response(
            200,
            json=[{"id": 3, "body": "Security issue flagged by CodeRabbit", "user": {"login": "coderabbitai[bot]"}}],
        )
    )

    comments = await github.fetch_review_comments(42)

    assert [c["id"] for c in comments] == ["1", "issue-3"]
    assert comments[0]["suggestion"] == "```ts\nif (!x) return;\n```"
    assert comments[0]["severity"] == "warning"
    assert comments[1]["path"] == ""
    assert comments[1]["severity"] == "error"


@pytest.mark.anyio
async def test_trigger_review_posts_command(github_api: respx.MockRouter, github: GitHubService) -> None:
    route = github_api.post(f"{REPO}/issues/42/comments").mock(return_value=httpx.Response(201, json={}))

    assert await github.trigger_review(42) is True
    assert json.loads(route.calls.last.request.content) == {"body": "/review"}


@pytest.mark.anyio
async def test_trigger_review_targets_given_repository(github_api: respx.MockRouter, github: GitHubService) -> None:
    other = github_api.post("/repos/acme/gadgets/issues/42/comments").mock(return_value=httpx.Response(201, json={}))
    default = github_api.post(f"{REPO}/issues/42/comments").mock(return_value=httpx.Response(201, json={}))

    assert await github.trigger_review(42, "acme/gadgets") is True
    assert other.called
    assert not default.called


@pytest.mark.anyio
async def test_close_pr_returns_false_on_error(github_api: respx.MockRouter, github: GitHubService) -> None:
    github_api.patch(f"{REPO}/pulls/42").mock(return_value=httpx.Response(404, json={"message": "Not Found"}))

    assert await github.close_pr(42) is False


@pytest.mark.anyio
async def test_post_commit_updates_branch_ref(github_api: respx.MockRouter, github: GitHubService) -> None:
    github_api.get(f"{REPO}/pulls/42").mock(return_value=httpx.Response(200, json=PR))
    github_api.post(f"{REPO}/git/blobs").mock(return_value=httpx.Response(201, json={"sha": "blob1"}))
    tree = github_api.post(f"{REPO}/git/trees").mock(return_value=httpx.Response(201, json={"sha": "tree1"}))
    github_api.post(f"{REPO}/git/commits").mock(return_value=httpx.Response(201, json={"sha": "commit1"}))
    ref = github_api.patch(f"{REPO}/git/refs/heads/feature/widgets").mock(return_value=httpx.Response(200, json={}))

    ok = await github.post_commit(42, "Apply review fixes", [FileChange(path="src/app.ts", content="x")])

    assert ok is True
    assert json.loads(tree.calls.last.request.content)["base_tree"] == "abc123"
    assert json.loads(ref.calls.last.request.content) == {"sha": "commit1"}


@pytest.mark.anyio
async def test_check_status_reports_repository_access(github_api: respx.MockRouter, github: GitHubService) -> None:
    github_api.get("/user").mock(return_value=httpx.Response(200, json={"login": "bot"}))
    github_api.get(REPO).mock(return_value=httpx.Response(404, json={"message": "Not Found"}))

    status = await github.check_status()

    assert status["github"] is False
    assert "Check GITHUB_TOKEN" in status["message"]
