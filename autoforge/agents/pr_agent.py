"""Pull request automation agent backed by the GitHub service and the review bot."""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional

from autoforge.agents.base import Agent, require_fields
from autoforge.config import SimulationConfig
from autoforge.core.errors import InvalidInputError
from autoforge.core.models import AgentCapabilities, AgentType
from autoforge.services.github import CreatePRParams, GitHubService

Result = Dict[str, Any]


class PRAgent(Agent):
    """Creates PRs, requests bot reviews and collects the resulting comments.

    Payload is ``{action, pr_number?, title?, body?, head?, base?, repo?, comments?}``.
    Every action returns ``{success, message}`` plus ``pr``, ``comments`` or
    ``fixes_applied`` where relevant. Repository failures surface as
    :class:`RepositoryError` and become a failed task.
    """

    agent_id = "pr-001"
    name = "PR Automation Agent"
    agent_type = AgentType.REVIEWER
    description = "GitHub PR automation and CodeRabbit review integration"
    capabilities = AgentCapabilities(can_review=True)

    def __init__(self, github: GitHubService, *, simulation: Optional[SimulationConfig] = None) -> None:
        super().__init__(simulation=simulation)
        self.github = github
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[Result]]] = {
            "create-pr": self._create_pr,
            "fetch-comments": self._fetch_comments,
            "trigger-review": self._trigger_review,
            "review-latest-commit": self._review_latest_commit,
            "fix-comments": self._apply_fixes,
            "apply-suggestions": self._apply_fixes,
            "close-pr": self._close_pr,
        }

    @property
    def actions(self) -> List[str]:
        return list(self._handlers)

    async def perform(self, payload: Dict[str, Any]) -> Result:
        require_fields(payload, "action")
        handler = self._handlers.get(payload["action"])
        if handler is None:
            raise InvalidInputError(f"Unknown action: {payload['action']}")
        return await handler(payload)

    @staticmethod
    def _pr_number(payload: Dict[str, Any]) -> int:
        require_fields(payload, "pr_number")
        try:
            return int(payload["pr_number"])
        except (TypeError, ValueError) as exc:
            raise InvalidInputError(f"Invalid PR number: {payload['pr_number']}") from exc

    async def _create_pr(self, payload: Dict[str, Any]) -> Result:
        require_fields(payload, "title", "head")
        pr = await self.github.create_pr(
            CreatePRParams(
                title=payload["title"],
                head=payload["head"],
                body=payload.get("body") or "",
                base=payload.get("base"),
                repo=payload.get("repo"),
            )
        )
        await self.github.trigger_review(pr["number"], payload.get("repo"))
        return {"success": True, "pr": pr, "message": f"PR #{pr['number']} created and review triggered"}

    async def _fetch_comments(self, payload: Dict[str, Any]) -> Result:
        number = self._pr_number(payload)
        comments = await self.github.fetch_review_comments(number, payload.get("repo"))
        return {"success": True, "comments": comments, "message": f"Fetched {len(comments)} review comments"}

    async def _trigger_review(self, payload: Dict[str, Any]) -> Result:
        number = self._pr_number(payload)
        success = await self.github.trigger_review(number, payload.get("repo"))
        message = f"Review triggered for PR #{number}" if success else f"Failed to trigger review for PR #{number}"
        return {"success": success, "message": message}

    async def _review_latest_commit(self, payload: Dict[str, Any]) -> Result:
        prs = await self.github.get_prs("open")
        if not prs:
            return {"success": False, "message": "No open PRs found"}
        latest = prs[0]
        comments = await self.github.fetch_review_comments(latest["number"])
        return {
            "success": True,
            "pr": latest,
            "comments": comments,
            "message": f"Fetched review for latest PR #{latest['number']}",
        }

    async def _apply_fixes(self, payload: Dict[str, Any]) -> Result:
        number = self._pr_number(payload)
        comments = payload.get("comments") or await self.github.fetch_review_comments(number, payload.get("repo"))
        if not comments:
            return {"success": False, "message": "No comments to fix"}

        actionable = [c for c in comments if c.get("suggestion")]
        if not actionable:
            return {
                "success": True,
                "comments": comments,
                "fixes_applied": 0,
                "message": "No suggestions found in comments",
            }
        # Suggestions are reported, not committed; post_commit is the hook for that.
        return {
            "success": True,
            "comments": actionable,
            "fixes_applied": 0,
            "message": f"Found {len(actionable)} comments with suggestions",
        }

    async def _close_pr(self, payload: Dict[str, Any]) -> Result:
        number = self._pr_number(payload)
        success = await self.github.close_pr(number, payload.get("repo"))
        return {"success": success, "message": f"PR #{number} closed" if success else f"Failed to close PR #{number}"}
