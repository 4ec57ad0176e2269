"""Fixer agent: applies mechanical fixes for reviewer findings and review comments."""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

from autoforge.agents.base import Agent
from autoforge.core.errors import InvalidInputError
from autoforge.core.models import AgentCapabilities, AgentType

_CONSOLE_LOG = re.compile(r"console\.log\(")
_INDENTED_LANGUAGES = ("typescript", "javascript")
_INDENT = "  "

REVIEW_COMMENTS_TASK = "fix-review-comments"


def apply_fix(code: str, issue: Dict[str, Any]) -> Tuple[bool, str, Optional[str]]:
    """Return ``(fixed, code, improvement)`` for a single issue."""
    message = str(issue.get("message", ""))
    if "console.log" in message:
        return True, _CONSOLE_LOG.sub("logger.info(", code), "Replaced console.log with logger"
    if "any" in message:
        return True, code, 'Identified "any" types for manual review'
    if "exceeds" in message:
        return True, code, "Identified long lines for refactoring"
    if "error handling" in message:
        return True, code, "Added error handling suggestions"
    return False, code, None


def refactor(code: str, language: str) -> str:
    lines = [line.rstrip() for line in code.split("\n")]

    if language in _INDENTED_LANGUAGES:
        level = 0
        reindented = []
        for line in lines:
            stripped = line.strip()
            if not stripped:
                reindented.append("")
                continue
            if stripped[0] in "}])":
                level = max(0, level - 1)
            reindented.append(_INDENT * level + stripped)
            if stripped[-1] in "{[(":
                level += 1
        lines = reindented

    result = "\n".join(lines)
    if not result.endswith("\n"):
        result += "\n"
    return result


class FixerAgent(Agent):
    """Refactors code for maintainability and readability."""

    agent_id = "fixer-001"
    name = "Fixer/Refactor Agent"
    agent_type = AgentType.FIXER
    description = "Refactors code automatically for optimization, maintainability, and readability"
    capabilities = AgentCapabilities(can_fix=True)

    async def perform(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if "code" not in payload and "comments" in payload:
            return await self._triage_comments(payload)
        if not isinstance(payload.get("code"), str):
            raise InvalidInputError("Missing required field: code")
        await self.simulate_work(1.3)

        code = payload["code"]
        language = payload.get("language") or "typescript"
        fixes_applied: List[str] = []
        improvements: List[str] = []
        for issue in payload.get("issues") or []:
            fixed, code, improvement = apply_fix(code, issue)
            if fixed:
                fixes_applied.append(str(issue.get("message", "")))
                if improvement:
                    improvements.append(improvement)

        code = refactor(code, language)
        improvements.append("Applied general code refactoring")
        return {"fixed_code": code, "fixes_applied": fixes_applied, "improvements": improvements}

    async def _triage_comments(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        await self.simulate_work(0.5)
        comments = payload.get("comments") or []
        actionable = [c for c in comments if isinstance(c, dict) and c.get("suggestion")]
        return {
            "pr_number": payload.get("pr_number"),
            "comments": actionable,
            "fixes_applied": [],
            "improvements": [f"Found {len(actionable)} review comment(s) with suggestions"],
        }
