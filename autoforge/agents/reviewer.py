"""Reviewer agent: heuristic static review of a code snippet."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from autoforge.agents.base import Agent, require_fields
from autoforge.core.models import AgentCapabilities, AgentType

PASS_THRESHOLD = 70
MAX_LINE_LENGTH = 120

# issue type -> severity -> points deducted
_PENALTIES = {
    "error": {"high": 20, "medium": 10, "low": 5},
    "warning": {"high": 10, "medium": 5, "low": 2},
    "info": {"high": 5, "medium": 2, "low": 1},
}


def _issue(
    kind: str,
    severity: str,
    message: str,
    suggestion: str,
    line: Optional[int] = None,
) -> Dict[str, Any]:
    issue: Dict[str, Any] = {"type": kind, "severity": severity, "message": message, "suggestion": suggestion}
    if line is not None:
        issue["line"] = line
    return issue


def analyze_code(code: str, language: str) -> List[Dict[str, Any]]:
    issues: List[Dict[str, Any]] = []
    typescript = language == "typescript"
    unguarded = "try" not in code and "catch" not in code

    for number, line in enumerate(code.split("\n"), start=1):
        if "TODO" in line or "FIXME" in line:
            issues.append(_issue("warning", "low", "TODO/FIXME comment found",
                                 "Address the TODO/FIXME before merging", number))
        if "console.log" in line and "//" not in line:
            issues.append(_issue("warning", "medium", "console.log found - use logger instead",
                                 "Replace with logger.info() or logger.debug()", number))
        if len(line) > MAX_LINE_LENGTH:
            issues.append(_issue("info", "low", f"Line exceeds {MAX_LINE_LENGTH} characters",
                                 "Consider breaking into multiple lines", number))
        if typescript and "async" in line and unguarded:
            issues.append(_issue("warning", "medium", "Async function without error handling",
                                 "Add try-catch block for error handling", number))

    if typescript:
        if "any" in code:
            issues.append(_issue("warning", "high", 'Usage of "any" type detected',
                                 'Use specific types instead of "any"'))
        if "interface" not in code and "type" not in code and len(code) > 100:
            issues.append(_issue("info", "low", "Consider adding type definitions",
                                 "Define interfaces or types for better type safety"))

    if "eval(" in code or "Function(" in code:
        issues.append(_issue("error", "high", "Potential security risk: eval() or Function() usage",
                             "Avoid using eval() or Function() - use safer alternatives"))
    return issues


def calculate_score(issues: List[Dict[str, Any]]) -> int:
    score = 100
    for issue in issues:
        score -= _PENALTIES.get(issue["type"], _PENALTIES["info"]).get(issue["severity"], 1)
    return max(0, min(100, score))


def build_suggestions(issues: List[Dict[str, Any]]) -> List[str]:
    suggestions: Dict[str, None] = {}
    for issue in issues:
        if issue.get("suggestion"):
            suggestions.setdefault(issue["suggestion"], None)
    if issues:
        suggestions.setdefault("Review all issues and address them before merging", None)
        suggestions.setdefault("Consider adding unit tests for the code", None)
    else:
        suggestions.setdefault("Code looks good! Consider adding documentation", None)
    return list(suggestions)


class ReviewerAgent(Agent):
    """Reviews code for bugs, style problems and risky constructs."""

    agent_id = "reviewer-001"
    name = "Reviewer Agent"
    agent_type = AgentType.REVIEWER
    description = "Reviews code for bugs, logical errors, performance issues, and architecture inconsistencies"
    capabilities = AgentCapabilities(can_review=True)

    async def perform(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        require_fields(payload, "code")
        await self.simulate_work(1.2)

        issues = analyze_code(str(payload["code"]), payload.get("language") or "typescript")
        score = calculate_score(issues)
        return {
            "issues": issues,
            "score": score,
            "suggestions": build_suggestions(issues),
            "passed": score >= PASS_THRESHOLD,
        }
