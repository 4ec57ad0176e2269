"""Planner agent: turns an objective into an ordered roadmap."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from autoforge.agents.base import Agent, require_fields
from autoforge.core.models import AgentCapabilities, AgentType

MINUTES_PER_STEP = 30

# (keywords, step id, title, description, order, dependencies)
_KEYWORD_STEPS = (
    (
        ("api", "endpoint"),
        "step-1",
        "Design API Structure",
        "Define endpoints, request/response schemas, and authentication",
        1,
        [],
    ),
    (
        ("database", "db", "model"),
        "step-2",
        "Design Database Schema",
        "Create database models and relationships",
        2,
        ["step-1"],
    ),
    (
        ("frontend", "ui", "component"),
        "step-3",
        "Build Frontend Components",
        "Create React components and pages",
        3,
        ["step-1"],
    ),
    (
        ("test", "testing"),
        "step-4",
        "Write Tests",
        "Create unit and integration tests",
        4,
        ["step-1", "step-2", "step-3"],
    ),
    (
        ("deploy", "production"),
        "step-5",
        "Deploy to Production",
        "Configure deployment pipeline and deploy",
        5,
        ["step-4"],
    ),
)

_DEFAULT_STEPS = (
    ("step-1", "Analyze Requirements", "Understand the task requirements and constraints", 1, []),
    ("step-2", "Implement Solution", "Build the solution according to requirements", 2, ["step-1"]),
    ("step-3", "Test and Validate", "Test the implementation and validate functionality", 3, ["step-2"]),
)


def _step(step_id: str, title: str, description: str, order: int, deps: List[str]) -> Dict[str, Any]:
    return {
        "id": step_id,
        "title": title,
        "description": description,
        "order": order,
        "dependencies": list(deps),
    }


def break_down(objective: str, context: Optional[str] = None) -> List[Dict[str, Any]]:
    """Keyword-driven breakdown of ``objective`` into roadmap steps."""
    text = objective.lower()
    steps = [
        _step(step_id, title, description, order, deps)
        for keywords, step_id, title, description, order, deps in _KEYWORD_STEPS
        if any(keyword in text for keyword in keywords)
    ]
    if not steps:
        steps = [_step(*spec) for spec in _DEFAULT_STEPS]
    return steps


def collect_dependencies(roadmap: List[Dict[str, Any]]) -> List[str]:
    seen: Dict[str, None] = {}
    for step in roadmap:
        for dep in step["dependencies"]:
            seen.setdefault(dep, None)
    return list(seen)


def estimate_time(roadmap: List[Dict[str, Any]]) -> str:
    total = len(roadmap) * MINUTES_PER_STEP
    hours, minutes = divmod(total, 60)
    return f"{hours}h {minutes}m" if hours else f"{minutes}m"


class PlannerAgent(Agent):
    """Analyzes tasks and generates step-by-step roadmaps."""

    agent_id = "planner-001"
    name = "Planner Agent"
    agent_type = AgentType.PLANNER
    description = "Analyzes tasks and generates step-by-step roadmaps with clear dependencies"
    capabilities = AgentCapabilities(can_plan=True)

    async def perform(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        require_fields(payload, "objective")
        await self.simulate_work(1.0)

        roadmap = break_down(str(payload["objective"]), payload.get("context"))
        return {
            "roadmap": roadmap,
            "estimated_time": estimate_time(roadmap),
            "dependencies": collect_dependencies(roadmap),
        }
