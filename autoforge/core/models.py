"""Core data models shared across dispatch components."""
from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional


class AgentType(str, Enum):
    """Closed set of agent categories."""

    PLANNER = "planner"
    DEVELOPER = "developer"
    REVIEWER = "reviewer"
    FIXER = "fixer"
    DEVOPS = "devops"


class AgentStatus(str, Enum):
    """Observable agent state. There is no terminal state."""

    IDLE = "idle"
    ACTIVE = "active"
    ERROR = "error"


class TaskStatus(str, Enum):
    """Lifecycle states for a submitted task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def finished(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


@dataclass(frozen=True, slots=True)
class AgentCapabilities:
    """Capability flags advertised by an agent."""

    can_plan: bool = False
    can_develop: bool = False
    can_review: bool = False
    can_fix: bool = False
    can_deploy: bool = False

    def to_json(self) -> Dict[str, bool]:
        return {
            "can_plan": self.can_plan,
            "can_develop": self.can_develop,
            "can_review": self.can_review,
            "can_fix": self.can_fix,
            "can_deploy": self.can_deploy,
        }


def new_task_id() -> str:
    """Allocate a process-unique task id from the monotonic clock plus a random suffix."""
    return f"task-{time.monotonic_ns()}-{secrets.token_hex(5)}"


@dataclass(frozen=True, slots=True)
class Task:
    """Unit of work submitted to an agent.

    Finishing a task produces a new value; only ``status``, ``result`` and
    ``error`` ever differ between the submitted and the finished task.
    """

    id: str
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    status: TaskStatus = TaskStatus.PENDING
    result: Optional[Any] = None
    error: Optional[str] = None

    @classmethod
    def create(cls, task_type: str, payload: Optional[Dict[str, Any]] = None) -> Task:
        return cls(id=new_task_id(), type=task_type, payload=dict(payload or {}))

    def start(self) -> Task:
        return replace(self, status=TaskStatus.IN_PROGRESS)

    def complete(self, result: Any) -> Task:
        return replace(self, status=TaskStatus.COMPLETED, result=result, error=None)

    def fail(self, error: str, result: Any = None) -> Task:
        return replace(self, status=TaskStatus.FAILED, result=result, error=error)

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "payload": self.payload,
            "status": self.status.value,
        }
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        return data
