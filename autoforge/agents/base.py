"""Base agent definition used by the dispatch service."""
from __future__ import annotations

import abc
import asyncio
from typing import Any, Dict, Mapping, Optional

from autoforge.config import SimulationConfig
from autoforge.core.errors import AgentFault, AutoForgeError, InvalidInputError
from autoforge.core.models import AgentCapabilities, AgentStatus, AgentType, Task
from autoforge.logging import get_logger

logger = get_logger(__name__)


def require_fields(payload: Mapping[str, Any], *fields: str) -> None:
    """Raise :class:`InvalidInputError` naming every missing or empty field."""
    missing = [name for name in fields if payload.get(name) in (None, "")]
    if missing:
        label = "field" if len(missing) == 1 else "fields"
        raise InvalidInputError(f"Missing required {label}: {', '.join(missing)}")


class Agent(abc.ABC):
    """Abstract agent: fixed identity, a status flag and a single ``execute`` operation.

    Subclasses implement :meth:`perform`. :meth:`execute` wraps it so that no
    exception escapes to the caller: every failure comes back as a failed task.
    """

    agent_id: str
    name: str
    agent_type: AgentType
    description: str
    capabilities: AgentCapabilities = AgentCapabilities()

    def __init__(self, *, simulation: Optional[SimulationConfig] = None) -> None:
        self._simulation = simulation or SimulationConfig()
        self._status = AgentStatus.IDLE

    def get_status(self) -> AgentStatus:
        return self._status

    def get_capabilities(self) -> AgentCapabilities:
        return self.capabilities

    def reset(self) -> None:
        """Return a degraded agent to idle. No-op while a task is running."""
        if self._status is AgentStatus.ERROR:
            self._status = AgentStatus.IDLE

    async def execute(self, task: Task) -> Task:
        """Run ``task`` and return its finished copy."""
        self._status = AgentStatus.ACTIVE
        log = logger.bind(agent_id=self.agent_id, task_id=task.id, task_type=task.type)
        log.info("agent_task_started")
        try:
            finished = await self._execute(task)
        except AgentFault as exc:
            self._status = AgentStatus.ERROR
            log.error("agent_fault", error=str(exc))
            return task.fail(str(exc))
        except AutoForgeError as exc:
            self._status = AgentStatus.IDLE
            log.warning("agent_task_failed", error=str(exc))
            return task.fail(str(exc))
        except Exception as exc:  # noqa: BLE001
            self._status = AgentStatus.IDLE
            log.exception("agent_task_crashed")
            return task.fail(str(exc) or exc.__class__.__name__)
        self._status = AgentStatus.IDLE
        log.info("agent_task_finished", status=finished.status.value)
        return finished

    async def _execute(self, task: Task) -> Task:
        result = await self.perform(task.payload)
        if isinstance(result, Mapping) and result.get("success") is False:
            return task.fail(str(result.get("error") or result.get("message") or "Task failed"), result)
        return task.complete(result)

    @abc.abstractmethod
    async def perform(self, payload: Dict[str, Any]) -> Any:
        """Agent-specific work against the task payload."""

    async def simulate_work(self, seconds: float) -> None:
        """Placeholder for real work, scaled by configuration."""
        delay = seconds * self._simulation.delay_scale
        if delay > 0:
            await asyncio.sleep(delay)

    def to_json(self) -> Dict[str, str]:
        return {
            "id": self.agent_id,
            "name": self.name,
            "type": self.agent_type.value,
            "status": self._status.value,
            "description": self.description,
        }
