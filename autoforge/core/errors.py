"""Error taxonomy shared by agents, collaborators and the HTTP layer."""
from __future__ import annotations


class AutoForgeError(Exception):
    """Base error for all backend operations."""


class NotFoundError(AutoForgeError):
    """An agent, task or pull request id does not resolve."""


class AgentNotFoundError(NotFoundError):
    def __init__(self, agent_id: str) -> None:
        self.agent_id = agent_id
        super().__init__(f"Agent not found: {agent_id}")


class TaskNotFoundError(NotFoundError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class InvalidInputError(AutoForgeError):
    """Required fields are missing or malformed."""


class UnavailableDependency(AutoForgeError):
    """An external collaborator (CLI tool, repository API) cannot be reached."""


class RepositoryError(UnavailableDependency):
    """A repository API call failed."""


class AgentFault(AutoForgeError):
    """Failure outside an agent's own handling; leaves the agent in error."""
