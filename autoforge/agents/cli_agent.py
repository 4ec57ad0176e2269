"""Agent that delegates coding tasks to the external AI coding CLI."""
from __future__ import annotations

from typing import Any, Dict, Optional

from autoforge.agents.base import Agent, require_fields
from autoforge.config import SimulationConfig
from autoforge.core.errors import AgentFault, UnavailableDependency
from autoforge.core.models import AgentCapabilities, AgentType
from autoforge.services.cli_tool import CLIToolService, CommandSpec, OutputCallback, task_arguments


class CLIAgent(Agent):
    agent_id = "cli-001"
    name = "Cline CLI Agent"
    agent_type = AgentType.DEVELOPER
    description = "Executes coding tasks through the Cline CLI for autonomous development"
    capabilities = AgentCapabilities(can_develop=True)

    def __init__(self, cli_tool: CLIToolService, *, simulation: Optional[SimulationConfig] = None) -> None:
        super().__init__(simulation=simulation)
        self.cli_tool = cli_tool

    async def _ensure_available(self) -> None:
        try:
            available = await self.cli_tool.is_available()
        except Exception as exc:
            raise AgentFault(f"CLI availability check failed: {exc}") from exc
        if not available:
            raise UnavailableDependency(self.cli_tool.not_installed_message)

    async def perform(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        require_fields(payload, "task")
        await self._ensure_available()
        result = await self.cli_tool.run_task(
            str(payload["task"]),
            files=payload.get("files"),
            context=payload.get("context"),
            working_directory=payload.get("working_directory"),
        )
        return result.to_json()

    async def execute_streaming(
        self,
        payload: Dict[str, Any],
        on_output: Optional[OutputCallback] = None,
        on_error: Optional[OutputCallback] = None,
    ) -> Dict[str, Any]:
        """Run a task outside the dispatch lanes, forwarding output chunks as they arrive."""
        require_fields(payload, "task")
        await self._ensure_available()
        spec = CommandSpec(
            command=task_arguments(str(payload["task"]), payload.get("files"), payload.get("context")),
            working_directory=payload.get("working_directory"),
        )
        result = await self.cli_tool.stream(spec, on_output=on_output, on_error=on_error)
        return result.to_json()
