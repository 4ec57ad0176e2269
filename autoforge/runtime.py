"""Application runtime composition helpers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from autoforge.agents.base import Agent
from autoforge.agents.cli_agent import CLIAgent
from autoforge.agents.developer import DeveloperAgent
from autoforge.agents.devops import DevOpsAgent
from autoforge.agents.fixer import FixerAgent
from autoforge.agents.planner import PlannerAgent
from autoforge.agents.pr_agent import PRAgent
from autoforge.agents.reviewer import ReviewerAgent
from autoforge.config import Config
from autoforge.orchestration.dispatcher import Dispatcher
from autoforge.services.cli_tool import CLIToolService
from autoforge.services.github import GitHubService


def build_agents(config: Config, cli_tool: CLIToolService, github: GitHubService) -> List[Agent]:
    """The fixed agent roster, in registration order."""
    simulation = config.simulation
    return [
        PlannerAgent(simulation=simulation),
        DeveloperAgent(simulation=simulation),
        ReviewerAgent(simulation=simulation),
        FixerAgent(simulation=simulation),
        DevOpsAgent(simulation=simulation),
        CLIAgent(cli_tool, simulation=simulation),
        PRAgent(github, simulation=simulation),
    ]


@dataclass
class AppContext:
    """Everything a request handler or CLI command needs, built once per process."""

    config: Config
    cli_tool: CLIToolService
    github: GitHubService
    dispatcher: Dispatcher = field(repr=False)

    async def aclose(self) -> None:
        await self.dispatcher.shutdown()
        await self.github.aclose()


def build_context(
    config: Optional[Config] = None,
    *,
    cli_tool: Optional[CLIToolService] = None,
    github: Optional[GitHubService] = None,
) -> AppContext:
    config = config or Config.from_env()
    cli_tool = cli_tool or CLIToolService(config.cli_tool)
    github = github or GitHubService(config.github)
    dispatcher = Dispatcher(build_agents(config, cli_tool, github), config.dispatch)
    return AppContext(config=config, cli_tool=cli_tool, github=github, dispatcher=dispatcher)
