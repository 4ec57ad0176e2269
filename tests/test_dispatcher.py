"""Dispatch service: registry lookups, per-agent lanes and task status."""
from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import pytest

from autoforge.agents.base import Agent
from autoforge.config import DispatchConfig, SimulationConfig
from autoforge.core.errors import AgentFault, AgentNotFoundError
from autoforge.core.models import AgentStatus, AgentType, Task, TaskStatus
from autoforge.orchestration.dispatcher import Dispatcher
from autoforge.runtime import AppContext


class GateAgent(Agent):
    """Blocks inside ``perform`` until its gate opens; records what it ran."""

    name = "Gate Agent"
    agent_type = AgentType.DEVELOPER
    description = "Waits for a signal before finishing"

    def __init__(self, agent_id: str) -> None:
        super().__init__(simulation=SimulationConfig(delay_scale=0))
        self.agent_id = agent_id
        self.gate = asyncio.Event()
        self.ran: List[Any] = []

    async def perform(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.ran.append(payload["n"])
        if payload.get("fault"):
            raise AgentFault("backing tool vanished")
        await self.gate.wait()
        return {"n": payload["n"]}


class RaisingAgent(Agent):
    agent_id = "raising-001"
    name = "Raising Agent"
    agent_type = AgentType.FIXER
    description = "Breaks the execute contract"

    async def perform(self, payload: Dict[str, Any]) -> Any:
        return None

    async def execute(self, task: Task) -> Task:
        raise RuntimeError("contract broken")


async def settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.anyio
async def test_plan_scenario_completes(context: AppContext) -> None:
    task = await context.dispatcher.execute_task("planner-001", "plan", {"objective": "Build a login page"})

    assert task.status is TaskStatus.COMPLETED
    assert task.result["roadmap"]
    assert context.dispatcher.get_agent_status("planner-001") is AgentStatus.IDLE


@pytest.mark.anyio
async def test_registry_lists_fixed_agents_in_order(context: AppContext) -> None:
    first = [agent.to_json() for agent in context.dispatcher.get_all_agents()]
    second = [agent.to_json() for agent in context.dispatcher.get_all_agents()]

    assert first == second
    assert [agent["id"] for agent in first] == [
        "planner-001",
        "developer-001",
        "reviewer-001",
        "fixer-001",
        "devops-001",
        "cli-001",
        "pr-001",
    ]
    assert context.dispatcher.get_agent("ghost-999") is None
    assert context.dispatcher.get_agent_status("ghost-999") is None


@pytest.mark.anyio
async def test_unknown_agent_creates_no_task(context: AppContext) -> None:
    with pytest.raises(AgentNotFoundError, match="ghost-999"):
        await context.dispatcher.submit_task("ghost-999", "plan", {})


@pytest.mark.anyio
async def test_submit_returns_immediately_with_pending_handle(context: AppContext) -> None:
    handle = await context.dispatcher.submit_task("reviewer-001", "review", {"code": "let x = 1;"})

    assert handle.task.status in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)
    task = await handle.wait()
    assert task.status is TaskStatus.COMPLETED
    assert context.dispatcher.get_task_status(handle.id) == task


@pytest.mark.anyio
async def test_busy_agent_queues_in_submission_order() -> None:
    agent = GateAgent("gate-001")
    dispatcher = Dispatcher([agent])

    first = await dispatcher.submit_task("gate-001", "work", {"n": 1})
    second = await dispatcher.submit_task("gate-001", "work", {"n": 2})
    third = await dispatcher.submit_task("gate-001", "work", {"n": 3})
    await settle()

    assert agent.get_status() is AgentStatus.ACTIVE
    assert first.task.status is TaskStatus.IN_PROGRESS
    assert second.task.status is TaskStatus.PENDING
    assert [t.id for t in dispatcher.queued_tasks("gate-001")] == [second.id, third.id]

    agent.gate.set()
    results = [await handle.wait() for handle in (first, second, third)]

    assert [t.status for t in results] == [TaskStatus.COMPLETED] * 3
    assert agent.ran == [1, 2, 3]
    assert agent.get_status() is AgentStatus.IDLE
    assert dispatcher.queued_tasks("gate-001") == []


@pytest.mark.anyio
async def test_queued_task_runs_only_on_its_own_agent() -> None:
    busy, free = GateAgent("busy-001"), GateAgent("free-001")
    dispatcher = Dispatcher([busy, free])

    await dispatcher.submit_task("busy-001", "work", {"n": "a1"})
    waiting = await dispatcher.submit_task("busy-001", "work", {"n": "a2"})
    free.gate.set()
    other = await dispatcher.submit_task("free-001", "work", {"n": "b1"})

    await other.wait()
    await settle()

    assert free.ran == ["b1"]
    assert waiting.task.status is TaskStatus.PENDING

    busy.gate.set()
    await waiting.wait()
    assert busy.ran == ["a1", "a2"]


@pytest.mark.anyio
async def test_faulted_agent_holds_lane_until_recovered() -> None:
    agent = GateAgent("gate-001")
    agent.gate.set()
    dispatcher = Dispatcher([agent])

    faulted = await dispatcher.submit_task("gate-001", "work", {"n": 1, "fault": True})
    held = await dispatcher.submit_task("gate-001", "work", {"n": 2})

    failed = await faulted.wait()
    await settle()

    assert failed.status is TaskStatus.FAILED
    assert failed.error == "backing tool vanished"
    assert agent.get_status() is AgentStatus.ERROR
    assert held.task.status is TaskStatus.PENDING

    dispatcher.recover_agent("gate-001")
    done = await held.wait()

    assert done.status is TaskStatus.COMPLETED
    assert agent.get_status() is AgentStatus.IDLE


@pytest.mark.anyio
async def test_agent_is_free_only_when_idle_with_empty_lane() -> None:
    agent = GateAgent("gate-001")
    dispatcher = Dispatcher([agent])
    assert dispatcher.is_agent_free("gate-001") is True

    running = await dispatcher.submit_task("gate-001", "work", {"n": 1})
    assert dispatcher.is_agent_free("gate-001") is False

    agent.gate.set()
    await running.wait()
    await settle()
    assert dispatcher.is_agent_free("gate-001") is True

    await (await dispatcher.submit_task("gate-001", "work", {"n": 2, "fault": True})).wait()
    await settle()
    assert dispatcher.is_agent_free("gate-001") is False

    dispatcher.recover_agent("gate-001")
    assert dispatcher.is_agent_free("gate-001") is True

    with pytest.raises(AgentNotFoundError):
        dispatcher.is_agent_free("ghost-999")


@pytest.mark.anyio
async def test_exception_from_execute_becomes_failed_task() -> None:
    dispatcher = Dispatcher([RaisingAgent()])

    task = await dispatcher.execute_task("raising-001", "fix", {})

    assert task.status is TaskStatus.FAILED
    assert task.error == "contract broken"


@pytest.mark.anyio
async def test_history_keeps_only_recent_finished_tasks() -> None:
    agent = GateAgent("gate-001")
    agent.gate.set()
    dispatcher = Dispatcher([agent], DispatchConfig(task_history_limit=2))

    tasks = [await dispatcher.execute_task("gate-001", "work", {"n": n}) for n in range(3)]

    assert dispatcher.get_task_status(tasks[0].id) is None
    assert dispatcher.get_task_status(tasks[2].id).status is TaskStatus.COMPLETED


@pytest.mark.anyio
async def test_shutdown_fails_running_and_queued_tasks() -> None:
    agent = GateAgent("gate-001")
    dispatcher = Dispatcher([agent])

    running = await dispatcher.submit_task("gate-001", "work", {"n": 1})
    queued = await dispatcher.submit_task("gate-001", "work", {"n": 2})
    await settle()

    await dispatcher.shutdown()

    assert (await running.wait()).error == "Dispatcher shut down"
    assert (await queued.wait()).error == "Dispatcher shut down"
    assert agent.ran == [1]


def test_duplicate_agent_ids_are_rejected() -> None:
    with pytest.raises(ValueError, match="Duplicate agent id"):
        Dispatcher([RaisingAgent(), RaisingAgent()])
