"""Dispatch service: agent registry, per-agent task lanes and task status lookup."""
from __future__ import annotations

import asyncio
from collections import OrderedDict, deque
from typing import Any, Deque, Dict, Iterable, List, Optional, Set

from autoforge.agents.base import Agent
from autoforge.config import DispatchConfig
from autoforge.core.errors import AgentNotFoundError
from autoforge.core.models import AgentStatus, AgentType, Task
from autoforge.logging import get_logger

logger = get_logger(__name__)


class TaskHandle:
    """Pending result of a submitted task.

    ``task`` always holds the latest snapshot (pending, in progress, then
    finished); :meth:`wait` resolves with the finished task.
    """

    __slots__ = ("agent_id", "task", "_future")

    def __init__(self, agent_id: str, task: Task) -> None:
        self.agent_id = agent_id
        self.task = task
        self._future: asyncio.Future[Task] = asyncio.get_running_loop().create_future()

    @property
    def id(self) -> str:
        return self.task.id

    def done(self) -> bool:
        return self._future.done()

    async def wait(self) -> Task:
        return await asyncio.shield(self._future)

    def _settle(self, task: Task) -> None:
        self.task = task
        if not self._future.done():
            self._future.set_result(task)


class Dispatcher:
    """Route tasks to a fixed set of agents.

    Each agent owns a FIFO lane and runs at most one task at a time. When a
    task settles, the next one is taken from the same agent's lane only. An
    agent left in ``error`` keeps its lane on hold until :meth:`recover_agent`.
    """

    def __init__(self, agents: Iterable[Agent], config: Optional[DispatchConfig] = None) -> None:
        self.config = config or DispatchConfig()
        self._agents: Dict[str, Agent] = {}
        for agent in agents:
            if agent.agent_id in self._agents:
                raise ValueError(f"Duplicate agent id: {agent.agent_id}")
            self._agents[agent.agent_id] = agent
        self._lanes: Dict[str, Deque[TaskHandle]] = {agent_id: deque() for agent_id in self._agents}
        self._running: Dict[str, TaskHandle] = {}
        self._workers: Set[asyncio.Task[None]] = set()
        self._records: "OrderedDict[str, TaskHandle]" = OrderedDict()
        logger.info("dispatcher_ready", agents=list(self._agents))

    def get_all_agents(self) -> List[Agent]:
        return list(self._agents.values())

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        return self._agents.get(agent_id)

    def get_agent_status(self, agent_id: str) -> Optional[AgentStatus]:
        agent = self._agents.get(agent_id)
        return agent.get_status() if agent else None

    def find_agent(self, agent_type: AgentType) -> Optional[Agent]:
        """First registered agent of ``agent_type``."""
        return next((a for a in self._agents.values() if a.agent_type is agent_type), None)

    def _require(self, agent_id: str) -> Agent:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    def is_agent_free(self, agent_id: str) -> bool:
        """True when a task submitted now would start at once."""
        agent = self._require(agent_id)
        return (
            agent_id not in self._running
            and not self._lanes[agent_id]
            and agent.get_status() is not AgentStatus.ERROR
        )

    async def submit_task(
        self, agent_id: str, task_type: str, payload: Optional[Dict[str, Any]] = None
    ) -> TaskHandle:
        """Queue a task for ``agent_id`` and return its handle without waiting."""
        self._require(agent_id)
        handle = TaskHandle(agent_id, Task.create(task_type, payload))
        self._records[handle.id] = handle
        self._prune()
        self._lanes[agent_id].append(handle)
        logger.info(
            "task_submitted",
            agent_id=agent_id,
            task_id=handle.id,
            task_type=task_type,
            queued=len(self._lanes[agent_id]),
        )
        self._advance(agent_id)
        return handle

    async def execute_task(
        self, agent_id: str, task_type: str, payload: Optional[Dict[str, Any]] = None
    ) -> Task:
        handle = await self.submit_task(agent_id, task_type, payload)
        return await handle.wait()

    def get_task_status(self, task_id: str) -> Optional[Task]:
        handle = self._records.get(task_id)
        return handle.task if handle else None

    def queued_tasks(self, agent_id: str) -> List[Task]:
        self._require(agent_id)
        return [handle.task for handle in self._lanes[agent_id]]

    def recover_agent(self, agent_id: str) -> Agent:
        """Reset an agent left in ``error`` and resume its lane."""
        agent = self._require(agent_id)
        if agent.get_status() is AgentStatus.ERROR:
            agent.reset()
            logger.info("agent_recovered", agent_id=agent_id, queued=len(self._lanes[agent_id]))
        self._advance(agent_id)
        return agent

    async def shutdown(self) -> None:
        """Cancel running work and fail everything still queued."""
        workers = list(self._workers)
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        for lane in self._lanes.values():
            while lane:
                handle = lane.popleft()
                handle._settle(handle.task.fail("Dispatcher shut down"))
        logger.info("dispatcher_shutdown", cancelled=len(workers))

    def _advance(self, agent_id: str) -> None:
        lane = self._lanes[agent_id]
        agent = self._agents[agent_id]
        if agent_id in self._running or not lane:
            return
        if agent.get_status() is AgentStatus.ERROR:
            logger.warning("lane_held", agent_id=agent_id, queued=len(lane))
            return
        handle = lane.popleft()
        handle.task = handle.task.start()
        self._running[agent_id] = handle
        worker = asyncio.create_task(self._run(agent, handle), name=f"dispatch-{handle.id}")
        self._workers.add(worker)
        worker.add_done_callback(self._workers.discard)

    async def _run(self, agent: Agent, handle: TaskHandle) -> None:
        try:
            finished = await agent.execute(handle.task)
        except asyncio.CancelledError:
            handle._settle(handle.task.fail("Dispatcher shut down"))
            self._running.pop(agent.agent_id, None)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("agent_execute_raised", agent_id=agent.agent_id, task_id=handle.id)
            finished = handle.task.fail(str(exc) or exc.__class__.__name__)
        handle._settle(finished)
        self._running.pop(agent.agent_id, None)
        self._prune()
        logger.info(
            "task_settled",
            agent_id=agent.agent_id,
            task_id=handle.id,
            status=finished.status.value,
            agent_status=agent.get_status().value,
        )
        self._advance(agent.agent_id)

    def _prune(self) -> None:
        excess = len(self._records) - self.config.task_history_limit
        if excess <= 0:
            return
        finished = [task_id for task_id, handle in self._records.items() if handle.done()]
        for task_id in finished[:excess]:
            del self._records[task_id]
