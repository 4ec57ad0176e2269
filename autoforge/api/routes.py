"""HTTP API exposing the agent registry and task dispatch."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field

from autoforge.agents.base import Agent
from autoforge.api.dependencies import get_dispatcher
from autoforge.core.errors import AgentNotFoundError
from autoforge.core.models import TaskStatus
from autoforge.orchestration.dispatcher import Dispatcher

router = APIRouter(prefix="/agents", tags=["agents"])


class AgentResponse(BaseModel):
    id: str
    name: str
    type: str
    status: str
    description: str

    @classmethod
    def from_agent(cls, agent: Agent) -> "AgentResponse":
        return cls(**agent.to_json())


class AgentEnvelope(BaseModel):
    data: AgentResponse
    message: Optional[str] = None


class AgentListEnvelope(BaseModel):
    data: List[AgentResponse]
    count: int


class DataEnvelope(BaseModel):
    data: Any
    message: Optional[str] = None


class ListEnvelope(BaseModel):
    data: List[Any]
    count: int


class ExecuteRequest(BaseModel):
    type: str = Field(..., min_length=1, description="Operation the agent should perform")
    payload: Dict[str, Any] = Field(..., description="Agent-specific task input")


def _agent_or_404(agent_id: str, dispatcher: Dispatcher) -> Agent:
    agent = dispatcher.get_agent(agent_id)
    if agent is None:
        raise AgentNotFoundError(agent_id)
    return agent


@router.get("", response_model=AgentListEnvelope)
async def list_agents(dispatcher: Dispatcher = Depends(get_dispatcher)) -> AgentListEnvelope:
    agents = [AgentResponse.from_agent(agent) for agent in dispatcher.get_all_agents()]
    return AgentListEnvelope(data=agents, count=len(agents))


@router.get("/{agent_id}", response_model=AgentEnvelope)
async def get_agent(agent_id: str, dispatcher: Dispatcher = Depends(get_dispatcher)) -> AgentEnvelope:
    return AgentEnvelope(data=AgentResponse.from_agent(_agent_or_404(agent_id, dispatcher)))


@router.get("/{agent_id}/status", response_model=AgentEnvelope)
async def get_agent_status(agent_id: str, dispatcher: Dispatcher = Depends(get_dispatcher)) -> AgentEnvelope:
    return AgentEnvelope(data=AgentResponse.from_agent(_agent_or_404(agent_id, dispatcher)))


@router.post("/{agent_id}/execute", response_model=DataEnvelope)
async def execute_task(
    agent_id: str,
    request: ExecuteRequest,
    response: Response,
    wait: bool = Query(True, description="Wait for the task to finish when the agent is free"),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> DataEnvelope:
    """Run a task on an agent.

    Only a free agent is waited on. A busy or faulted agent queues the task
    and the pending task comes back with 202, to be polled via ``/tasks/{id}``.
    """
    free = dispatcher.is_agent_free(agent_id)
    handle = await dispatcher.submit_task(agent_id, request.type, request.payload)
    if not free or not wait:
        response.status_code = status.HTTP_202_ACCEPTED
        return DataEnvelope(data=handle.task.to_json(), message="Task submitted" if free else "Task queued")
    task = await handle.wait()
    message = "Task executed successfully" if task.status is TaskStatus.COMPLETED else "Task execution failed"
    return DataEnvelope(data=task.to_json(), message=message)


@router.post("/{agent_id}/recover", response_model=AgentEnvelope)
async def recover_agent(agent_id: str, dispatcher: Dispatcher = Depends(get_dispatcher)) -> AgentEnvelope:
    agent = dispatcher.recover_agent(agent_id)
    return AgentEnvelope(data=AgentResponse.from_agent(agent), message="Agent recovered")


@router.get("/{agent_id}/queue", response_model=ListEnvelope)
async def get_agent_queue(agent_id: str, dispatcher: Dispatcher = Depends(get_dispatcher)) -> ListEnvelope:
    tasks = [task.to_json() for task in dispatcher.queued_tasks(agent_id)]
    return ListEnvelope(data=tasks, count=len(tasks))
