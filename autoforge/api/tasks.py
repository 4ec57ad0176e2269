"""Task status lookup."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from autoforge.api.dependencies import get_dispatcher
from autoforge.api.routes import DataEnvelope
from autoforge.core.errors import TaskNotFoundError
from autoforge.orchestration.dispatcher import Dispatcher

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("/{task_id}", response_model=DataEnvelope)
async def get_task(task_id: str, dispatcher: Dispatcher = Depends(get_dispatcher)) -> DataEnvelope:
    task = dispatcher.get_task_status(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return DataEnvelope(data=task.to_json())
