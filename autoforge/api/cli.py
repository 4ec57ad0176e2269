"""Direct access to the external coding CLI, bypassing agent dispatch."""
from __future__ import annotations

import asyncio
from typing import AsyncIterator, List, Optional, Union

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from autoforge.agents.cli_agent import CLIAgent
from autoforge.api.dependencies import get_cli_tool, get_dispatcher
from autoforge.api.routes import DataEnvelope
from autoforge.core.errors import AutoForgeError, InvalidInputError, NotFoundError, UnavailableDependency
from autoforge.logging import get_logger
from autoforge.orchestration.dispatcher import Dispatcher
from autoforge.services.cli_tool import CLIToolService, CommandSpec

logger = get_logger(__name__)

router = APIRouter(prefix="/cli", tags=["cli"])


class CLITaskRequest(BaseModel):
    task: str = Field(..., min_length=1)
    files: Optional[List[str]] = None
    context: Optional[str] = None
    working_directory: Optional[str] = None


class CLICommandRequest(BaseModel):
    command: Union[str, List[str]]
    working_directory: Optional[str] = None
    timeout: Optional[float] = Field(None, gt=0)


@router.get("/status", response_model=DataEnvelope)
async def cli_status(cli_tool: CLIToolService = Depends(get_cli_tool)) -> DataEnvelope:
    # A tool installed after startup shows up here without a restart.
    cli_tool.invalidate()
    available = await cli_tool.is_available()
    version = await cli_tool.get_version() if available else None
    authenticated = await cli_tool.check_auth() if available else False
    return DataEnvelope(data={"available": available, "version": version, "authenticated": authenticated})


@router.post("/execute", response_model=DataEnvelope)
async def cli_execute(request: CLITaskRequest, cli_tool: CLIToolService = Depends(get_cli_tool)) -> DataEnvelope:
    logger.info("cli_task_requested", task=request.task)
    result = await cli_tool.run_task(
        request.task,
        files=request.files,
        context=request.context,
        working_directory=request.working_directory,
    )
    message = "Task executed successfully" if result.success else "Task execution failed"
    return DataEnvelope(data=result.to_json(), message=message)


@router.post("/stream")
async def cli_stream(
    request: CLITaskRequest,
    cli_tool: CLIToolService = Depends(get_cli_tool),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> StreamingResponse:
    """Run a task through the CLI agent and stream its output as plain text."""
    agent = dispatcher.get_agent(CLIAgent.agent_id)
    if not isinstance(agent, CLIAgent):
        raise NotFoundError("CLI agent not found")
    if not await cli_tool.is_available():
        raise UnavailableDependency(cli_tool.not_installed_message)
    logger.info("cli_stream_requested", task=request.task)

    chunks: "asyncio.Queue[Optional[str]]" = asyncio.Queue()

    async def produce() -> None:
        try:
            await agent.execute_streaming(
                request.model_dump(exclude_none=True),
                on_output=chunks.put_nowait,
                on_error=chunks.put_nowait,
            )
        except AutoForgeError as exc:
            logger.error("cli_stream_failed", error=str(exc))
            chunks.put_nowait(f"\n{exc}\n")
        finally:
            chunks.put_nowait(None)

    async def body() -> AsyncIterator[str]:
        producer = asyncio.create_task(produce())
        try:
            while True:
                chunk = await chunks.get()
                if chunk is None:
                    break
                yield chunk
            await producer
        finally:
            producer.cancel()

    return StreamingResponse(body(), media_type="text/plain")


@router.post("/command", response_model=DataEnvelope)
async def cli_command(request: CLICommandRequest, cli_tool: CLIToolService = Depends(get_cli_tool)) -> DataEnvelope:
    if not request.command:
        raise InvalidInputError("Missing required field: command")
    logger.info("cli_command_requested", command=request.command)
    result = await cli_tool.run(
        CommandSpec(command=request.command, working_directory=request.working_directory, timeout=request.timeout)
    )
    message = "Command executed successfully" if result.success else "Command execution failed"
    return DataEnvelope(data=result.to_json(), message=message)


@router.get("/version", response_model=DataEnvelope)
async def cli_version(cli_tool: CLIToolService = Depends(get_cli_tool)) -> DataEnvelope:
    version = await cli_tool.get_version()
    if not version:
        raise NotFoundError("CLI tool is not available")
    return DataEnvelope(data={"version": version})
