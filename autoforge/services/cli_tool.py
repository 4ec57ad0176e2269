"""Wrapper around the external AI coding CLI, executed as a subprocess."""
from __future__ import annotations

import asyncio
import os
import shlex
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from autoforge.config import CLIToolConfig
from autoforge.core.errors import InvalidInputError
from autoforge.logging import get_logger

logger = get_logger(__name__)

OutputCallback = Callable[[str], None]

_CHUNK_SIZE = 4096


@dataclass(slots=True)
class CommandSpec:
    """Arguments passed to the tool, plus where and how long to run it."""

    command: Union[str, Sequence[str]]
    working_directory: Optional[str] = None
    timeout: Optional[float] = None

    def argv(self) -> List[str]:
        if isinstance(self.command, str):
            try:
                return shlex.split(self.command)
            except ValueError as exc:
                raise InvalidInputError(f"Malformed command: {exc}") from exc
        return [str(arg) for arg in self.command]


@dataclass(slots=True)
class CommandResult:
    success: bool
    output: str
    error: Optional[str] = None
    exit_code: Optional[int] = None

    def to_json(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "exit_code": self.exit_code,
        }


def task_arguments(task: str, files: Optional[Sequence[str]] = None, context: Optional[str] = None) -> List[str]:
    """Build the argument list for a free-form task: ``<task> --files a,b --context ctx``."""
    args = [task]
    if files:
        args += ["--files", ",".join(files)]
    if context:
        args += ["--context", context]
    return args


class CLIToolService:
    """Runs the configured CLI tool. A missing binary is reported, never raised."""

    def __init__(self, config: Optional[CLIToolConfig] = None) -> None:
        self.config = config or CLIToolConfig()
        self._available: Optional[bool] = None

    @property
    def not_installed_message(self) -> str:
        return f"CLI tool '{self.config.path}' is not installed or not on PATH"

    async def is_available(self) -> bool:
        if self._available is None:
            self._available = await self._check_availability()
        return self._available

    def invalidate(self) -> None:
        """Forget the cached availability answer."""
        self._available = None

    async def _check_availability(self) -> bool:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.config.path,
                "--version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.warning("cli_tool_unavailable", path=self.config.path, error=str(exc))
            return False
        try:
            await asyncio.wait_for(proc.communicate(), timeout=self.config.version_timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("cli_tool_unavailable", path=self.config.path, error="version check timed out")
            return False
        available = proc.returncode == 0
        logger.info("cli_tool_checked", path=self.config.path, available=available)
        return available

    def _unavailable(self) -> CommandResult:
        return CommandResult(success=False, output="", error=self.not_installed_message, exit_code=1)

    async def run(self, spec: CommandSpec) -> CommandResult:
        """Run the tool to completion, bounded by ``spec.timeout`` or the configured default."""
        if not await self.is_available():
            return self._unavailable()

        argv = spec.argv()
        timeout = spec.timeout or self.config.timeout
        cwd = spec.working_directory or os.getcwd()
        logger.info("cli_command_started", argv=argv, cwd=cwd)
        try:
            proc = await asyncio.create_subprocess_exec(
                self.config.path,
                *argv,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.error("cli_command_spawn_failed", error=str(exc))
            return CommandResult(success=False, output="", error=str(exc), exit_code=1)

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            stdout, stderr = await proc.communicate()
            logger.error("cli_command_timeout", argv=argv, timeout=timeout)
            return CommandResult(
                success=False,
                output=stdout.decode(errors="replace"),
                error=f"Command timed out after {timeout:g}s",
                exit_code=proc.returncode,
            )

        output = stdout.decode(errors="replace")
        error = stderr.decode(errors="replace") or None
        if proc.returncode != 0:
            logger.error("cli_command_failed", exit_code=proc.returncode, stderr=error)
        return CommandResult(success=proc.returncode == 0, output=output, error=error, exit_code=proc.returncode)

    async def run_task(
        self,
        task: str,
        files: Optional[Sequence[str]] = None,
        context: Optional[str] = None,
        working_directory: Optional[str] = None,
    ) -> CommandResult:
        return await self.run(
            CommandSpec(command=task_arguments(task, files, context), working_directory=working_directory)
        )

    async def stream(
        self,
        spec: CommandSpec,
        on_output: Optional[OutputCallback] = None,
        on_error: Optional[OutputCallback] = None,
    ) -> CommandResult:
        """Run the tool, handing stdout/stderr chunks to the callbacks as they arrive."""
        if not await self.is_available():
            return self._unavailable()

        try:
            proc = await asyncio.create_subprocess_exec(
                self.config.path,
                *spec.argv(),
                cwd=spec.working_directory or os.getcwd(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            return CommandResult(success=False, output="", error=str(exc), exit_code=1)

        out_chunks: List[str] = []
        err_chunks: List[str] = []
        timeout = spec.timeout or self.config.timeout
        try:
            await asyncio.wait_for(
                asyncio.gather(
                    _pump(proc.stdout, out_chunks, on_output),
                    _pump(proc.stderr, err_chunks, on_error),
                    proc.wait(),
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return CommandResult(
                success=False,
                output="".join(out_chunks),
                error=f"Command timed out after {timeout:g}s",
                exit_code=proc.returncode,
            )

        return CommandResult(
            success=proc.returncode == 0,
            output="".join(out_chunks),
            error="".join(err_chunks) or None,
            exit_code=proc.returncode,
        )

    async def get_version(self) -> Optional[str]:
        result = await self.run(CommandSpec(command=["--version"], timeout=self.config.version_timeout))
        return result.output.strip() if result.success else None

    async def check_auth(self) -> bool:
        result = await self.run(CommandSpec(command=["--help"], timeout=self.config.version_timeout))
        return result.success


async def _pump(
    stream: Optional[asyncio.StreamReader],
    sink: List[str],
    callback: Optional[OutputCallback],
) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_CHUNK_SIZE)
        if not chunk:
            break
        text = chunk.decode(errors="replace")
        sink.append(text)
        if callback is not None:
            callback(text)
