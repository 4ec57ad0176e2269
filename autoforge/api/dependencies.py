"""FastAPI dependencies resolving the per-process application context."""
from __future__ import annotations

from fastapi import Request

from autoforge.orchestration.dispatcher import Dispatcher
from autoforge.runtime import AppContext
from autoforge.services.cli_tool import CLIToolService
from autoforge.services.github import GitHubService


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_dispatcher(request: Request) -> Dispatcher:
    return get_context(request).dispatcher


def get_cli_tool(request: Request) -> CLIToolService:
    return get_context(request).cli_tool


def get_github(request: Request) -> GitHubService:
    return get_context(request).github
