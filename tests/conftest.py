"""Shared fixtures: zero-delay configuration and a fresh application context per test."""
from __future__ import annotations

import sys
from typing import AsyncIterator

import pytest

from autoforge.config import CLIToolConfig, Config, DispatchConfig, GitHubConfig, SimulationConfig
from autoforge.runtime import AppContext, build_context


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def config() -> Config:
    return Config(
        simulation=SimulationConfig(delay_scale=0),
        dispatch=DispatchConfig(task_history_limit=50),
        cli_tool=CLIToolConfig(path=sys.executable, timeout=10.0),
        github=GitHubConfig(token="test-token", owner="acme", repo="widgets", api_url="https://api.github.com"),
    )


@pytest.fixture
async def context(config: Config) -> AsyncIterator[AppContext]:
    ctx = build_context(config)
    yield ctx
    await ctx.aclose()
