"""Configuration management for the agent backend."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class SimulationConfig:
    """Controls the artificial delays standing in for agent work."""

    delay_scale: float = 1.0


@dataclass(frozen=True)
class DispatchConfig:
    """Dispatch service limits."""

    task_history_limit: int = 1000


@dataclass(frozen=True)
class CLIToolConfig:
    """External CLI tool configuration."""

    path: str = "cline"
    timeout: float = 300.0
    version_timeout: float = 5.0


@dataclass(frozen=True)
class GitHubConfig:
    """GitHub REST API configuration."""

    token: str = ""
    owner: str = ""
    repo: str = ""
    base_branch: str = "main"
    api_url: str = "https://api.github.com"
    timeout: float = 30.0
    review_bot: str = "coderabbit"
    review_command: str = "/review"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables."""

    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    cli_tool: CLIToolConfig = field(default_factory=CLIToolConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    environment: str = "development"
    cors_origins: Tuple[str, ...] = ("http://localhost:3000",)

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables."""
        origins = os.getenv("AUTOFORGE_CORS_ORIGINS", "http://localhost:3000")
        return cls(
            simulation=SimulationConfig(
                delay_scale=float(os.getenv("AUTOFORGE_DELAY_SCALE", "1.0")),
            ),
            dispatch=DispatchConfig(
                task_history_limit=int(os.getenv("AUTOFORGE_TASK_HISTORY_LIMIT", "1000")),
            ),
            cli_tool=CLIToolConfig(
                path=os.getenv("AUTOFORGE_CLI_PATH", "cline"),
                timeout=float(os.getenv("AUTOFORGE_CLI_TIMEOUT", "300")),
            ),
            github=GitHubConfig(
                token=os.getenv("GITHUB_TOKEN", ""),
                owner=os.getenv("GITHUB_OWNER", ""),
                repo=os.getenv("GITHUB_REPO", ""),
                base_branch=os.getenv("GITHUB_BASE_BRANCH", "main"),
                api_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
                review_bot=os.getenv("GITHUB_REVIEW_BOT", "coderabbit"),
            ),
            logging=LoggingConfig(
                level=os.getenv("AUTOFORGE_LOG_LEVEL", "INFO").upper(),
                format=os.getenv("AUTOFORGE_LOG_FORMAT", "console"),
            ),
            environment=os.getenv("ENVIRONMENT", "development"),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        )
