"""Command line entry point: run the server, the demo pipeline, or PR automation."""
from __future__ import annotations

import asyncio
from typing import Annotated, Awaitable, Callable, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from autoforge.agents.fixer import REVIEW_COMMENTS_TASK
from autoforge.config import Config
from autoforge.core.errors import AutoForgeError, NotFoundError
from autoforge.core.models import AgentType
from autoforge.logging import setup_logging
from autoforge.runtime import AppContext, build_context

app = typer.Typer(help="AutoForge agent backend")
console = Console()

T = TypeVar("T")


def _run(action: Callable[[AppContext], Awaitable[T]]) -> T:
    """Run ``action`` against a fresh context, turning domain errors into exit code 1."""
    config = Config.from_env()
    setup_logging(config.logging)

    async def _main() -> T:
        context = build_context(config)
        try:
            return await action(context)
        finally:
            await context.aclose()

    try:
        return asyncio.run(_main())
    except AutoForgeError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Bind port")] = 8000,
    reload: Annotated[bool, typer.Option(help="Reload on code changes")] = False,
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("autoforge.main:app", host=host, port=port, reload=reload)


@app.command()
def demo(
    objective: Annotated[str, typer.Argument(help="What the agents should build")] = "Build a REST API endpoint with tests",
) -> None:
    """Run plan, develop, review and fix on one objective."""
    from autoforge.demo import main

    config = Config.from_env()
    setup_logging(config.logging)
    if not asyncio.run(main(objective, config=config, console=console)):
        raise typer.Exit(code=1)


@app.command()
def review(pr_number: Annotated[int, typer.Argument(help="Pull request number", min=1)]) -> None:
    """Ask the review bot to review a pull request."""
    if not _run(lambda ctx: ctx.github.trigger_review(pr_number)):
        console.print(f"[red]Failed to trigger review for PR #{pr_number}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Review triggered for PR #{pr_number}[/green]")


@app.command()
def fetch(pr_number: Annotated[int, typer.Argument(help="Pull request number", min=1)]) -> None:
    """List the review bot's comments on a pull request."""
    comments = _run(lambda ctx: ctx.github.fetch_review_comments(pr_number))

    table = Table(title=f"Review comments on PR #{pr_number}")
    table.add_column("Severity")
    table.add_column("Location")
    table.add_column("Comment", overflow="fold")
    for comment in comments:
        location = f"{comment['path']}:{comment['line']}" if comment["path"] else "conversation"
        table.add_row(comment["severity"], location, comment["body"][:200])
    console.print(table)
    console.print(f"[green]Fetched {len(comments)} comments for PR #{pr_number}[/green]")


@app.command()
def fix(pr_number: Annotated[int, typer.Argument(help="Pull request number", min=1)]) -> None:
    """Hand the review bot's comments on a pull request to the fixer agent."""

    async def _fix(ctx: AppContext):
        fixer = ctx.dispatcher.find_agent(AgentType.FIXER)
        if fixer is None:
            raise NotFoundError("Fixer agent not found")
        comments = await ctx.github.fetch_review_comments(pr_number)
        return await ctx.dispatcher.execute_task(
            fixer.agent_id, REVIEW_COMMENTS_TASK, {"pr_number": pr_number, "comments": comments}
        )

    task = _run(_fix)
    if task.error:
        console.print(f"[red]Fix task failed:[/red] {task.error}")
        raise typer.Exit(code=1)
    actionable = len(task.result["comments"])
    console.print(f"[green]Fix task {task.id} processed {actionable} actionable comments on PR #{pr_number}[/green]")


@app.command("auto-review")
def auto_review() -> None:
    """Request a review on every open pull request."""

    async def _review_all(ctx: AppContext):
        prs = await ctx.github.get_prs("open")
        return [(pr["number"], await ctx.github.trigger_review(pr["number"])) for pr in prs]

    results = _run(_review_all)
    for number, triggered in results:
        if triggered:
            console.print(f"[green]Review triggered for PR #{number}[/green]")
        else:
            console.print(f"[yellow]Failed to trigger review for PR #{number}[/yellow]")
    console.print(f"Auto-review completed for {len(results)} PRs")


if __name__ == "__main__":
    app()
