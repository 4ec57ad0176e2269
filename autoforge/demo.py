"""Walk an objective through the simulated agent pipeline: plan, develop, review, fix."""
from __future__ import annotations

import asyncio
from typing import Optional

from rich.console import Console

from autoforge.config import Config
from autoforge.core.models import Task, TaskStatus
from autoforge.runtime import build_context


def _failed(console: Console, step: str, task: Task) -> bool:
    if task.status is TaskStatus.COMPLETED:
        return False
    console.print(f"[bold]{step}[/bold] ([red]{task.status.value}[/red]): {task.error}")
    return True


async def main(objective: str, config: Optional[Config] = None, console: Optional[Console] = None) -> bool:
    """Run the pipeline; returns False as soon as a step fails."""
    console = console or Console()
    context = build_context(config or Config.from_env())
    dispatcher = context.dispatcher
    try:
        plan = await dispatcher.execute_task("planner-001", "plan", {"objective": objective})
        if _failed(console, "Plan", plan):
            return False
        console.print(f"[bold]Plan[/bold] ({plan.status.value}): {len(plan.result['roadmap'])} steps, "
                      f"estimated {plan.result['estimated_time']}")

        build = await dispatcher.execute_task("developer-001", "develop", {"requirement": objective})
        if _failed(console, "Develop", build):
            return False
        files = build.result["files"]
        console.print(f"[bold]Develop[/bold] ({build.status.value}): {', '.join(f['path'] for f in files)}")

        code = "\n".join(f["content"] for f in files)
        review = await dispatcher.execute_task("reviewer-001", "review", {"code": code})
        if _failed(console, "Review", review):
            return False
        console.print(f"[bold]Review[/bold] ({review.status.value}): score {review.result['score']}, "
                      f"{len(review.result['issues'])} issues")

        fix = await dispatcher.execute_task(
            "fixer-001", "fix", {"code": code, "issues": review.result["issues"]}
        )
        if _failed(console, "Fix", fix):
            return False
        console.print(f"[bold]Fix[/bold] ({fix.status.value}): {len(fix.result['fixes_applied'])} fixes applied")
        return True
    finally:
        await context.aclose()


def run(objective: str = "Build a REST API endpoint with tests") -> None:
    asyncio.run(main(objective))


if __name__ == "__main__":
    run()
