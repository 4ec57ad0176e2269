"""Pull request automation endpoints and the GitHub webhook receiver."""
from __future__ import annotations

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Path, Query
from pydantic import BaseModel, Field

from autoforge.agents.fixer import REVIEW_COMMENTS_TASK
from autoforge.api.dependencies import get_dispatcher, get_github
from autoforge.api.routes import DataEnvelope, ListEnvelope
from autoforge.core.errors import AutoForgeError, NotFoundError
from autoforge.core.models import AgentType, TaskStatus
from autoforge.logging import get_logger
from autoforge.orchestration.dispatcher import Dispatcher
from autoforge.services.github import CreatePRParams, GitHubService

logger = get_logger(__name__)

router = APIRouter(prefix="/github", tags=["github"])

_REVIEW_ACTIONS = ("opened", "synchronize")
_FIX_REVIEW_STATES = ("changes_requested", "commented")

PRNumber = Annotated[int, Path(ge=1, description="Pull request number")]


class CreatePRRequest(BaseModel):
    title: str = Field(..., min_length=1)
    head: str = Field(..., min_length=1)
    body: str = ""
    base: Optional[str] = None
    repo: Optional[str] = None


async def _submit_fix(dispatcher: Dispatcher, number: int, comments: list, *, wait: bool):
    fixer = dispatcher.find_agent(AgentType.FIXER)
    if fixer is None:
        raise NotFoundError("Fixer agent not found")
    free = dispatcher.is_agent_free(fixer.agent_id)
    handle = await dispatcher.submit_task(fixer.agent_id, REVIEW_COMMENTS_TASK, {"pr_number": number, "comments": comments})
    return await handle.wait() if wait and free else handle.task


@router.get("/status", response_model=DataEnvelope)
async def github_status(github: GitHubService = Depends(get_github)) -> DataEnvelope:
    return DataEnvelope(data=await github.check_status())


@router.get("/prs", response_model=ListEnvelope)
async def list_prs(
    state: str = Query("open", description="open, closed or all"),
    github: GitHubService = Depends(get_github),
) -> ListEnvelope:
    prs = await github.get_prs(state)
    return ListEnvelope(data=prs, count=len(prs))


@router.get("/prs/{number}", response_model=DataEnvelope)
async def get_pr(number: PRNumber, github: GitHubService = Depends(get_github)) -> DataEnvelope:
    return DataEnvelope(data=await github.get_pr(number))


@router.post("/prs", response_model=DataEnvelope)
async def create_pr(request: CreatePRRequest, github: GitHubService = Depends(get_github)) -> DataEnvelope:
    pr = await github.create_pr(
        CreatePRParams(title=request.title, head=request.head, body=request.body, base=request.base, repo=request.repo)
    )
    await github.trigger_review(pr["number"], request.repo)
    return DataEnvelope(data=pr, message=f"PR #{pr['number']} created and review triggered")


@router.post("/prs/{number}/trigger-review", response_model=DataEnvelope)
async def trigger_review(number: PRNumber, github: GitHubService = Depends(get_github)) -> DataEnvelope:
    success = await github.trigger_review(number)
    message = f"Review triggered for PR #{number}" if success else f"Failed to trigger review for PR #{number}"
    return DataEnvelope(data={"success": success}, message=message)


@router.get("/prs/{number}/comments", response_model=ListEnvelope)
async def list_comments(number: PRNumber, github: GitHubService = Depends(get_github)) -> ListEnvelope:
    comments = await github.fetch_review_comments(number)
    return ListEnvelope(data=comments, count=len(comments))


@router.post("/prs/{number}/apply-fixes", response_model=DataEnvelope)
async def apply_fixes(
    number: PRNumber,
    github: GitHubService = Depends(get_github),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> DataEnvelope:
    comments = await github.fetch_review_comments(number)
    task = await _submit_fix(dispatcher, number, comments, wait=True)
    finished = task.status in (TaskStatus.COMPLETED, TaskStatus.FAILED)
    return DataEnvelope(
        data={"task": task.to_json(), "comments_count": len(comments)},
        message=(
            "Fix task finished. The fixer agent processed the review comments."
            if finished
            else "Fix task queued. Poll /tasks/{id} for the result."
        ),
    )


@router.post("/prs/{number}/close", response_model=DataEnvelope)
async def close_pr(number: PRNumber, github: GitHubService = Depends(get_github)) -> DataEnvelope:
    success = await github.close_pr(number)
    return DataEnvelope(
        data={"success": success},
        message=f"PR #{number} closed" if success else f"Failed to close PR #{number}",
    )


@router.post("/webhook")
async def webhook(
    payload: Dict[str, Any],
    x_github_event: Optional[str] = Header(None),
    github: GitHubService = Depends(get_github),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> Dict[str, Any]:
    """Acknowledge every delivery; processing failures are logged, never returned as errors."""
    log = logger.bind(github_event=x_github_event, action=payload.get("action"))
    log.info("github_webhook_received")
    pr = payload.get("pull_request") or {}
    number = pr.get("number")
    repo = (payload.get("repository") or {}).get("full_name")
    try:
        if x_github_event == "pull_request" and number:
            if payload.get("action") in _REVIEW_ACTIONS:
                await github.trigger_review(number, repo)
        elif x_github_event == "pull_request_review" and number:
            review_state = (payload.get("review") or {}).get("state")
            log.info("github_review_event", number=number, review_state=review_state)
            if review_state in _FIX_REVIEW_STATES:
                comments = await github.fetch_review_comments(number, repo)
                await _submit_fix(dispatcher, number, comments, wait=False)
    except AutoForgeError as exc:
        log.error("github_webhook_failed", number=number, error=str(exc))
        return {"received": True, "error": "Processing failed but acknowledged"}
    return {"received": True}
