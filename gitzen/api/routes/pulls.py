"""Reviews: pull requests opened from review branches."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from gitzen.api.deps import RepoAccess, get_workflow, parse_pr_number, require_repo
from gitzen.exceptions import ConflictError
from gitzen.permissions import Permission
from gitzen.workflow import BranchWorkflowManager

router = APIRouter(prefix="/api/repos/{owner}/{name}/pulls", tags=["pulls"])


class OpenReviewRequest(BaseModel):
    branch: str = ""
    title: str = ""
    body: str = ""


class CommentRequest(BaseModel):
    body: str = ""


@router.post("")
async def open_review(
    payload: OpenReviewRequest,
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_WRITE)),
    workflow: BranchWorkflowManager = Depends(get_workflow),
):
    result = await workflow.open_review(access.repo, payload.branch, payload.title, payload.body)
    return {
        "number": result.pr_number,
        "htmlUrl": result.html_url,
        "previewUrl": result.preview_url,
    }


@router.get("")
async def list_reviews(
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_READ)),
    workflow: BranchWorkflowManager = Depends(get_workflow),
):
    return [r.to_dict() for r in await workflow.list_reviews(access.repo)]


@router.get("/{number}")
async def get_review(
    number: str,
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_READ)),
    workflow: BranchWorkflowManager = Depends(get_workflow),
):
    review = await workflow.get_review(access.repo, parse_pr_number(number))
    return review.to_dict()


@router.get("/{number}/diff")
async def get_diff(
    number: str,
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_READ)),
    workflow: BranchWorkflowManager = Depends(get_workflow),
):
    return [d.to_dict() for d in await workflow.diff(access.repo, parse_pr_number(number))]


@router.put("/{number}/merge")
async def merge_review(
    number: str,
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_PUBLISH)),
    workflow: BranchWorkflowManager = Depends(get_workflow),
):
    pr_number = parse_pr_number(number)
    try:
        result = await workflow.merge(access.repo, pr_number)
    except ConflictError:
        return JSONResponse({"merged": False, "reason": "conflicts"}, status_code=409)
    return {"sha": result.sha, "merged": True}


@router.put("/{number}/update")
async def update_review_branch(
    number: str,
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_WRITE)),
    workflow: BranchWorkflowManager = Depends(get_workflow),
):
    result = await workflow.update_branch(access.repo, parse_pr_number(number))
    if result.conflict:
        return JSONResponse({"ok": False, "reason": "conflicts"}, status_code=409)
    return {"ok": True}


@router.post("/{number}/rebase")
async def rebase_review(
    number: str,
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_WRITE)),
    workflow: BranchWorkflowManager = Depends(get_workflow),
):
    await workflow.force_rebase(access.repo, parse_pr_number(number))
    return {"ok": True}


@router.get("/{number}/comments")
async def list_comments(
    number: str,
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_READ)),
    workflow: BranchWorkflowManager = Depends(get_workflow),
):
    comments = await workflow.list_comments(access.repo, parse_pr_number(number))
    return [c.to_dict() for c in comments]


@router.post("/{number}/comments")
async def add_comment(
    number: str,
    payload: CommentRequest,
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_WRITE)),
    workflow: BranchWorkflowManager = Depends(get_workflow),
):
    comment = await workflow.add_comment(access.repo, parse_pr_number(number), payload.body)
    return JSONResponse(comment.to_dict(), status_code=201)


@router.delete("/{number}")
async def close_review(
    number: str,
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_WRITE)),
    workflow: BranchWorkflowManager = Depends(get_workflow),
):
    await workflow.close(access.repo, parse_pr_number(number))
    return {"ok": True}
