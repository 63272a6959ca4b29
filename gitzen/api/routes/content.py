"""Repository configuration and content items."""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from gitzen.api.deps import (
    RepoAccess,
    Services,
    get_content,
    get_services,
    get_workflow,
    require_repo,
)
from gitzen.content import DIRECT, ContentService, resolve_mode, validate_item
from gitzen.exceptions import AuthorizationError, RemoteApiError
from gitzen.frontmatter import serialize_frontmatter
from gitzen.permissions import Permission
from gitzen.workflow import BranchWorkflowManager

router = APIRouter(prefix="/api/repos/{owner}/{name}", tags=["content"])


class SaveContentRequest(BaseModel):
    frontmatter: dict[str, Any] = Field(default_factory=dict)
    body: str = ""
    sha: str | None = None
    mode: str | None = None
    title: str | None = None


@router.get("/config")
async def get_config(
    access: RepoAccess = Depends(require_repo(Permission.CONFIG_READ)),
    content: ContentService = Depends(get_content),
):
    return await content.load_raw_config(access.repo)


@router.get("/content/{collection}")
async def list_items(
    collection: str,
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_READ)),
    content: ContentService = Depends(get_content),
):
    return [item.to_dict() for item in await content.list_items(access.repo, collection)]


@router.get("/content/{collection}/{slug}")
async def get_item(
    collection: str,
    slug: str,
    branch: str | None = None,
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_READ)),
    content: ContentService = Depends(get_content),
):
    item = await content.get_item(access.repo, collection, slug, branch)
    return item.to_dict()


@router.put("/content/{collection}/{slug}")
async def save_item(
    collection: str,
    slug: str,
    payload: SaveContentRequest,
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_WRITE)),
    content: ContentService = Depends(get_content),
    workflow: BranchWorkflowManager = Depends(get_workflow),
    services: Services = Depends(get_services),
):
    """Save an item directly or on its review branch, as the collection's workflow allows."""
    validate_item(collection, slug)
    config = await content.collection(access.repo, collection)
    mode = resolve_mode(config, payload.mode)
    document = serialize_frontmatter(payload.frontmatter, payload.body)

    try:
        if mode == DIRECT:
            result = await workflow.save_direct(
                access.repo, collection, slug, document, payload.sha
            )
        else:
            result = await workflow.save_to_branch(
                access.repo, collection, slug, document, payload.sha, payload.title
            )
    except RemoteApiError as e:
        if e.status == 403:
            raise AuthorizationError(
                "APP_NOT_INSTALLED",
                "GitHub App not installed on this repo. "
                f"Install it here: {services.config.app_install_url}",
            ) from None
        raise
    return result.to_dict()


@router.delete("/content/{collection}/{slug}")
async def delete_item(
    collection: str,
    slug: str,
    sha: str = "",
    access: RepoAccess = Depends(require_repo(Permission.CONTENT_DELETE)),
    content: ContentService = Depends(get_content),
):
    await content.delete_item(access.repo, collection, slug, sha)
    return {"ok": True}
