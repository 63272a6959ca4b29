"""Connected repositories and the caller's remote repositories."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from gitzen.api.deps import Services, get_auth, get_client, get_services, require
from gitzen.client import RemoteRepoClient
from gitzen.permissions import Permission
from gitzen.types.records import AuthContext

router = APIRouter(prefix="/api/repos", tags=["repos"])
github_router = APIRouter(prefix="/api/github", tags=["repos"])


class ConnectRepoRequest(BaseModel):
    full_name: str = Field("", alias="fullName")


@router.get("")
async def list_repos(
    auth: AuthContext = Depends(require(Permission.REPOS_READ)),
    services: Services = Depends(get_services),
):
    return [r.to_dict() for r in await services.repos.list_visible(auth)]


@router.post("")
async def connect_repo(
    payload: ConnectRepoRequest,
    auth: AuthContext = Depends(get_auth),
    client: RemoteRepoClient = Depends(get_client),
    services: Services = Depends(get_services),
):
    created = await services.repos.connect(auth, payload.full_name, client)
    return JSONResponse({"ok": True}, status_code=201 if created else 200)


@router.delete("/{owner}/{name}")
async def disconnect_repo(
    owner: str,
    name: str,
    auth: AuthContext = Depends(get_auth),
    services: Services = Depends(get_services),
):
    await services.repos.disconnect(auth, f"{owner}/{name}")
    return {"ok": True}


@github_router.get("/repos")
async def list_remote_repos(
    auth: AuthContext = Depends(require(Permission.REPOS_READ)),
    client: RemoteRepoClient = Depends(get_client),
):
    repos = await client.users.list_repos()
    return [
        {"fullName": r.full_name, "private": r.private, "description": r.description}
        for r in repos
    ]
