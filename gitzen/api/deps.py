"""
FastAPI dependencies shared by the route modules.

Every protected route depends on get_auth; repo routes depend on
require_repo(), which checks permissions before repo scope.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass

import httpx
from fastapi import Depends, Request

from gitzen.auth import AuthResolver
from gitzen.client import RemoteRepoClient
from gitzen.config import AppConfig
from gitzen.content import ContentService
from gitzen.exceptions import ValidationError
from gitzen.identity import IdentityStore
from gitzen.oauth import GitHubOAuth
from gitzen.permissions import Permission, guard, require_permission
from gitzen.repos import RepoRegistry
from gitzen.tokens import ApiTokenService, is_valid_repo_name
from gitzen.types.records import AuthContext
from gitzen.workflow import BranchWorkflowManager


@dataclass
class Services:
    """Long-lived objects shared by every request of one app."""

    config: AppConfig
    identity: IdentityStore
    oauth: GitHubOAuth
    resolver: AuthResolver
    tokens: ApiTokenService
    repos: RepoRegistry
    http_transport: httpx.AsyncBaseTransport | None = None


@dataclass
class RepoAccess:
    """An authenticated caller cleared for one repository."""

    auth: AuthContext
    repo: str


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_auth(
    request: Request, services: Services = Depends(get_services)
) -> AsyncGenerator[AuthContext, None]:
    """Authenticate the request, then wait for last-used bookkeeping once it is handled."""
    auth = await services.resolver.resolve(request.headers, request.cookies)
    try:
        yield auth
    finally:
        await services.resolver.drain()


def require(*permissions: Permission) -> Callable[..., Awaitable[AuthContext]]:
    async def _check(auth: AuthContext = Depends(get_auth)) -> AuthContext:
        require_permission(auth, *permissions)
        return auth

    return _check


def require_repo(*permissions: Permission) -> Callable[..., Awaitable[RepoAccess]]:
    async def _check(
        owner: str, name: str, auth: AuthContext = Depends(get_auth)
    ) -> RepoAccess:
        repo = f"{owner}/{name}"
        if not is_valid_repo_name(repo):
            raise ValidationError("INVALID_REPO", "Invalid repo format. Use owner/repo-name")
        guard(auth, *permissions, repo=repo)
        return RepoAccess(auth=auth, repo=repo)

    return _check


async def get_client(
    auth: AuthContext = Depends(get_auth), services: Services = Depends(get_services)
) -> AsyncGenerator[RemoteRepoClient, None]:
    """A RemoteRepoClient acting with the caller's access token, closed after the request."""
    client = RemoteRepoClient(
        auth.github_token,
        base_url=services.config.api_base_url,
        http_transport=services.http_transport,
    )
    try:
        yield client
    finally:
        await client.close()


def get_content(client: RemoteRepoClient = Depends(get_client)) -> ContentService:
    return ContentService(client)


def get_workflow(
    client: RemoteRepoClient = Depends(get_client),
    content: ContentService = Depends(get_content),
) -> BranchWorkflowManager:
    return BranchWorkflowManager(client, content)


def parse_pr_number(number: str) -> int:
    """
    Raises:
        ValidationError: Unless `number` is a positive integer
    """
    if not number.isdigit() or int(number) <= 0:
        raise ValidationError("INVALID_PR_NUMBER", "Invalid PR number")
    return int(number)
