"""Registry of repositories connected to the CMS."""

from gitzen.client import RemoteRepoClient
from gitzen.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RemoteApiError,
    ValidationError,
)
from gitzen.identity import isoformat, utcnow
from gitzen.logging import log_audit
from gitzen.permissions import WILDCARD_REPO, require_session
from gitzen.store import KVStore
from gitzen.tokens import is_valid_repo_name
from gitzen.types.records import AuthContext, RepoConnection

REPOS_KEY = "connected_repos"
CONFIG_PATH = "cms.config.json"


class RepoRegistry:
    """
    The shared list of connected repositories.

    Entries carry the user who connected them. Entries without an owner
    predate ownership tracking; every session sees them and the next user
    to connect the repo claims them.
    """

    def __init__(self, data: KVStore, install_url: str) -> None:
        self.data = data
        self.install_url = install_url

    async def all(self) -> list[RepoConnection]:
        raw = await self.data.get_json(REPOS_KEY)
        return [RepoConnection.from_dict(item) for item in raw or []]

    async def _save(self, repos: list[RepoConnection]) -> None:
        await self.data.put_json(REPOS_KEY, [r.to_dict() for r in repos])

    async def list_visible(self, auth: AuthContext) -> list[RepoConnection]:
        """
        Repositories the caller may see.

        API tokens see entries inside their repo scope; sessions see their
        own entries plus unowned ones.
        """
        repos = await self.all()
        if auth.is_session:
            return [r for r in repos if r.added_by is None or r.added_by == auth.user_id]
        allowed = auth.token_scope.repos if auth.token_scope else ()
        if WILDCARD_REPO in allowed:
            return repos
        return [r for r in repos if r.full_name in allowed]

    async def connect(
        self, auth: AuthContext, full_name: str, client: RemoteRepoClient
    ) -> bool:
        """
        Connect a repository for the calling user.

        The repository must contain cms.config.json at its root.

        Returns:
            True if a new entry was added, False if an unowned entry was claimed

        Raises:
            AuthorizationError: For API tokens, or when the App cannot read the repo
            ValidationError: For a malformed name or a repo without configuration
            ConflictError: If the repo is already connected by an owner
        """
        require_session(auth)
        if not full_name or not is_valid_repo_name(full_name):
            raise ValidationError("INVALID_REPO", "Invalid repo format. Use owner/repo-name")

        try:
            await client.contents.get_file(full_name, CONFIG_PATH)
        except RemoteApiError as e:
            if e.status == 403:
                raise AuthorizationError(
                    "APP_NOT_INSTALLED",
                    f"GitHub App not installed on this repo. Install it here: {self.install_url}",
                ) from None
            raise ValidationError("MISSING_CONFIG", "No cms.config.json found in repo root") from None

        repos = await self.all()
        existing = next((r for r in repos if r.full_name == full_name), None)
        if existing is not None:
            if existing.added_by is not None:
                raise ConflictError("REPO_EXISTS", "Repo already connected")
            existing.added_by = auth.user_id
            await self._save(repos)
            log_audit("repo.claimed", user=auth.user_id, repo=full_name)
            return False

        repos.append(
            RepoConnection(full_name=full_name, added_at=isoformat(utcnow()), added_by=auth.user_id)
        )
        await self._save(repos)
        log_audit("repo.connected", user=auth.user_id, repo=full_name)
        return True

    async def disconnect(self, auth: AuthContext, full_name: str) -> None:
        """
        Remove a repository the caller connected.

        Raises:
            NotFoundError: If the repo is not connected
            AuthorizationError: For unowned entries or entries owned by someone else
        """
        require_session(auth)
        repos = await self.all()
        target = next((r for r in repos if r.full_name == full_name), None)
        if target is None:
            raise NotFoundError("REPO_NOT_FOUND", "Repo not found")
        if target.added_by is None:
            raise AuthorizationError(
                "LEGACY_REPO", "Cannot remove legacy repo entry without owner"
            )
        if target.added_by != auth.user_id:
            raise AuthorizationError(
                "NOT_REPO_OWNER", "You can only disconnect repos you connected"
            )
        await self._save([r for r in repos if r.full_name != full_name])
        log_audit("repo.disconnected", user=auth.user_id, repo=full_name)
