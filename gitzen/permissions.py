"""
Capability checks evaluated against an AuthContext.

Every check is a pass-through for session contexts: a browser session acts
with its owner's full privilege. API token contexts are limited to the
permissions and repositories in their scope. Checks raise
AuthorizationError on denial and return None otherwise, so they compose by
calling them in order.
"""

from enum import Enum

from gitzen.exceptions import AuthorizationError, ValidationError
from gitzen.types.records import AuthContext

WILDCARD_REPO = "*"


class Permission(str, Enum):
    """The closed set of capabilities an API token can carry."""

    CONTENT_READ = "content:read"
    CONTENT_WRITE = "content:write"
    CONTENT_DELETE = "content:delete"
    CONTENT_PUBLISH = "content:publish"
    CONFIG_READ = "config:read"
    REPOS_READ = "repos:read"

    def __str__(self) -> str:
        return self.value


VALID_PERMISSIONS = frozenset(p.value for p in Permission)


def parse_permission(value: str) -> Permission:
    """Convert a string into a Permission, rejecting anything outside the vocabulary."""
    try:
        return Permission(value)
    except ValueError:
        raise ValidationError("INVALID_PERMISSION", f"Invalid permission: {value}") from None


def require_permission(auth: AuthContext, *needed: Permission | str) -> None:
    """
    Require every permission in `needed` (AND semantics).

    Raises:
        AuthorizationError: Naming the first permission the token lacks
    """
    if auth.is_session:
        return
    granted = auth.token_scope.permissions if auth.token_scope else ()
    for permission in needed:
        value = str(permission)
        if value not in granted:
            raise AuthorizationError(
                "INSUFFICIENT_PERMISSIONS",
                f"Insufficient permissions. Required: {value}",
            )


def require_repo_access(auth: AuthContext, repo: str) -> None:
    """
    Require the token's repo allow-list to contain `repo` or the wildcard.

    Matching is exact: "owner/repo" does not match "owner/repo-extended".

    Raises:
        ValidationError: If no repo was given
        AuthorizationError: Naming the repo the token cannot access
    """
    if not repo:
        raise ValidationError("MISSING_REPO", "Repository parameter is required")
    if auth.is_session:
        return
    repos = auth.token_scope.repos if auth.token_scope else ()
    if WILDCARD_REPO in repos or repo in repos:
        return
    raise AuthorizationError("REPO_ACCESS_DENIED", f"Token does not have access to repo: {repo}")


def require_session(auth: AuthContext) -> None:
    """Reject API token contexts outright."""
    if not auth.is_session:
        raise AuthorizationError(
            "SESSION_REQUIRED", "This endpoint requires browser session auth"
        )


def guard(auth: AuthContext, *needed: Permission | str, repo: str | None = None) -> None:
    """Check permissions first, then repo scope when `repo` is given."""
    require_permission(auth, *needed)
    if repo is not None:
        require_repo_access(auth, repo)
