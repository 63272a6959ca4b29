"""gitzen - authorization and review workflow for a Git-backed CMS."""

from gitzen.auth import AuthResolver
from gitzen.client import RemoteRepoClient
from gitzen.config import AppConfig
from gitzen.content import ContentService
from gitzen.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    DecryptionError,
    GitzenError,
    NotFoundError,
    RemoteApiError,
    ServerError,
    ValidationError,
)
from gitzen.identity import IdentityStore
from gitzen.logging import configure_logging, get_logger
from gitzen.oauth import GitHubOAuth
from gitzen.permissions import Permission, guard, require_permission, require_repo_access
from gitzen.repos import RepoRegistry
from gitzen.store import KVStore
from gitzen.tokens import ApiTokenService
from gitzen.workflow import BranchWorkflowManager, ReviewState

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Remote host
    "RemoteRepoClient",
    "GitHubOAuth",
    # Auth
    "AuthResolver",
    "IdentityStore",
    "ApiTokenService",
    "Permission",
    "guard",
    "require_permission",
    "require_repo_access",
    # Content and workflow
    "ContentService",
    "BranchWorkflowManager",
    "ReviewState",
    "RepoRegistry",
    # Storage and configuration
    "KVStore",
    "AppConfig",
    # Exceptions
    "GitzenError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "ServerError",
    "ConfigurationError",
    "DecryptionError",
    "RemoteApiError",
    # Logging
    "configure_logging",
    "get_logger",
]
