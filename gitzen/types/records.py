"""Persisted records and the per-request auth context.

Records are stored in the key-value store as JSON with camelCase keys.
"""

from dataclasses import dataclass, field
from typing import Any

SESSION = "session"
API_TOKEN = "api-token"


def _get(data: dict[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    """Get value from dict, trying camelCase first then snake_case."""
    return data.get(camel) if camel in data else data.get(snake, default)


@dataclass
class UserRecord:
    """A user who signed in through the remote host."""

    github_user_id: str
    github_username: str
    encrypted_access_token: str
    created_at: str
    updated_at: str
    encrypted_refresh_token: str | None = None
    token_expires_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "githubUserId": self.github_user_id,
            "githubUsername": self.github_username,
            "encryptedGithubToken": self.encrypted_access_token,
            "encryptedRefreshToken": self.encrypted_refresh_token,
            "tokenExpiresAt": self.token_expires_at,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserRecord":
        return cls(
            github_user_id=str(_get(data, "githubUserId", "github_user_id")),
            github_username=_get(data, "githubUsername", "github_username"),
            encrypted_access_token=_get(data, "encryptedGithubToken", "encrypted_access_token"),
            encrypted_refresh_token=_get(data, "encryptedRefreshToken", "encrypted_refresh_token"),
            token_expires_at=_get(data, "tokenExpiresAt", "token_expires_at"),
            created_at=_get(data, "createdAt", "created_at"),
            updated_at=_get(data, "updatedAt", "updated_at"),
        )


@dataclass
class SessionRecord:
    """A browser session, keyed by an opaque session id."""

    user_id: str
    created_at: str
    expires_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "createdAt": self.created_at,
            "expiresAt": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionRecord":
        return cls(
            user_id=str(_get(data, "userId", "user_id")),
            created_at=_get(data, "createdAt", "created_at"),
            expires_at=_get(data, "expiresAt", "expires_at"),
        )


@dataclass
class ApiTokenRecord:
    """A scoped API token. Only the token id is stored, never the signature."""

    token_id: str
    user_id: str
    name: str
    repos: list[str]
    permissions: list[str]
    created_at: str
    expires_at: str | None = None
    last_used_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tokenId": self.token_id,
            "userId": self.user_id,
            "name": self.name,
            "repos": list(self.repos),
            "permissions": list(self.permissions),
            "createdAt": self.created_at,
            "expiresAt": self.expires_at,
            "lastUsedAt": self.last_used_at,
        }

    def summary(self) -> dict[str, Any]:
        """The record as shown to its owner, without the user id."""
        data = self.to_dict()
        data.pop("userId")
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApiTokenRecord":
        return cls(
            token_id=_get(data, "tokenId", "token_id"),
            user_id=str(_get(data, "userId", "user_id")),
            name=data["name"],
            repos=list(data.get("repos") or []),
            permissions=list(data.get("permissions") or []),
            created_at=_get(data, "createdAt", "created_at"),
            expires_at=_get(data, "expiresAt", "expires_at"),
            last_used_at=_get(data, "lastUsedAt", "last_used_at"),
        )


@dataclass
class ApiTokenCreated:
    """A freshly created token; `token` is shown to the caller exactly once."""

    record: ApiTokenRecord
    token: str

    def to_dict(self) -> dict[str, Any]:
        return {**self.record.summary(), "token": self.token}


@dataclass
class RepoConnection:
    """A repository connected to the CMS. `added_by=None` marks a legacy entry."""

    full_name: str
    added_at: str
    added_by: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"fullName": self.full_name, "addedAt": self.added_at}
        if self.added_by is not None:
            data["addedBy"] = self.added_by
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RepoConnection":
        return cls(
            full_name=_get(data, "fullName", "full_name"),
            added_at=_get(data, "addedAt", "added_at"),
            added_by=_get(data, "addedBy", "added_by"),
        )


@dataclass(frozen=True)
class TokenScope:
    """Capabilities carried by an API token."""

    repos: tuple[str, ...] = ()
    permissions: tuple[str, ...] = ()


@dataclass(frozen=True)
class AuthContext:
    """The resolved identity of one request."""

    user_id: str
    github_username: str
    github_token: str = field(repr=False)
    auth_method: str
    token_scope: TokenScope | None = None

    @property
    def is_session(self) -> bool:
        return self.auth_method == SESSION
