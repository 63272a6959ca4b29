"""
Scoped API tokens.

Wire format: cms_{token_id}.{signature}, where token_id is 40 lower-case
hex characters and signature is the 64-hex HMAC of token_id under the API
token secret. Only the record is stored; the full token is shown once at
creation.
"""

import re
from datetime import timedelta

from gitzen.crypto import generate_random_hex, hmac_sign, hmac_verify
from gitzen.exceptions import NotFoundError, ValidationError
from gitzen.identity import IdentityStore, isoformat, utcnow
from gitzen.logging import log_audit
from gitzen.permissions import VALID_PERMISSIONS, WILDCARD_REPO, Permission, require_session
from gitzen.types.records import ApiTokenCreated, ApiTokenRecord, AuthContext

TOKEN_PREFIX = "cms_"
TOKEN_ID_BYTES = 20

MIN_EXPIRES_IN = 300
MAX_EXPIRES_IN = 31_536_000
MAX_NAME_LENGTH = 100

DEVICE_TOKEN_TTL = 30 * 24 * 60 * 60
DEVICE_PERMISSIONS = (
    Permission.CONTENT_READ,
    Permission.CONTENT_WRITE,
    Permission.CONFIG_READ,
    Permission.REPOS_READ,
)

_TOKEN_RE = re.compile(r"cms_([0-9a-f]{40})\.([0-9a-f]{64})")
_NAME_RE = re.compile(r"^[\w\s\-:.()'+,]+$")
REPO_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]*/[a-zA-Z0-9][a-zA-Z0-9._-]*$")


def format_token(token_id: str, secret: str) -> str:
    return f"{TOKEN_PREFIX}{token_id}.{hmac_sign(token_id, secret)}"


def parse_token(token: str) -> tuple[str, str] | None:
    """Split a token into (token_id, signature), or None if it is malformed."""
    match = _TOKEN_RE.fullmatch(token)
    if not match:
        return None
    return match.group(1), match.group(2)


def verify_token(token: str, secret: str) -> str | None:
    """Return the token id if the token is well formed and correctly signed."""
    parsed = parse_token(token)
    if parsed is None:
        return None
    token_id, signature = parsed
    if not hmac_verify(token_id, signature, secret):
        return None
    return token_id


def is_valid_repo_name(name: str) -> bool:
    return bool(REPO_NAME_RE.match(name))


def validate_token_request(
    name: str, repos: list[str], permissions: list[str], expires_in: int | None
) -> None:
    """
    Validate a token creation request.

    Raises:
        ValidationError: Describing the first invalid field
    """
    if not name or len(name) > MAX_NAME_LENGTH:
        raise ValidationError("INVALID_NAME", "Name is required (max 100 chars)")
    if not _NAME_RE.match(name):
        raise ValidationError("INVALID_NAME", "Token name contains invalid characters")

    if not repos:
        raise ValidationError("INVALID_REPOS", "At least one repo (or '*') is required")
    for repo in repos:
        if repo != WILDCARD_REPO and not is_valid_repo_name(repo):
            raise ValidationError("INVALID_REPOS", f"Invalid repo format: {repo}")

    if not permissions:
        raise ValidationError("INVALID_PERMISSION", "At least one permission is required")
    for permission in permissions:
        if permission not in VALID_PERMISSIONS:
            raise ValidationError("INVALID_PERMISSION", f"Invalid permission: {permission}")

    if expires_in is not None:
        if expires_in < MIN_EXPIRES_IN:
            raise ValidationError(
                "INVALID_EXPIRY", "Expiry must be at least 300 seconds (5 minutes)"
            )
        if expires_in > MAX_EXPIRES_IN:
            raise ValidationError(
                "INVALID_EXPIRY", "Expiry must not exceed 31536000 seconds (1 year)"
            )


class ApiTokenService:
    """Creates, lists and revokes a user's API tokens.

    Every public operation requires a browser session: a token can never
    mint or revoke tokens.
    """

    def __init__(self, identity: IdentityStore, api_token_secret: str) -> None:
        self.identity = identity
        self._secret = api_token_secret

    async def create(
        self,
        auth: AuthContext,
        name: str,
        repos: list[str],
        permissions: list[str],
        expires_in: int | None = None,
    ) -> ApiTokenCreated:
        require_session(auth)
        validate_token_request(name, repos, permissions, expires_in)
        created = await self.issue(auth.user_id, name, repos, permissions, expires_in)
        log_audit("token.created", user=auth.user_id, id=created.record.token_id, name=name)
        return created

    async def issue(
        self,
        user_id: str,
        name: str,
        repos: list[str],
        permissions: list[str],
        expires_in: int | None,
    ) -> ApiTokenCreated:
        """Store a new token for `user_id` without validating the request."""
        token_id = generate_random_hex(TOKEN_ID_BYTES)
        now = utcnow()
        record = ApiTokenRecord(
            token_id=token_id,
            user_id=user_id,
            name=name,
            repos=list(repos),
            permissions=[str(p) for p in permissions],
            created_at=isoformat(now),
            expires_at=isoformat(now + timedelta(seconds=expires_in)) if expires_in else None,
        )
        await self.identity.save_token(record)
        await self.identity.add_to_index(user_id, token_id)
        return ApiTokenCreated(record=record, token=format_token(token_id, self._secret))

    async def issue_device_token(self, user_id: str, username: str) -> ApiTokenCreated:
        """Token handed to a CLI that finished the device flow: every repo, no delete or publish."""
        created = await self.issue(
            user_id,
            f"Device: {username}",
            [WILDCARD_REPO],
            [str(p) for p in DEVICE_PERMISSIONS],
            DEVICE_TOKEN_TTL,
        )
        log_audit("token.created", user=user_id, id=created.record.token_id, via="device")
        return created

    async def revoke(self, auth: AuthContext, token_id: str) -> None:
        """
        Delete one of the caller's tokens.

        Raises:
            NotFoundError: If the token does not exist or belongs to another user
        """
        require_session(auth)
        record = await self.identity.get_token(token_id)
        if record is None or record.user_id != auth.user_id:
            raise NotFoundError("TOKEN_NOT_FOUND", "Token not found")
        await self.identity.delete_token(token_id)
        await self.identity.remove_from_index(auth.user_id, token_id)
        log_audit("token.revoked", user=auth.user_id, id=token_id)

    async def list(self, auth: AuthContext) -> list[ApiTokenRecord]:
        """The caller's tokens, skipping index entries whose record is gone."""
        require_session(auth)
        records = []
        for token_id in await self.identity.token_ids(auth.user_id):
            record = await self.identity.get_token(token_id)
            if record is not None:
                records.append(record)
        return records
